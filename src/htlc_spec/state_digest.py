"""Canonical state digest implementation (v1)."""
from __future__ import annotations

from typing import Any

from blake3 import blake3

_STATUS_TAGS = {"active": 0, "withdrawn": 1, "cancelled": 2}


def _hex_to_bytes(value: str | None) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise TypeError("hex value must be string")
    v = value[2:] if value.startswith(("0x", "0X")) else value
    if v == "":
        return b""
    return bytes.fromhex(v)


def _u64_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u64 must be non-negative")
    return int(value).to_bytes(8, "big", signed=False)


def _i128_be(value: int) -> bytes:
    return int(value).to_bytes(16, "big", signed=True)


def _var(data: bytes) -> bytes:
    return _u64_be(len(data)) + data


def compute_state_digest(post_state: dict[str, Any]) -> str:
    """Compute state digest v1 from an exported state.

    Balances and escrows are sorted by key and encoded in canonical order,
    then hashed with BLAKE3-256. Zero balances are skipped so that a holder
    that received and spent funds digests the same as one never seen.
    """
    buf = bytearray()
    buf += _u64_be(int(post_state.get("timestamp", 0)))
    buf += _u64_be(int(post_state.get("sequence", 0)))

    tokens = sorted(
        post_state.get("tokens", []), key=lambda t: _hex_to_bytes(t.get("asset"))
    )
    for tok in tokens:
        buf += _var(_hex_to_bytes(tok.get("asset")))
        buf += _var(_hex_to_bytes(tok.get("admin")))
        buf += _i128_be(int(tok.get("total_supply", 0)))

    balances = []
    for bal in post_state.get("balances", []):
        amount = int(bal.get("balance", 0))
        if amount == 0:
            continue
        balances.append((_hex_to_bytes(bal.get("asset")), _hex_to_bytes(bal.get("holder")), amount))
    balances.sort(key=lambda x: (x[0], x[1]))
    for asset, holder, amount in balances:
        buf += _var(asset)
        buf += _var(holder)
        buf += _i128_be(amount)

    escrows = sorted(post_state.get("escrows", []), key=lambda e: _hex_to_bytes(e.get("id")))
    for esc in escrows:
        eid = _hex_to_bytes(esc.get("id"))
        if len(eid) != 32:
            raise ValueError(f"escrow id must be 32 bytes, got {len(eid)}")
        status = esc.get("status", "")
        if status not in _STATUS_TAGS:
            raise ValueError(f"unknown escrow status: {status}")
        rec = esc.get("record", {})
        buf += eid
        buf += bytes([_STATUS_TAGS[status]])
        for name in ("maker", "taker", "asset"):
            buf += _var(_hex_to_bytes(rec.get(name)))
        buf += _i128_be(int(rec.get("amount", 0)))
        buf += _var(_hex_to_bytes(rec.get("hashlock")))
        buf += _u64_be(int(rec.get("timelock_start", 0)))
        buf += _u64_be(int(rec.get("timelock_end", 0)))

    return blake3(buf).hexdigest()
