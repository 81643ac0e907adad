"""Canonical encodings for escrow records.

Two encodings live here: the byte layout hashed into escrow ids, and the JSON
layout used by the file-backed store and by fixtures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from blake3 import blake3

from .config import ESCROW_ID_DOMAIN, I128_MAX, U64_MAX
from .errors import ErrorCode, HtlcError
from .types import EscrowEntry, EscrowId, EscrowStatus, Immutables


@dataclass
class Writer:
    buf: bytearray = field(default_factory=bytearray)

    def write_u64(self, v: int) -> None:
        if v < 0 or v > U64_MAX:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, f"u64 out of range: {v}")
        self.buf.extend(int(v).to_bytes(8, "big", signed=False))

    def write_i128(self, v: int) -> None:
        if v < -I128_MAX - 1 or v > I128_MAX:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, f"i128 out of range: {v}")
        self.buf.extend(int(v).to_bytes(16, "big", signed=True))

    def write_bytes(self, b: bytes) -> None:
        self.buf.extend(b)

    def write_var_bytes(self, b: bytes) -> None:
        self.write_u64(len(b))
        self.buf.extend(b)


def encode_immutables(record: Immutables) -> bytes:
    w = Writer()
    w.write_var_bytes(record.maker)
    w.write_var_bytes(record.taker)
    w.write_var_bytes(record.asset)
    w.write_i128(record.amount)
    w.write_var_bytes(record.hashlock)
    w.write_u64(record.timelock_start)
    w.write_u64(record.timelock_end)
    return bytes(w.buf)


def derive_escrow_id(record: Immutables, sequence: int) -> EscrowId:
    """Hash the creation parameters and a freshness counter into an id."""
    w = Writer()
    w.write_bytes(ESCROW_ID_DOMAIN)
    w.write_bytes(encode_immutables(record))
    w.write_u64(sequence)
    return blake3(bytes(w.buf)).digest()


# --- JSON ---


def immutables_to_json(record: Immutables) -> dict[str, Any]:
    return {
        "maker": record.maker.hex(),
        "taker": record.taker.hex(),
        "asset": record.asset.hex(),
        "amount": record.amount,
        "hashlock": record.hashlock.hex(),
        "timelock_start": record.timelock_start,
        "timelock_end": record.timelock_end,
    }


def immutables_from_json(data: dict[str, Any]) -> Immutables:
    return Immutables(
        maker=bytes.fromhex(data["maker"]),
        taker=bytes.fromhex(data["taker"]),
        asset=bytes.fromhex(data["asset"]),
        amount=int(data["amount"]),
        hashlock=bytes.fromhex(data["hashlock"]),
        timelock_start=int(data["timelock_start"]),
        timelock_end=int(data["timelock_end"]),
    )


def entry_to_json(escrow_id: EscrowId, entry: EscrowEntry) -> dict[str, Any]:
    return {
        "id": escrow_id.hex(),
        "status": entry.status.value,
        "record": immutables_to_json(entry.record),
    }


def entry_from_json(data: dict[str, Any]) -> tuple[EscrowId, EscrowEntry]:
    return bytes.fromhex(data["id"]), EscrowEntry(
        record=immutables_from_json(data["record"]),
        status=EscrowStatus(data["status"]),
    )
