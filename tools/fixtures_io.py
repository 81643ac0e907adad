"""Helpers to serialize/deserialize fixtures for HTLC specs."""

from __future__ import annotations

from typing import Any

from htlc_spec.encoding import entry_from_json, entry_to_json
from htlc_spec.events import EscrowEvent, event_to_json
from htlc_spec.types import Action, ActionType, SwapState, TokenInfo

# Payload fields carried as hex strings in JSON.
_BYTES_FIELDS = frozenset({
    "maker",
    "taker",
    "asset",
    "hashlock",
    "escrow_id",
    "secret",
    "admin",
    "to",
})


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def state_to_json(state: SwapState) -> dict[str, Any]:
    tokens = [
        {
            "asset": _bytes_to_hex(asset),
            "admin": _bytes_to_hex(info.admin),
            "name": info.name,
            "symbol": info.symbol,
            "decimals": info.decimals,
            "total_supply": info.total_supply,
        }
        for asset, info in state.tokens.items()
    ]
    balances = [
        {
            "asset": _bytes_to_hex(asset),
            "holder": _bytes_to_hex(holder),
            "balance": amount,
        }
        for asset, holders in state.balances.items()
        for holder, amount in holders.items()
    ]
    return {
        "timestamp": state.timestamp,
        "sequence": state.sequence,
        "tokens": tokens,
        "balances": balances,
        "escrows": [entry_to_json(eid, entry) for eid, entry in state.escrows.items()],
    }


def state_from_json(data: dict[str, Any]) -> SwapState:
    state = SwapState(
        timestamp=int(data.get("timestamp", 0)),
        sequence=int(data.get("sequence", 0)),
    )
    for tok in data.get("tokens", []):
        state.tokens[_hex_to_bytes(tok["asset"])] = TokenInfo(
            admin=_hex_to_bytes(tok["admin"]),
            name=tok["name"],
            symbol=tok["symbol"],
            decimals=int(tok["decimals"]),
            total_supply=int(tok.get("total_supply", 0)),
        )
    for bal in data.get("balances", []):
        holders = state.balances.setdefault(_hex_to_bytes(bal["asset"]), {})
        holders[_hex_to_bytes(bal["holder"])] = int(bal["balance"])
    for item in data.get("escrows", []):
        eid, entry = entry_from_json(item)
        state.escrows[eid] = entry
    return state


def _payload_to_json(payload: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k, v in payload.items():
        if isinstance(v, (bytes, bytearray)):
            out[k] = _bytes_to_hex(bytes(v))
        else:
            out[k] = v
    return out


def _payload_from_json(payload: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k, v in payload.items():
        if k in _BYTES_FIELDS and isinstance(v, str):
            out[k] = _hex_to_bytes(v)
        else:
            out[k] = v
    return out


def action_to_json(action: Action) -> dict[str, Any]:
    return {
        "sender": _bytes_to_hex(action.sender),
        "action_type": action.action_type.value,
        "payload": _payload_to_json(action.payload),
    }


def action_from_json(data: dict[str, Any]) -> Action:
    return Action(
        sender=_hex_to_bytes(data["sender"]),
        action_type=ActionType(data["action_type"]),
        payload=_payload_from_json(data.get("payload", {})),
    )


def events_to_json(events: tuple[EscrowEvent, ...]) -> list[dict[str, Any]]:
    return [event_to_json(e) for e in events]
