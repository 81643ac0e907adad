"""Core types for the HTLC escrow engine.

Identities, assets and escrow ids are raw ``bytes``. The engine only compares
them for equality and passes them to the ledger, so any fixed encoding works;
the bundled test accounts use 32-byte BLAKE3-derived addresses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .timelock import TimelockWindow

Address = bytes
EscrowId = bytes


class EscrowStatus(Enum):
    ACTIVE = "active"
    WITHDRAWN = "withdrawn"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not EscrowStatus.ACTIVE


@dataclass(frozen=True)
class Principal:
    """Identity presented by the caller of an operation."""

    address: Address


@dataclass(frozen=True)
class Immutables:
    maker: Address
    taker: Address
    asset: Address
    amount: int
    hashlock: bytes
    timelock_start: int
    timelock_end: int

    @property
    def window(self) -> TimelockWindow:
        return TimelockWindow(self.timelock_start, self.timelock_end)


@dataclass
class EscrowEntry:
    record: Immutables
    status: EscrowStatus = EscrowStatus.ACTIVE


# --- Token ledger ---


@dataclass
class TokenInfo:
    admin: Address
    name: str
    symbol: str
    decimals: int
    total_supply: int = 0


# --- Snapshot state ---


@dataclass
class SwapState:
    tokens: dict[Address, TokenInfo] = field(default_factory=dict)
    # asset -> holder -> balance
    balances: dict[Address, dict[Address, int]] = field(default_factory=dict)
    escrows: dict[EscrowId, EscrowEntry] = field(default_factory=dict)
    sequence: int = 0
    timestamp: int = 0


# --- Actions ---


class ActionType(Enum):
    CREATE_ESCROW = "create_escrow"
    WITHDRAW = "withdraw"
    CANCEL = "cancel"
    INITIALIZE_TOKEN = "initialize_token"
    MINT = "mint"
    TRANSFER = "transfer"


@dataclass
class Action:
    sender: Address
    action_type: ActionType
    payload: dict = field(default_factory=dict)
