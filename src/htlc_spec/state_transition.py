"""Snapshot-based transition entrypoints.

``apply_action`` runs one action against a ``SwapState`` snapshot using the
in-memory collaborators and returns a new snapshot. The input snapshot is
never mutated, so a failed action returns it unchanged.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Optional

from .auth import PrincipalAuthenticator
from .errors import ErrorCode, HtlcError
from .escrow import EscrowStateMachine
from .events import EscrowEvent, EventLog
from .hashlock import HashAlgorithm, HashlockValidator
from .ledger import TokenLedger
from .store import InMemoryEscrowStore
from .types import Action, ActionType, Principal, SwapState


class TransitionResult:
    """Thin wrapper for apply results."""

    def __init__(
        self,
        ok: bool,
        error: Optional[HtlcError] = None,
        events: tuple[EscrowEvent, ...] = (),
        escrow_id: Optional[bytes] = None,
    ):
        self.ok = ok
        self.error = error
        self.events = events
        self.escrow_id = escrow_id

    @classmethod
    def success(
        cls, events: tuple[EscrowEvent, ...] = (), escrow_id: Optional[bytes] = None
    ) -> "TransitionResult":
        return cls(True, None, events, escrow_id)

    @classmethod
    def failure(cls, error: HtlcError) -> "TransitionResult":
        return cls(False, error)


def _field(payload: dict, name: str) -> Any:
    if name not in payload:
        raise HtlcError(ErrorCode.INVALID_PARAMETERS, f"missing payload field: {name}")
    return payload[name]


def _dispatch(
    machine: EscrowStateMachine,
    ledger: TokenLedger,
    state: SwapState,
    action: Action,
) -> Optional[bytes]:
    p = action.payload
    if not isinstance(p, dict):
        raise HtlcError(ErrorCode.INVALID_PARAMETERS, "payload must be dict")
    caller = Principal(action.sender)
    at = action.action_type

    if at == ActionType.CREATE_ESCROW:
        return machine.create(
            caller,
            maker=_field(p, "maker"),
            taker=_field(p, "taker"),
            asset=_field(p, "asset"),
            amount=_field(p, "amount"),
            hashlock=_field(p, "hashlock"),
            timelock_start=_field(p, "timelock_start"),
            timelock_end=_field(p, "timelock_end"),
        )
    if at == ActionType.WITHDRAW:
        machine.withdraw(_field(p, "escrow_id"), _field(p, "secret"), state.timestamp)
        return None
    if at == ActionType.CANCEL:
        machine.cancel(caller, _field(p, "escrow_id"), state.timestamp)
        return None
    if at == ActionType.INITIALIZE_TOKEN:
        ledger.initialize(
            _field(p, "asset"),
            admin=_field(p, "admin"),
            name=_field(p, "name"),
            symbol=_field(p, "symbol"),
            decimals=_field(p, "decimals"),
        )
        return None
    if at == ActionType.MINT:
        ledger.mint(caller, _field(p, "asset"), _field(p, "to"), _field(p, "amount"))
        return None
    if at == ActionType.TRANSFER:
        ledger.transfer(_field(p, "asset"), action.sender, _field(p, "to"), _field(p, "amount"))
        return None

    raise HtlcError(ErrorCode.INVALID_PARAMETERS, f"unsupported action type: {at}")


def apply_action(
    state: SwapState,
    action: Action,
    algorithm: HashAlgorithm = HashAlgorithm.BLAKE3,
) -> tuple[SwapState, TransitionResult]:
    """Apply one action.

    Failed-action semantics: state unchanged, no events.
    """
    working = deepcopy(state)
    store = InMemoryEscrowStore(entries=working.escrows, sequence=working.sequence)
    ledger = TokenLedger(tokens=working.tokens, balances=working.balances)
    events = EventLog()
    machine = EscrowStateMachine(
        store,
        ledger,
        PrincipalAuthenticator(),
        events,
        hashlock=HashlockValidator(algorithm),
    )

    try:
        escrow_id = _dispatch(machine, ledger, working, action)
    except HtlcError as exc:
        return state, TransitionResult.failure(exc)

    working.sequence = store.sequence
    return working, TransitionResult.success(events.events, escrow_id)


def apply_actions(
    state: SwapState,
    actions: list[Action],
    algorithm: HashAlgorithm = HashAlgorithm.BLAKE3,
) -> tuple[SwapState, TransitionResult]:
    """Apply actions in order with all-or-nothing semantics.

    If any action fails the whole batch is rejected and the state is unchanged.
    Events of all actions are concatenated in order.
    """
    working = state
    events: list[EscrowEvent] = []
    for action in actions:
        working, result = apply_action(working, action, algorithm)
        if not result.ok:
            return state, result
        events.extend(result.events)
    return working, TransitionResult.success(tuple(events))


def advance_time(state: SwapState, timestamp: int) -> SwapState:
    """Return a copy of ``state`` with the ledger clock moved to ``timestamp``."""
    if timestamp < state.timestamp:
        raise HtlcError(ErrorCode.INVALID_PARAMETERS, "ledger time cannot move backwards")
    ns = deepcopy(state)
    ns.timestamp = timestamp
    return ns
