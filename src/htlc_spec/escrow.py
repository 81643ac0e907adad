"""Hashed-timelock escrow state machine.

State machine:
    ACTIVE → WITHDRAWN   (taker reveals the secret inside [start, end])
    ACTIVE → CANCELLED   (maker reclaims after end)

WITHDRAWN and CANCELLED are terminal. Every operation runs as one unit under a
per-escrow lock: all preconditions are checked first, then the ledger transfer,
then the status write, then the event. A rejected precondition or a failed
transfer leaves no trace. If the status write fails after the transfer went
through, the transfer is reversed before the error propagates.
"""

from __future__ import annotations

import logging
from typing import Optional

from .auth import Authenticator
from .config import HASH_SIZE, I128_MAX, Settings
from .encoding import derive_escrow_id
from .errors import ErrorCode, HtlcError, InvariantViolation
from .events import EscrowCancelled, EscrowCreated, EscrowWithdrawn, EventSink
from .hashlock import HashlockValidator, Secret, secret_bytes
from .ledger import AssetLedger, custody_address
from .locks import KeyedLocks
from .store import EscrowStore
from .timelock import TimelockWindow
from .types import Address, EscrowId, EscrowStatus, Immutables, Principal

logger = logging.getLogger(__name__)


def _label(escrow_id: object) -> str:
    if isinstance(escrow_id, (bytes, bytearray)):
        return bytes(escrow_id).hex()
    return repr(escrow_id)


class EscrowStateMachine:
    """Creates, withdraws and cancels escrows.

    Usage:
        machine = EscrowStateMachine(store, ledger, authenticator, events)
        eid = machine.create(Principal(maker), maker, taker, asset, 1000,
                             hashlock, 1000, 2000)
        machine.withdraw(eid, secret, now=1500)
    """

    def __init__(
        self,
        store: EscrowStore,
        ledger: AssetLedger,
        authenticator: Authenticator,
        events: EventSink,
        hashlock: Optional[HashlockValidator] = None,
        custody: Optional[Address] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        if hashlock is None:
            hashlock = HashlockValidator((settings or Settings()).hash_algorithm)
        self.store = store
        self.ledger = ledger
        self.authenticator = authenticator
        self.events = events
        self.hashlock = hashlock
        self.custody = custody if custody is not None else custody_address()
        self._locks = KeyedLocks()

    # --- reads ---

    def get_record(self, escrow_id: EscrowId) -> Optional[Immutables]:
        return self.store.get_record(escrow_id)

    def get_status(self, escrow_id: EscrowId) -> Optional[EscrowStatus]:
        return self.store.get_status(escrow_id)

    # --- create ---

    def create(
        self,
        caller: Principal,
        maker: Address,
        taker: Address,
        asset: Address,
        amount: int,
        hashlock: bytes,
        timelock_start: int,
        timelock_end: int,
    ) -> EscrowId:
        try:
            self.authenticator.require_authenticated(caller, maker)
            record = self._build_record(
                maker, taker, asset, amount, hashlock, timelock_start, timelock_end
            )
            escrow_id = derive_escrow_id(record, self.store.next_sequence())
            with self._locks.hold(escrow_id):
                if self.store.get_record(escrow_id) is not None:
                    raise HtlcError(ErrorCode.ESCROW_EXISTS, "escrow id collision")
                self.ledger.transfer(asset, maker, self.custody, amount)
                try:
                    self.store.put_record(escrow_id, record)
                except HtlcError:
                    self._reverse(asset, self.custody, maker, amount)
                    raise
                self.events.publish(EscrowCreated(escrow_id, maker, taker, asset, amount))
        except HtlcError as exc:
            logger.debug("create rejected: %s", exc)
            raise

        logger.info(
            "escrow %s created: %d of %s locked until %d",
            escrow_id.hex(),
            amount,
            asset.hex(),
            timelock_end,
        )
        return escrow_id

    @staticmethod
    def _build_record(
        maker: Address,
        taker: Address,
        asset: Address,
        amount: int,
        hashlock: bytes,
        timelock_start: int,
        timelock_end: int,
    ) -> Immutables:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, "escrow amount must be > 0")
        if amount > I128_MAX:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, "escrow amount exceeds i128 max")
        if not isinstance(hashlock, (bytes, bytearray)) or len(hashlock) != HASH_SIZE:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, f"hashlock must be {HASH_SIZE} bytes")
        # Validates start <= end and the u64 range.
        TimelockWindow(timelock_start, timelock_end)
        return Immutables(
            maker=maker,
            taker=taker,
            asset=asset,
            amount=amount,
            hashlock=bytes(hashlock),
            timelock_start=timelock_start,
            timelock_end=timelock_end,
        )

    # --- withdraw ---

    def withdraw(self, escrow_id: EscrowId, secret: Secret, now: int) -> bool:
        try:
            with self._locks.hold(escrow_id):
                record = self._load_active(escrow_id)
                window = record.window
                if not window.is_active(now):
                    raise HtlcError(
                        ErrorCode.WINDOW_VIOLATION,
                        f"withdraw at {now} outside [{window.start}, {window.end}]",
                    )
                if not self.hashlock.verify(record.hashlock, secret):
                    raise HtlcError(ErrorCode.INVALID_SECRET, "secret does not match hashlock")

                self._settle(escrow_id, record, record.taker, EscrowStatus.WITHDRAWN)
                self.events.publish(
                    EscrowWithdrawn(escrow_id, record.taker, record.amount, secret_bytes(secret))
                )
        except HtlcError as exc:
            logger.debug("withdraw %s rejected: %s", _label(escrow_id), exc)
            raise

        logger.info("escrow %s withdrawn by taker at %d", escrow_id.hex(), now)
        return True

    # --- cancel ---

    def cancel(self, caller: Principal, escrow_id: EscrowId, now: int) -> bool:
        try:
            with self._locks.hold(escrow_id):
                record = self._load_active(escrow_id)
                if not record.window.is_expired(now):
                    raise HtlcError(
                        ErrorCode.WINDOW_VIOLATION,
                        f"cancel at {now} before timelock end {record.timelock_end}",
                    )
                self.authenticator.require_authenticated(caller, record.maker)

                self._settle(escrow_id, record, record.maker, EscrowStatus.CANCELLED)
                self.events.publish(EscrowCancelled(escrow_id, record.maker, record.amount))
        except HtlcError as exc:
            logger.debug("cancel %s rejected: %s", _label(escrow_id), exc)
            raise

        logger.info("escrow %s cancelled by maker at %d", escrow_id.hex(), now)
        return True

    # --- helpers ---

    def _load_active(self, escrow_id: EscrowId) -> Immutables:
        record = self.store.get_record(escrow_id)
        status = self.store.get_status(escrow_id)
        if record is None and status is None:
            raise HtlcError(ErrorCode.NOT_FOUND, f"escrow {_label(escrow_id)} not found")
        if record is None or status is None:
            raise InvariantViolation(f"escrow {escrow_id.hex()} has a record without a status")
        if status is not EscrowStatus.ACTIVE:
            raise HtlcError(ErrorCode.INVALID_STATE, f"escrow is {status.value}")
        return record

    def _settle(
        self,
        escrow_id: EscrowId,
        record: Immutables,
        recipient: Address,
        status: EscrowStatus,
    ) -> None:
        self.ledger.transfer(record.asset, self.custody, recipient, record.amount)
        try:
            self.store.set_status(escrow_id, status, expected=EscrowStatus.ACTIVE)
        except HtlcError:
            self._reverse(record.asset, recipient, self.custody, record.amount)
            raise

    def _reverse(self, asset: Address, source: Address, destination: Address, amount: int) -> None:
        try:
            self.ledger.transfer(asset, source, destination, amount)
        except HtlcError as exc:
            raise InvariantViolation(
                f"could not reverse transfer of {amount} {asset.hex()}: {exc}"
            ) from exc
        logger.warning("reversed transfer of %d %s after store failure", amount, asset.hex())
