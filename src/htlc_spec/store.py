"""Escrow storage.

The store is a plain keyed mapping from escrow id to record and status. It
refuses to overwrite an existing record and offers compare-and-set on the
status, but lifecycle rules (which transitions are legal, when) belong to
``htlc_spec.escrow``.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Iterator, Optional, Protocol, Union

from .config import Settings
from .encoding import entry_from_json, entry_to_json
from .errors import ErrorCode, HtlcError, InvariantViolation
from .types import EscrowEntry, EscrowId, EscrowStatus, Immutables

logger = logging.getLogger(__name__)


class EscrowStore(Protocol):
    def put_record(self, escrow_id: EscrowId, record: Immutables) -> None: ...

    def get_record(self, escrow_id: EscrowId) -> Optional[Immutables]: ...

    def get_status(self, escrow_id: EscrowId) -> Optional[EscrowStatus]: ...

    def set_status(
        self,
        escrow_id: EscrowId,
        status: EscrowStatus,
        expected: Optional[EscrowStatus] = None,
    ) -> None: ...

    def next_sequence(self) -> int: ...

    def ids(self) -> Iterator[EscrowId]: ...


class InMemoryEscrowStore:
    """Dict-backed store.

    ``entries`` may be an existing mapping (for example ``SwapState.escrows``);
    the store then reads and writes it in place.
    """

    def __init__(
        self,
        entries: Optional[dict[EscrowId, EscrowEntry]] = None,
        sequence: int = 0,
    ) -> None:
        self._entries: dict[EscrowId, EscrowEntry] = entries if entries is not None else {}
        self._sequence = sequence
        self._lock = threading.RLock()

    @property
    def sequence(self) -> int:
        return self._sequence

    def next_sequence(self) -> int:
        with self._lock:
            value = self._sequence
            self._sequence += 1
            return value

    def put_record(self, escrow_id: EscrowId, record: Immutables) -> None:
        with self._lock:
            if escrow_id in self._entries:
                raise HtlcError(ErrorCode.ESCROW_EXISTS, f"escrow {escrow_id.hex()} already exists")
            self._entries[escrow_id] = EscrowEntry(record=record, status=EscrowStatus.ACTIVE)
        logger.debug("stored escrow %s", escrow_id.hex())

    def get_record(self, escrow_id: EscrowId) -> Optional[Immutables]:
        entry = self._entries.get(escrow_id)
        return entry.record if entry is not None else None

    def get_status(self, escrow_id: EscrowId) -> Optional[EscrowStatus]:
        entry = self._entries.get(escrow_id)
        return entry.status if entry is not None else None

    def set_status(
        self,
        escrow_id: EscrowId,
        status: EscrowStatus,
        expected: Optional[EscrowStatus] = None,
    ) -> None:
        with self._lock:
            entry = self._entries.get(escrow_id)
            if entry is None:
                raise HtlcError(ErrorCode.NOT_FOUND, f"escrow {escrow_id.hex()} not found")
            if expected is not None and entry.status != expected:
                raise HtlcError(
                    ErrorCode.INVALID_STATE,
                    f"escrow is {entry.status.value}, expected {expected.value}",
                )
            entry.status = status
        logger.debug("escrow %s status -> %s", escrow_id.hex(), status.value)

    def ids(self) -> Iterator[EscrowId]:
        with self._lock:
            return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


class JsonFileEscrowStore(InMemoryEscrowStore):
    """Durable store persisted as a single JSON document.

    Every mutation rewrites the file through a temporary sibling and
    ``os.replace``, so a crash leaves either the old or the new document on
    disk. A failed write rolls the in-memory copy back and surfaces as
    ``INTERNAL_ERROR``.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        entries, sequence = self._load(self.path)
        super().__init__(entries=entries, sequence=sequence)

    @staticmethod
    def _load(path: Path) -> tuple[dict[EscrowId, EscrowEntry], int]:
        if not path.exists():
            return {}, 0
        try:
            data = json.loads(path.read_text())
            entries = dict(entry_from_json(item) for item in data.get("escrows", []))
            sequence = int(data.get("sequence", 0))
        except (ValueError, KeyError, TypeError) as exc:
            raise InvariantViolation(f"corrupt escrow store {path}: {exc}") from exc
        logger.info("loaded %d escrows from %s", len(entries), path)
        return entries, sequence

    def _persist(self) -> None:
        doc = {
            "sequence": self._sequence,
            "escrows": [entry_to_json(eid, entry) for eid, entry in self._entries.items()],
        }
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(doc, indent=2))
            os.replace(tmp, self.path)
        except OSError as exc:
            raise HtlcError(ErrorCode.INTERNAL_ERROR, f"failed to persist escrow store: {exc}") from exc

    def next_sequence(self) -> int:
        with self._lock:
            value = super().next_sequence()
            try:
                self._persist()
            except HtlcError:
                self._sequence = value
                raise
            return value

    def put_record(self, escrow_id: EscrowId, record: Immutables) -> None:
        with self._lock:
            super().put_record(escrow_id, record)
            try:
                self._persist()
            except HtlcError:
                del self._entries[escrow_id]
                raise

    def set_status(
        self,
        escrow_id: EscrowId,
        status: EscrowStatus,
        expected: Optional[EscrowStatus] = None,
    ) -> None:
        with self._lock:
            previous = self.get_status(escrow_id)
            super().set_status(escrow_id, status, expected)
            try:
                self._persist()
            except HtlcError:
                self._entries[escrow_id].status = previous
                raise


def open_store(settings: Optional[Settings] = None) -> EscrowStore:
    """File-backed store when ``settings.store_path`` is set, in-memory otherwise."""
    settings = settings or Settings.from_env()
    if settings.store_path:
        return JsonFileEscrowStore(settings.store_path)
    return InMemoryEscrowStore()
