"""Escrow store specs."""

from __future__ import annotations

import json

import pytest

from htlc_spec import store as store_module
from htlc_spec.config import Settings
from htlc_spec.errors import ErrorCode, HtlcError, InvariantViolation
from htlc_spec.hashlock import commit
from htlc_spec.store import InMemoryEscrowStore, JsonFileEscrowStore
from htlc_spec.test_accounts import ALICE, BOB, TOKEN
from htlc_spec.types import EscrowStatus, Immutables

EID = bytes([7]) * 32
EID2 = bytes([8]) * 32


def _record(amount: int = 1000) -> Immutables:
    return Immutables(
        maker=ALICE,
        taker=BOB,
        asset=TOKEN,
        amount=amount,
        hashlock=commit(b"secret123"),
        timelock_start=1000,
        timelock_end=2000,
    )


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryEscrowStore()
    return JsonFileEscrowStore(tmp_path / "escrows.json")


def test_missing_keys_return_none(store) -> None:
    assert store.get_record(EID) is None
    assert store.get_status(EID) is None


def test_put_record_starts_active(store) -> None:
    store.put_record(EID, _record())
    assert store.get_record(EID) == _record()
    assert store.get_status(EID) is EscrowStatus.ACTIVE
    assert list(store.ids()) == [EID]


def test_put_record_never_overwrites(store) -> None:
    store.put_record(EID, _record())
    with pytest.raises(HtlcError) as exc:
        store.put_record(EID, _record(amount=5))
    assert exc.value.code == ErrorCode.ESCROW_EXISTS
    assert store.get_record(EID).amount == 1000


def test_set_status_unknown_id(store) -> None:
    with pytest.raises(HtlcError) as exc:
        store.set_status(EID, EscrowStatus.WITHDRAWN)
    assert exc.value.code == ErrorCode.NOT_FOUND


def test_set_status_compare_and_set(store) -> None:
    store.put_record(EID, _record())
    store.set_status(EID, EscrowStatus.WITHDRAWN, expected=EscrowStatus.ACTIVE)
    with pytest.raises(HtlcError) as exc:
        store.set_status(EID, EscrowStatus.CANCELLED, expected=EscrowStatus.ACTIVE)
    assert exc.value.code == ErrorCode.INVALID_STATE
    assert store.get_status(EID) is EscrowStatus.WITHDRAWN


def test_next_sequence_is_monotonic(store) -> None:
    values = [store.next_sequence() for _ in range(5)]
    assert values == [0, 1, 2, 3, 4]


def test_in_memory_store_writes_through_to_shared_dict() -> None:
    entries = {}
    s = InMemoryEscrowStore(entries=entries, sequence=3)
    s.put_record(EID, _record())
    assert EID in entries
    assert s.next_sequence() == 3
    assert s.sequence == 4


def test_file_store_survives_reopen(tmp_path) -> None:
    path = tmp_path / "escrows.json"
    s = JsonFileEscrowStore(path)
    s.next_sequence()
    s.put_record(EID, _record())
    s.put_record(EID2, _record(amount=7))
    s.set_status(EID2, EscrowStatus.CANCELLED)

    reopened = JsonFileEscrowStore(path)
    assert reopened.get_record(EID) == _record()
    assert reopened.get_status(EID) is EscrowStatus.ACTIVE
    assert reopened.get_status(EID2) is EscrowStatus.CANCELLED
    assert reopened.next_sequence() == 1
    assert not (tmp_path / "escrows.json.tmp").exists()


def test_file_store_corrupt_document(tmp_path) -> None:
    path = tmp_path / "escrows.json"
    path.write_text(json.dumps({"escrows": [{"id": EID.hex(), "record": {}}]}))
    with pytest.raises(InvariantViolation):
        JsonFileEscrowStore(path)


def test_file_store_write_failure_rolls_back(tmp_path, monkeypatch) -> None:
    s = JsonFileEscrowStore(tmp_path / "escrows.json")
    s.put_record(EID, _record())

    def fail(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(store_module.os, "replace", fail)

    with pytest.raises(HtlcError) as exc:
        s.put_record(EID2, _record())
    assert exc.value.code == ErrorCode.INTERNAL_ERROR
    assert s.get_record(EID2) is None

    with pytest.raises(HtlcError):
        s.set_status(EID, EscrowStatus.WITHDRAWN)
    assert s.get_status(EID) is EscrowStatus.ACTIVE


def test_open_store_follows_settings(tmp_path) -> None:
    assert type(store_module.open_store(Settings())) is InMemoryEscrowStore
    path = tmp_path / "s.json"
    durable = store_module.open_store(Settings(store_path=str(path)))
    assert isinstance(durable, JsonFileEscrowStore)
    durable.put_record(EID, _record())
    assert path.exists()
