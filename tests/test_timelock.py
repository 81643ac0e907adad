"""Timelock window specs."""

from __future__ import annotations

import pytest

from htlc_spec.errors import ErrorCode, HtlcError
from htlc_spec.timelock import TimelockWindow, WindowPhase


def _predicates(window: TimelockWindow, t: int) -> tuple[bool, bool, bool]:
    return window.is_before_start(t), window.is_active(t), window.is_expired(t)


def test_window_boundaries() -> None:
    window = TimelockWindow(1000, 2000)
    assert _predicates(window, 999) == (True, False, False)
    assert _predicates(window, 1000) == (False, True, False)
    assert _predicates(window, 1500) == (False, True, False)
    assert _predicates(window, 2000) == (False, True, False)
    assert _predicates(window, 2001) == (False, False, True)


def test_window_predicates_exclusive_and_exhaustive() -> None:
    for start, end in ((0, 0), (5, 5), (3, 17), (0, 40)):
        window = TimelockWindow(start, end)
        for t in range(0, 50):
            assert sum(_predicates(window, t)) == 1, (start, end, t)


def test_window_phase() -> None:
    window = TimelockWindow(10, 20)
    assert window.phase(9) is WindowPhase.PENDING
    assert window.phase(10) is WindowPhase.OPEN
    assert window.phase(20) is WindowPhase.OPEN
    assert window.phase(21) is WindowPhase.EXPIRED


def test_zero_length_window_is_open_at_its_instant() -> None:
    window = TimelockWindow(7, 7)
    assert window.is_active(7)
    assert window.is_expired(8)
    assert window.is_before_start(6)


def test_window_start_after_end_rejected() -> None:
    with pytest.raises(HtlcError) as exc:
        TimelockWindow(2000, 1000)
    assert exc.value.code == ErrorCode.INVALID_PARAMETERS


def test_window_negative_bounds_rejected() -> None:
    with pytest.raises(HtlcError) as exc:
        TimelockWindow(-1, 10)
    assert exc.value.code == ErrorCode.INVALID_PARAMETERS


@pytest.mark.parametrize("start,end", [(1000, 2000.5), (1000.0, 2000), (False, 10), ("1000", 2000)])
def test_window_non_integer_bounds_rejected(start, end) -> None:
    with pytest.raises(HtlcError) as exc:
        TimelockWindow(start, end)
    assert exc.value.code == ErrorCode.INVALID_PARAMETERS


def test_window_vectors(vector_test_group) -> None:
    window = TimelockWindow(1000, 2000)
    for t in (999, 1000, 2000, 2001):
        vector_test_group(
            "timelock/window.json",
            {
                "name": f"window_1000_2000_at_{t}",
                "input": {"start": 1000, "end": 2000, "now": t},
                "expected": {"phase": window.phase(t).value},
            },
        )
