"""Timelock window predicates.

A window ``[start, end]`` splits the timeline into three disjoint phases:

    PENDING   t <  start
    OPEN      start <= t <= end   (taker may withdraw)
    EXPIRED   t >  end            (maker may cancel)

``end`` belongs to OPEN, so withdrawal and cancellation are adjacent with no
overlap and no gap.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .config import U64_MAX
from .errors import ErrorCode, HtlcError


class WindowPhase(Enum):
    PENDING = "pending"
    OPEN = "open"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TimelockWindow:
    start: int
    end: int

    def __post_init__(self) -> None:
        for bound in (self.start, self.end):
            if not isinstance(bound, int) or isinstance(bound, bool):
                raise HtlcError(ErrorCode.INVALID_PARAMETERS, "timelock bounds must be integers")
        if self.start < 0 or self.end < 0:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, "timelock bounds must be >= 0")
        if self.start > U64_MAX or self.end > U64_MAX:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, "timelock bounds exceed u64 max")
        if self.start > self.end:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, "timelock_start must be <= timelock_end")

    def is_before_start(self, now: int) -> bool:
        return now < self.start

    def is_active(self, now: int) -> bool:
        return self.start <= now <= self.end

    def is_expired(self, now: int) -> bool:
        return now > self.end

    def phase(self, now: int) -> WindowPhase:
        if self.is_before_start(now):
            return WindowPhase.PENDING
        if self.is_expired(now):
            return WindowPhase.EXPIRED
        return WindowPhase.OPEN
