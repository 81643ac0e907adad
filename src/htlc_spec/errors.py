"""HTLC escrow error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    SUCCESS = 0x00
    VALIDATION = 0x01
    AUTHORIZATION = 0x02
    RESOURCE = 0x03
    STATE = 0x04
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Validation
    INVALID_PARAMETERS = 0x0100
    INVALID_SECRET = 0x0101
    WINDOW_VIOLATION = 0x0102

    # Authorization
    UNAUTHORIZED = 0x0200

    # Resource
    TRANSFER_FAILED = 0x0300

    # State
    NOT_FOUND = 0x0400
    INVALID_STATE = 0x0401
    ESCROW_EXISTS = 0x0402
    TOKEN_NOT_FOUND = 0x0403
    TOKEN_EXISTS = 0x0404

    # Internal
    INTERNAL_ERROR = 0xFF00

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


@dataclass(frozen=True)
class HtlcError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__", "__notes__"))
_frozen_setattr = HtlcError.__setattr__


def _htlc_error_setattr(self: HtlcError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


HtlcError.__setattr__ = _htlc_error_setattr  # type: ignore[method-assign]


class InvariantViolation(RuntimeError):
    """Storage no longer satisfies the escrow invariants.

    Raised for corruption such as a record stored without a status. Unlike
    ``HtlcError`` this is not a business outcome and is never converted into
    a failed ``TransitionResult``.
    """
