"""Caller authentication collaborators."""

from __future__ import annotations

from typing import Protocol

from .errors import ErrorCode, HtlcError
from .types import Address, Principal


class Authenticator(Protocol):
    def require_authenticated(self, principal: Principal, identity: Address) -> None:
        """Raise ``HtlcError(UNAUTHORIZED)`` unless ``principal`` is ``identity``."""
        ...


class PrincipalAuthenticator:
    """Trusts the principal's address, which an outer layer has already verified."""

    def require_authenticated(self, principal: Principal, identity: Address) -> None:
        if principal.address != identity:
            raise HtlcError(ErrorCode.UNAUTHORIZED, "caller is not the required principal")


class PermissiveAuthenticator:
    """Accepts every caller. Test double only."""

    def require_authenticated(self, principal: Principal, identity: Address) -> None:
        return None
