"""Asset ledger collaborator and an in-memory token ledger.

The escrow engine only needs ``transfer`` and ``balance``. ``TokenLedger``
additionally implements the small token contract used to fund swaps in tests
and fixtures: one-time initialization with metadata, admin-only minting and
total supply tracking.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Protocol

from blake3 import blake3

from .config import (
    CUSTODY_DOMAIN,
    I128_MAX,
    MAX_TOKEN_DECIMALS,
    MAX_TOKEN_NAME_LEN,
    MAX_TOKEN_SYMBOL_LEN,
)
from .errors import ErrorCode, HtlcError
from .types import Address, Principal, TokenInfo

logger = logging.getLogger(__name__)


def custody_address(tag: bytes = b"") -> Address:
    """Deterministic address that holds escrowed funds."""
    return blake3(CUSTODY_DOMAIN + tag).digest()


class AssetLedger(Protocol):
    def transfer(self, asset: Address, source: Address, destination: Address, amount: int) -> None: ...

    def balance(self, asset: Address, holder: Address) -> int: ...


class TokenLedger:
    def __init__(
        self,
        tokens: Optional[dict[Address, TokenInfo]] = None,
        balances: Optional[dict[Address, dict[Address, int]]] = None,
    ) -> None:
        self.tokens: dict[Address, TokenInfo] = tokens if tokens is not None else {}
        self.balances: dict[Address, dict[Address, int]] = balances if balances is not None else {}
        self._lock = threading.RLock()

    # --- token contract ---

    def initialize(
        self,
        asset: Address,
        admin: Address,
        name: str,
        symbol: str,
        decimals: int,
    ) -> TokenInfo:
        if not name or len(name) > MAX_TOKEN_NAME_LEN:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, "invalid token name")
        if not symbol or len(symbol) > MAX_TOKEN_SYMBOL_LEN:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, "invalid token symbol")
        if decimals < 0 or decimals > MAX_TOKEN_DECIMALS:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, "invalid token decimals")
        with self._lock:
            if asset in self.tokens:
                raise HtlcError(ErrorCode.TOKEN_EXISTS, "token already initialized")
            info = TokenInfo(admin=admin, name=name, symbol=symbol, decimals=decimals)
            self.tokens[asset] = info
            self.balances.setdefault(asset, {})
        logger.info("initialized token %s (%s)", symbol, asset.hex())
        return info

    def token_info(self, asset: Address) -> Optional[TokenInfo]:
        return self.tokens.get(asset)

    def total_supply(self, asset: Address) -> int:
        info = self.tokens.get(asset)
        return info.total_supply if info is not None else 0

    def mint(self, caller: Principal, asset: Address, to: Address, amount: int) -> None:
        if amount <= 0:
            raise HtlcError(ErrorCode.INVALID_PARAMETERS, "mint amount must be > 0")
        with self._lock:
            info = self.tokens.get(asset)
            if info is None:
                raise HtlcError(ErrorCode.TOKEN_NOT_FOUND, "token not initialized")
            if caller.address != info.admin:
                raise HtlcError(ErrorCode.UNAUTHORIZED, "only the token admin can mint")
            if info.total_supply + amount > I128_MAX:
                raise HtlcError(ErrorCode.INVALID_PARAMETERS, "total supply overflow")
            holders = self.balances.setdefault(asset, {})
            holders[to] = holders.get(to, 0) + amount
            info.total_supply += amount
        logger.debug("minted %d of %s to %s", amount, asset.hex(), to.hex())

    # --- ledger interface ---

    def balance(self, asset: Address, holder: Address) -> int:
        return self.balances.get(asset, {}).get(holder, 0)

    def transfer(self, asset: Address, source: Address, destination: Address, amount: int) -> None:
        if amount <= 0:
            raise HtlcError(ErrorCode.TRANSFER_FAILED, "transfer amount must be > 0")
        with self._lock:
            if asset not in self.tokens:
                raise HtlcError(ErrorCode.TRANSFER_FAILED, f"unknown asset {asset.hex()}")
            holders = self.balances.setdefault(asset, {})
            source_balance = holders.get(source, 0)
            if source_balance < amount:
                raise HtlcError(ErrorCode.TRANSFER_FAILED, "insufficient balance")
            if source != destination:
                destination_balance = holders.get(destination, 0)
                if destination_balance + amount > I128_MAX:
                    raise HtlcError(ErrorCode.TRANSFER_FAILED, "receiver balance overflow")
                holders[source] = source_balance - amount
                holders[destination] = destination_balance + amount
        logger.debug(
            "transferred %d of %s from %s to %s",
            amount,
            asset.hex(),
            source.hex(),
            destination.hex(),
        )
