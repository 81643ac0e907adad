"""Deterministic test accounts.

Addresses are derived from names alone, and collected for output to
vectors/accounts.json.
"""

from __future__ import annotations

from blake3 import blake3

from htlc_spec.config import ACCOUNT_DOMAIN
from htlc_spec.test_accounts import ALICE, BOB, NAME_MAP, NAMES, derive_address


def test_accounts_deterministic(vector_test_group) -> None:
    assert ALICE == blake3(ACCOUNT_DOMAIN + b"alice").digest()
    assert derive_address("BOB") == BOB
    assert len(set(NAME_MAP)) == len(NAMES)
    for name in NAMES:
        address = derive_address(name)
        assert len(address) == 32
        assert NAME_MAP[address] == name
        vector_test_group("accounts.json", {"name": name, "address": address.hex()})
