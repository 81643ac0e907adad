"""Hashlock commitments.

A commitment is ``H(secret)`` for a 32-byte hash ``H``. BLAKE3 is the default,
matching every other hash in this package; SHA-256 is available for escrows
that must unlock with the same preimage as a Bitcoin ``OP_SHA256`` script.

Verification recomputes the commitment and compares with
``hmac.compare_digest`` so the comparison time does not depend on how many
leading bytes of a forged secret's digest happen to match.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from enum import Enum
from typing import Union

from blake3 import blake3

from .config import DEFAULT_HASH_ALGORITHM, HASH_SIZE, MAX_SECRET_SIZE
from .errors import ErrorCode, HtlcError

Secret = Union[bytes, str]


class HashAlgorithm(Enum):
    BLAKE3 = "blake3"
    SHA256 = "sha256"

    @classmethod
    def parse(cls, name: str) -> "HashAlgorithm":
        try:
            return cls(name.lower())
        except ValueError:
            raise HtlcError(
                ErrorCode.INVALID_PARAMETERS, f"unsupported hash algorithm: {name}"
            ) from None


def secret_bytes(secret: Secret) -> bytes:
    if isinstance(secret, str):
        return secret.encode("utf-8")
    if isinstance(secret, (bytes, bytearray, memoryview)):
        return bytes(secret)
    raise HtlcError(ErrorCode.INVALID_SECRET, "secret must be bytes or str")


def _digest(data: bytes, algorithm: HashAlgorithm) -> bytes:
    if algorithm is HashAlgorithm.SHA256:
        return hashlib.sha256(data).digest()
    return blake3(data).digest()


def commit(secret: Secret, algorithm: HashAlgorithm = HashAlgorithm.BLAKE3) -> bytes:
    data = secret_bytes(secret)
    if len(data) > MAX_SECRET_SIZE:
        raise HtlcError(ErrorCode.INVALID_SECRET, "secret too large")
    return _digest(data, algorithm)


def verify(
    commitment: bytes,
    candidate: Secret,
    algorithm: HashAlgorithm = HashAlgorithm.BLAKE3,
) -> bool:
    if not isinstance(commitment, (bytes, bytearray)) or len(commitment) != HASH_SIZE:
        return False
    try:
        data = secret_bytes(candidate)
    except HtlcError:
        return False
    if len(data) > MAX_SECRET_SIZE:
        return False
    return hmac.compare_digest(_digest(data, algorithm), bytes(commitment))


def generate_secret(size: int = 32) -> bytes:
    """Return a fresh random preimage suitable for a new swap."""
    if size <= 0 or size > MAX_SECRET_SIZE:
        raise HtlcError(ErrorCode.INVALID_PARAMETERS, "secret size out of range")
    return secrets.token_bytes(size)


class HashlockValidator:
    """Commit/verify pair bound to one hash algorithm."""

    def __init__(self, algorithm: Union[HashAlgorithm, str] = DEFAULT_HASH_ALGORITHM):
        if isinstance(algorithm, str):
            algorithm = HashAlgorithm.parse(algorithm)
        self.algorithm = algorithm

    def commit(self, secret: Secret) -> bytes:
        return commit(secret, self.algorithm)

    def verify(self, commitment: bytes, candidate: Secret) -> bool:
        return verify(commitment, candidate, self.algorithm)
