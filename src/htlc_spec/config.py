"""HTLC escrow configuration constants and runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

# Hashing
HASH_SIZE = 32
MAX_SECRET_SIZE = 4096
DEFAULT_HASH_ALGORITHM = "blake3"

# Domain separation tags
ESCROW_ID_DOMAIN = b"htlc-spec/escrow-id/v1"
CUSTODY_DOMAIN = b"htlc-spec/custody/v1"
ACCOUNT_DOMAIN = b"htlc-spec/account/v1"

# Integer bounds
U64_MAX = (1 << 64) - 1
I128_MAX = (1 << 127) - 1

# Token metadata limits
MAX_TOKEN_NAME_LEN = 64
MAX_TOKEN_SYMBOL_LEN = 12
MAX_TOKEN_DECIMALS = 18

# Event topics
TOPIC_ESCROW_CREATED = "escrow_created"
TOPIC_ESCROW_WITHDRAWN = "escrow_withdrawn"
TOPIC_ESCROW_CANCELLED = "escrow_cancelled"

_TRUE_VALUES = ("true", "1", "yes")


@dataclass
class Settings:
    """Runtime settings for an escrow engine deployment."""

    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    log_level: str = "INFO"
    store_path: Optional[str] = None
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from ``HTLC_*`` environment variables."""
        settings = cls()
        settings.hash_algorithm = os.environ.get(
            "HTLC_HASH_ALGORITHM", DEFAULT_HASH_ALGORITHM
        ).lower()
        settings.log_level = os.environ.get("HTLC_LOG_LEVEL", "INFO").upper()
        settings.store_path = os.environ.get("HTLC_STORE_PATH") or None
        settings.verbose = os.environ.get("HTLC_VERBOSE", "").lower() in _TRUE_VALUES
        return settings
