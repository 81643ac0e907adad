"""
Harness configuration, read from the environment and overridden by CLI flags.
"""

import os
from dataclasses import dataclass


def _flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("true", "1", "yes")


@dataclass
class HarnessConfig:
    vector_dir: str = "vectors"
    result_dir: str = "conformance/results"

    # Engine under test
    engine_name: str = "htlc-python"
    hash_algorithm: str = "blake3"

    stop_on_first_failure: bool = False
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Build a config from VECTOR_DIR, RESULT_DIR, HTLC_HASH_ALGORITHM and flags."""
        defaults = cls()
        return cls(
            vector_dir=os.environ.get("VECTOR_DIR", defaults.vector_dir),
            result_dir=os.environ.get("RESULT_DIR", defaults.result_dir),
            engine_name=os.environ.get("HTLC_ENGINE_NAME", defaults.engine_name),
            hash_algorithm=os.environ.get("HTLC_HASH_ALGORITHM", defaults.hash_algorithm).lower(),
            stop_on_first_failure=_flag("STOP_ON_FIRST_FAILURE"),
            verbose=_flag("VERBOSE"),
        )
