"""Regenerate fixtures by running the test suite with ``--output``.

Extra arguments are passed through to pytest, e.g. ``fill.py -k escrow``.
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
OUT = ROOT / "fixtures"


def build_command(extra: list[str]) -> list[str]:
    return [sys.executable, "-m", "pytest", str(ROOT / "tests"), "-q", "--output", str(OUT), *extra]


def main(argv: list[str] | None = None) -> int:
    env = dict(os.environ)
    # tools/ is imported as a package by the test suite
    env["PYTHONPATH"] = os.pathsep.join([str(ROOT / "src"), str(ROOT)])

    cmd = build_command(sys.argv[1:] if argv is None else argv)
    print("Running:", " ".join(cmd))
    return subprocess.call(cmd, env=env, cwd=str(ROOT))


if __name__ == "__main__":
    raise SystemExit(main())
