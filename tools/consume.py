"""Replay generated fixtures against the escrow engine.

Each state case is re-run through ``apply_action``; the outcome, the post-state
digest and the emitted events must all match what was recorded.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from htlc_spec.state_digest import compute_state_digest  # noqa: E402
from htlc_spec.state_transition import apply_action  # noqa: E402
from fixtures_io import action_from_json, events_to_json, state_from_json, state_to_json  # noqa: E402


def _case_failure(case: dict) -> str | None:
    post_state, result = apply_action(
        state_from_json(case["pre_state"]), action_from_json(case["action"])
    )
    expected = case["expected"]

    if result.ok != expected["ok"]:
        return "ok_mismatch"
    actual_err = result.error.code.name if result.error else None
    if actual_err != expected["error"]:
        return "error_mismatch"
    if compute_state_digest(state_to_json(post_state)) != compute_state_digest(expected["post_state"]):
        return "state_mismatch"
    if events_to_json(result.events) != expected.get("events", []):
        return "events_mismatch"
    return None


def check_state_cases(data: dict) -> list[str]:
    failures: list[str] = []
    for case in data.get("cases", []):
        reason = _case_failure(case)
        if reason:
            failures.append(f"{case['name']}: {reason}")
    return failures


def check_fixture_dir(fixtures: Path) -> list[str]:
    failures: list[str] = []
    for path in sorted(fixtures.rglob("*.json")):
        data = json.loads(path.read_text())
        if "cases" not in data:
            continue
        rel = path.relative_to(fixtures)
        failures.extend(f"{rel}: {f}" for f in check_state_cases(data))
    return failures


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay state fixtures")
    parser.add_argument("--fixtures", default=str(ROOT / "fixtures"))
    args = parser.parse_args()

    fixtures = Path(args.fixtures)
    if not fixtures.exists():
        raise SystemExit(f"fixtures dir not found: {fixtures}")

    failures = check_fixture_dir(fixtures)
    if failures:
        for f in failures:
            print("FAIL", f)
        raise SystemExit(1)

    print("All fixtures passed")


if __name__ == "__main__":
    main()
