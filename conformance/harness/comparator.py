"""
Outcome comparison between a recorded vector and the escrow engine.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Outcome fields in the order they are reported.
OUTCOME_FIELDS = ("success", "error_code", "state_digest", "events")


@dataclass
class Divergence:
    """One outcome field on which the engine disagrees with the vector."""
    vector_name: str
    field: str
    expected: Any
    actual: Any
    details: Optional[str] = None


@dataclass
class ComparisonResult:
    engine: str
    divergences: List[Divergence] = field(default_factory=list)

    @property
    def has_divergences(self) -> bool:
        return bool(self.divergences)

    @property
    def success(self) -> bool:
        return not self.divergences

    def fields(self) -> List[str]:
        return [d.field for d in self.divergences]


def _error_details(expected: int, actual: int) -> str:
    return f"Error code mismatch: expected 0x{expected:04x}, got 0x{actual:04x}"


def _event_details(expected: List[Dict[str, Any]], actual: List[Dict[str, Any]]) -> str:
    if len(expected) != len(actual):
        return f"Expected {len(expected)} events, engine emitted {len(actual)}"
    for index, (want, got) in enumerate(zip(expected, actual)):
        if want != got:
            keys = sorted(k for k in set(want) | set(got) if want.get(k) != got.get(k))
            return f"Event {index} ({want.get('topic')}) differs in: {', '.join(keys)}"
    return "Emitted events differ"


class ResultComparator:
    """Checks an engine outcome against the ``expected`` block of a vector.

    Fields missing from the vector are not compared, so vectors recorded
    before events were captured still replay.
    """

    def __init__(self, engine: str = "htlc-python"):
        self.engine = engine

    def compare(
        self,
        expected: Dict[str, Any],
        actual: Dict[str, Any],
        vector_name: str,
    ) -> ComparisonResult:
        result = ComparisonResult(engine=self.engine)
        for name in OUTCOME_FIELDS:
            if name not in expected:
                continue
            want = expected[name]
            got = actual.get(name)
            if name == "state_digest" and not want:
                continue
            if want == got:
                continue

            details = None
            if name == "error_code":
                details = _error_details(int(want), int(got or 0))
            elif name == "state_digest":
                details = "State digest mismatch after execution"
            elif name == "events":
                details = _event_details(want or [], got or [])
            result.divergences.append(
                Divergence(vector_name=vector_name, field=name, expected=want, actual=got, details=details)
            )
        return result
