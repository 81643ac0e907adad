"""
Conformance report aggregation and output.
"""

import json
import os
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from comparator import ComparisonResult, Divergence


@dataclass
class VectorResult:
    vector_name: str
    passed: bool
    execution_time_ms: float
    comparison: Optional[ComparisonResult] = None
    error: Optional[str] = None
    skipped: bool = False

    @property
    def failed(self) -> bool:
        return not self.passed and not self.skipped


@dataclass
class SuiteResult:
    """Outcome of one vector file. Counts are derived from ``results``."""
    suite_name: str
    results: List[VectorResult] = field(default_factory=list)
    execution_time_ms: float = 0.0

    @property
    def skipped_tests(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def total_tests(self) -> int:
        return len(self.results) - self.skipped_tests

    @property
    def passed_tests(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed_tests(self) -> int:
        return sum(1 for r in self.results if r.failed)

    @property
    def pass_rate(self) -> float:
        if self.total_tests == 0:
            return 0.0
        return self.passed_tests / self.total_tests * 100


@dataclass
class ConformanceReport:
    timestamp: str
    engine: str
    hash_algorithm: str
    execution_time_ms: float
    suites: List[SuiteResult]

    @property
    def total_tests(self) -> int:
        return sum(s.total_tests for s in self.suites)

    @property
    def total_passed(self) -> int:
        return sum(s.passed_tests for s in self.suites)

    @property
    def total_failed(self) -> int:
        return sum(s.failed_tests for s in self.suites)

    @property
    def total_skipped(self) -> int:
        return sum(s.skipped_tests for s in self.suites)

    @property
    def divergences(self) -> List[Divergence]:
        return [
            d
            for s in self.suites
            for r in s.results
            if r.comparison is not None
            for d in r.comparison.divergences
        ]

    @property
    def passed(self) -> bool:
        return self.total_failed == 0


class ReportGenerator:
    """Writes a JSON report and a plain-text summary into ``result_dir``."""

    def __init__(self, result_dir: str):
        self.result_dir = result_dir

    def generate_report(
        self,
        suites: List[SuiteResult],
        engine: str,
        hash_algorithm: str,
        execution_time_ms: float,
    ) -> ConformanceReport:
        return ConformanceReport(
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            engine=engine,
            hash_algorithm=hash_algorithm,
            execution_time_ms=execution_time_ms,
            suites=suites,
        )

    def report_to_dict(self, report: ConformanceReport) -> Dict[str, Any]:
        return {
            "timestamp": report.timestamp,
            "engine": report.engine,
            "hash_algorithm": report.hash_algorithm,
            "execution_time_ms": report.execution_time_ms,
            "totals": {
                "suites": len(report.suites),
                "tests": report.total_tests,
                "passed": report.total_passed,
                "failed": report.total_failed,
                "skipped": report.total_skipped,
                "divergences": len(report.divergences),
            },
            "divergences_by_field": dict(Counter(d.field for d in report.divergences)),
            "suites": [
                {
                    "suite_name": s.suite_name,
                    "total_tests": s.total_tests,
                    "passed_tests": s.passed_tests,
                    "failed_tests": s.failed_tests,
                    "skipped_tests": s.skipped_tests,
                    "pass_rate": s.pass_rate,
                    "failures": [
                        {"vector_name": r.vector_name, "error": r.error}
                        for r in s.results
                        if r.failed
                    ],
                }
                for s in report.suites
            ],
            "divergences": [asdict(d) for d in report.divergences],
        }

    def write_json_report(self, report: ConformanceReport, filename: str = "conformance-report.json") -> str:
        os.makedirs(self.result_dir, exist_ok=True)
        path = os.path.join(self.result_dir, filename)
        with open(path, "w") as f:
            json.dump(self.report_to_dict(report), f, indent=2, default=str)
        return path

    def summary_lines(self, report: ConformanceReport) -> List[str]:
        rate = report.total_passed / max(report.total_tests, 1) * 100
        lines = [
            "=" * 60,
            f"HTLC conformance: {report.engine} ({report.hash_algorithm})",
            f"{report.timestamp}  {report.execution_time_ms:.2f}ms",
            "=" * 60,
            f"passed {report.total_passed}/{report.total_tests} ({rate:.1f}%), "
            f"failed {report.total_failed}, skipped {report.total_skipped}",
            "",
        ]
        for suite in report.suites:
            mark = "PASS" if suite.failed_tests == 0 else "FAIL"
            lines.append(f"  [{mark}] {suite.suite_name}: {suite.passed_tests}/{suite.total_tests}")
            for r in suite.results:
                if not r.failed:
                    continue
                if r.error:
                    lines.append(f"      {r.vector_name}: error: {r.error}")
                    continue
                for d in r.comparison.divergences:
                    lines.append(f"      {r.vector_name}: {d.field}: {d.details or ''}".rstrip())
                    lines.append(f"        expected {d.expected!r}")
                    lines.append(f"        actual   {d.actual!r}")
        lines.append("")
        lines.append(f"Overall: {'PASSED' if report.passed else 'FAILED'}")
        return lines

    def write_summary(self, report: ConformanceReport, filename: str = "conformance-summary.txt") -> str:
        os.makedirs(self.result_dir, exist_ok=True)
        path = os.path.join(self.result_dir, filename)
        with open(path, "w") as f:
            f.write("\n".join(self.summary_lines(report)) + "\n")
        return path

    def print_summary(self, report: ConformanceReport) -> None:
        print("\n".join(self.summary_lines(report)))
