#!/usr/bin/env python3
"""
HTLC Conformance Test Runner

Replays YAML vector files against the Python escrow engine and reports any
divergence from the recorded expectations.
"""

import glob
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import yaml

ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from comparator import ResultComparator  # noqa: E402
from config import HarnessConfig  # noqa: E402
from reporter import ConformanceReport, ReportGenerator, SuiteResult, VectorResult  # noqa: E402

from htlc_spec.config import Settings  # noqa: E402
from htlc_spec.errors import ErrorCode, InvariantViolation  # noqa: E402
from htlc_spec.hashlock import HashAlgorithm  # noqa: E402
from htlc_spec.state_digest import compute_state_digest  # noqa: E402
from htlc_spec.state_transition import apply_action  # noqa: E402
from fixtures_io import action_from_json, events_to_json, state_from_json, state_to_json  # noqa: E402

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return (time.time() - start) * 1000


class ConformanceHarness:
    """Replays action vectors through ``apply_action`` and compares outcomes."""

    def __init__(self, config: HarnessConfig):
        self.config = config
        self.algorithm = HashAlgorithm.parse(config.hash_algorithm)
        self.comparator = ResultComparator(engine=config.engine_name)
        self.reporter = ReportGenerator(config.result_dir)

    def execute(self, vector: Dict[str, Any]) -> Dict[str, Any]:
        """Run the vector's action through the engine and summarize the outcome."""
        pre_state = state_from_json(vector.get("pre_state") or {})
        action = action_from_json(vector["input"]["action"])
        post_state, result = apply_action(pre_state, action, self.algorithm)
        return {
            "success": result.ok,
            "error_code": int(result.error.code) if result.error else int(ErrorCode.SUCCESS),
            "state_digest": compute_state_digest(state_to_json(post_state)),
            "events": events_to_json(result.events),
        }

    def run_vector(self, vector: Dict[str, Any]) -> VectorResult:
        """Run a single vector. Vectors that carry no action are skipped."""
        name = vector.get("name", "unknown")
        kind = (vector.get("input") or {}).get("kind")
        if vector.get("runnable") is False or kind != "action":
            logger.debug(f"Skipping non-action vector {name}")
            return VectorResult(vector_name=name, passed=False, execution_time_ms=0.0, skipped=True)

        start = time.time()
        try:
            actual = self.execute(vector)
        except (KeyError, ValueError, InvariantViolation) as e:
            logger.exception(f"Error running vector {name}")
            return VectorResult(vector_name=name, passed=False, execution_time_ms=_elapsed_ms(start), error=str(e))

        comparison = self.comparator.compare(vector.get("expected", {}), actual, name)
        for d in comparison.divergences:
            logger.debug(f"{name}: {d.field} expected={d.expected!r} actual={d.actual!r}")
        return VectorResult(
            vector_name=name,
            passed=comparison.success,
            execution_time_ms=_elapsed_ms(start),
            comparison=comparison,
        )

    def run_suite(self, suite_path: str) -> SuiteResult:
        """Run every vector in one YAML file."""
        suite = SuiteResult(suite_name=Path(suite_path).stem)
        logger.info(f"Running suite: {suite.suite_name}")
        start = time.time()

        with open(suite_path) as f:
            data = yaml.safe_load(f) or {}

        for vector in data.get("test_vectors", []):
            result = self.run_vector(vector)
            suite.results.append(result)

            status = "SKIP" if result.skipped else ("PASS" if result.passed else "FAIL")
            logger.info(f"  [{status}] {result.vector_name}")
            if result.failed and self.config.stop_on_first_failure:
                break

        suite.execution_time_ms = _elapsed_ms(start)
        return suite

    def run_all(self, vector_paths: List[str]) -> ConformanceReport:
        start = time.time()
        suites = []
        for path in vector_paths:
            suite = self.run_suite(path)
            suites.append(suite)
            if suite.failed_tests and self.config.stop_on_first_failure:
                break

        return self.reporter.generate_report(
            suites=suites,
            engine=self.config.engine_name,
            hash_algorithm=self.algorithm.value,
            execution_time_ms=_elapsed_ms(start),
        )


def find_vector_files(vector_dir: str) -> List[str]:
    """Find all vector YAML files in directory."""
    patterns = [
        os.path.join(vector_dir, "**", "*.yaml"),
        os.path.join(vector_dir, "**", "*.yml"),
    ]

    files = []
    for pattern in patterns:
        files.extend(glob.glob(pattern, recursive=True))

    return sorted(files)


@click.command()
@click.option(
    "--vectors",
    default=None,
    help="Path to vectors directory or specific YAML file",
)
@click.option(
    "--result-dir",
    default=None,
    help="Directory to write results",
)
@click.option(
    "--hash-algorithm",
    type=click.Choice([a.value for a in HashAlgorithm]),
    default=None,
    help="Hashlock algorithm the vectors were generated with",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--stop-on-failure",
    is_flag=True,
    help="Stop on first test failure",
)
def main(
    vectors: Optional[str],
    result_dir: Optional[str],
    hash_algorithm: Optional[str],
    verbose: bool,
    stop_on_failure: bool,
) -> None:
    """Run HTLC conformance tests."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    # Load config from environment, then override with CLI args
    config = HarnessConfig.from_env()

    if result_dir:
        config.result_dir = result_dir
    if hash_algorithm:
        config.hash_algorithm = hash_algorithm
    if verbose or config.verbose or settings.verbose:
        config.verbose = True
        logging.getLogger().setLevel(logging.DEBUG)
    if stop_on_failure:
        config.stop_on_first_failure = True

    vector_dir = vectors or config.vector_dir
    if os.path.isfile(vector_dir):
        vector_files = [vector_dir]
    else:
        vector_files = find_vector_files(vector_dir)

    if not vector_files:
        logger.error(f"No vector files found in {vector_dir}")
        sys.exit(1)

    logger.info(f"Found {len(vector_files)} vector files")

    harness = ConformanceHarness(config)
    report = harness.run_all(vector_files)

    harness.reporter.write_json_report(report)
    harness.reporter.write_summary(report)
    harness.reporter.print_summary(report)

    sys.exit(0 if report.total_failed == 0 else 1)


if __name__ == "__main__":
    main()
