"""
Report generation for conformance runs.

Besides pass/fail counts the report tallies how the reference model resolved
each vector (success or a named error code) and which secrets ended up
published, since those are what the other leg of a swap acts on.
"""

import json
import os
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from htlc_spec.errors import ErrorCode

from .comparator import ComparisonResult, Divergence

OK = "OK"


def error_name(code: int) -> str:
    """Symbolic name for a result code; unknown codes render as hex."""
    if code == ErrorCode.SUCCESS:
        return OK
    try:
        return ErrorCode(code).name
    except ValueError:
        return f"0x{code:04x}"


@dataclass
class TestResult:
    """Result of a single test vector."""
    __test__ = False

    vector_name: str
    suite_name: str
    passed: bool
    execution_time_ms: float
    chain_kind: str = ""
    comparison: Optional[ComparisonResult] = None
    error: Optional[str] = None
    # Outcome on the reference model
    error_code: int = 0
    revealed_secrets: List[str] = field(default_factory=list)

    @property
    def outcome(self) -> str:
        return error_name(self.error_code)


@dataclass
class SuiteResult:
    suite_name: str
    total_tests: int
    passed_tests: int
    failed_tests: int
    skipped_tests: int
    execution_time_ms: float
    test_results: List[TestResult]

    @property
    def pass_rate(self) -> float:
        if self.total_tests == 0:
            return 0.0
        return self.passed_tests / self.total_tests * 100


@dataclass
class ConformanceReport:
    timestamp: str
    clients: List[str]
    reference_client: str
    total_suites: int
    total_tests: int
    total_passed: int
    total_failed: int
    execution_time_ms: float
    suite_results: List[SuiteResult]
    divergences: List[Divergence]
    # chain kind -> [passed, total]
    by_chain: Dict[str, List[int]] = field(default_factory=dict)
    # "OK" or error code name -> vectors resolved that way
    by_outcome: Dict[str, int] = field(default_factory=dict)
    # hex secrets published by any executed vector
    secrets: List[str] = field(default_factory=list)

    @property
    def total_divergences(self) -> int:
        return len(self.divergences)

    @property
    def pass_rate(self) -> float:
        return self.total_passed / max(self.total_tests, 1) * 100

    @property
    def failures(self) -> List[TestResult]:
        return [t for s in self.suite_results for t in s.test_results if not t.passed]


def _render(div: Divergence, value: Any) -> str:
    if div.field == "error_code" and isinstance(value, int):
        return error_name(value)
    return str(value)


class ReportGenerator:
    """Writes JSON and text reports for a conformance run."""

    def __init__(self, result_dir: str):
        self.result_dir = result_dir
        os.makedirs(result_dir, exist_ok=True)

    def generate_report(
        self,
        suite_results: List[SuiteResult],
        clients: List[str],
        reference_client: str,
        execution_time_ms: float,
    ) -> ConformanceReport:
        divergences: List[Divergence] = []
        by_chain: Dict[str, List[int]] = {}
        outcomes: Counter = Counter()
        secrets: List[str] = []
        for suite in suite_results:
            for test in suite.test_results:
                if test.comparison:
                    divergences.extend(test.comparison.divergences)
                counts = by_chain.setdefault(test.chain_kind or "unknown", [0, 0])
                counts[0] += int(test.passed)
                counts[1] += 1
                if test.error is None:
                    outcomes[test.outcome] += 1
                secrets.extend(s for s in test.revealed_secrets if s not in secrets)

        return ConformanceReport(
            timestamp=datetime.now(timezone.utc).isoformat(),
            clients=clients,
            reference_client=reference_client,
            total_suites=len(suite_results),
            total_tests=sum(s.total_tests for s in suite_results),
            total_passed=sum(s.passed_tests for s in suite_results),
            total_failed=sum(s.failed_tests for s in suite_results),
            execution_time_ms=execution_time_ms,
            suite_results=suite_results,
            divergences=divergences,
            by_chain=by_chain,
            by_outcome=dict(sorted(outcomes.items())),
            secrets=secrets,
        )

    def write_json_report(
        self,
        report: ConformanceReport,
        filename: str = "conformance-report.json",
    ) -> str:
        """Write report as JSON file and return its path."""
        path = os.path.join(self.result_dir, filename)
        with open(path, "w") as f:
            json.dump(self._report_to_dict(report), f, indent=2)
        return path

    def summary_lines(self, report: ConformanceReport) -> List[str]:
        lines = [
            "=" * 60,
            "HTLC Conformance Test Report",
            "=" * 60,
            f"Timestamp: {report.timestamp}",
            f"Clients: {', '.join(report.clients)}",
            f"Reference: {report.reference_client}",
            "",
            f"Passed {report.total_passed}/{report.total_tests} ({report.pass_rate:.1f}%), "
            f"{report.total_divergences} divergences, {report.execution_time_ms:.2f}ms",
            "",
            "By ledger:",
        ]
        lines.extend(f"  {chain}: {p}/{t}" for chain, (p, t) in sorted(report.by_chain.items()))

        lines.append("")
        lines.append("Reference outcomes:")
        lines.extend(f"  {name}: {count}" for name, count in report.by_outcome.items())
        lines.append(f"Secrets revealed: {len(report.secrets)}")

        lines.append("")
        lines.append("Suite Results:")
        for suite in report.suite_results:
            status = "PASS" if suite.failed_tests == 0 else "FAIL"
            lines.append(f"  [{status}] {suite.suite_name}: {suite.passed_tests}/{suite.total_tests}")

        if report.divergences:
            lines.append("")
            lines.append("Divergences:")
            for div in report.divergences:
                lines.append(f"  - {div.vector_name} ({div.field}):")
                lines.append(f"      {div.reference_client}: {_render(div, div.expected)}")
                lines.append(f"      {div.client}: {_render(div, div.actual)}")

        errored = [t for t in report.failures if t.error]
        if errored:
            lines.append("")
            lines.append("Errors:")
            lines.extend(f"  - {t.suite_name}/{t.vector_name}: {t.error}" for t in errored)

        lines.append("=" * 60)
        return lines

    def write_summary(
        self,
        report: ConformanceReport,
        filename: str = "conformance-summary.txt",
    ) -> str:
        path = os.path.join(self.result_dir, filename)
        with open(path, "w") as f:
            f.write("\n".join(self.summary_lines(report)))
        return path

    def print_summary(self, report: ConformanceReport) -> None:
        """Print the summary plus an overall verdict to the console."""
        print()
        print("\n".join(self.summary_lines(report)))
        print(f"Overall: {'PASSED' if report.total_failed == 0 else 'FAILED'}")

    def _report_to_dict(self, report: ConformanceReport) -> Dict[str, Any]:
        return {
            "timestamp": report.timestamp,
            "clients": report.clients,
            "reference_client": report.reference_client,
            "total_suites": report.total_suites,
            "total_tests": report.total_tests,
            "total_passed": report.total_passed,
            "total_failed": report.total_failed,
            "total_divergences": report.total_divergences,
            "execution_time_ms": report.execution_time_ms,
            "by_chain": {k: {"passed": v[0], "total": v[1]} for k, v in report.by_chain.items()},
            "by_outcome": report.by_outcome,
            "revealed_secrets": report.secrets,
            "suite_results": [
                {
                    "suite_name": s.suite_name,
                    "passed_tests": s.passed_tests,
                    "failed_tests": s.failed_tests,
                    "skipped_tests": s.skipped_tests,
                    "execution_time_ms": s.execution_time_ms,
                }
                for s in report.suite_results
            ],
            "failures": [
                {
                    "suite_name": t.suite_name,
                    "vector_name": t.vector_name,
                    "outcome": t.outcome,
                    "error": t.error,
                }
                for t in report.failures
            ],
            "divergences": [
                {
                    "vector_name": d.vector_name,
                    "field": d.field,
                    "expected": _render(d, d.expected),
                    "actual": _render(d, d.actual),
                    "client": d.client,
                    "reference_client": d.reference_client,
                    "details": d.details,
                }
                for d in report.divergences
            ],
        }
