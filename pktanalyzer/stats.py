"""Per-run throughput results, medians and persistent-regression analysis."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Iterable, Sequence, Tuple

from pktanalyzer.metrics import MetricsSnapshot

REGRESSION_THRESHOLD_DEFAULT = 0.10
_MIN_ELAPSED_SEC = 0.001
_RULE = "=" * 80
_THIN_RULE = "-" * 80


class ExitCode(IntEnum):
    """Process exit codes of the analyzer."""

    SUCCESS = 0
    ERROR = 1
    REGRESSION = 2
    INSUFFICIENT_SAMPLE = 3
    CONFIG_MISMATCH = 4


@dataclass(frozen=True)
class RunResult:
    """Throughput and latency of one measurement run."""

    pps: float = 0.0
    mbps: float = 0.0
    p95_ns: int = 0
    pkts_processed: int = 0
    bytes_processed: int = 0
    capture_elapsed_sec: float = 0.0
    pps_regressed: bool = False
    mbps_regressed: bool = False


@dataclass(frozen=True)
class RegressionSummary:
    """Outcome of comparing every run, and the medians, with a baseline."""

    baseline_pps: float
    baseline_mbps: float
    threshold: float
    runs: Tuple[RunResult, ...]
    pps_deltas: Tuple[float, ...]
    mbps_deltas: Tuple[float, ...]
    median_pps: float
    median_mbps: float
    median_pps_delta: float
    median_mbps_delta: float
    median_pps_regressed: bool
    median_mbps_regressed: bool
    pps_regressed_count: int
    mbps_regressed_count: int
    min_regressed_runs: int

    @property
    def num_runs(self) -> int:
        return len(self.runs)

    @property
    def pps_persistent(self) -> bool:
        return self.pps_regressed_count >= self.min_regressed_runs

    @property
    def mbps_persistent(self) -> bool:
        return self.mbps_regressed_count >= self.min_regressed_runs

    @property
    def any_persistent(self) -> bool:
        return self.pps_persistent or self.mbps_persistent


def median(values: Iterable[float]) -> float:
    """Median of the values; 0.0 when there are none."""
    ordered = sorted(values)
    n = len(ordered)
    if n == 0:
        return 0.0
    mid = n // 2
    if n % 2 == 1:
        return float(ordered[mid])
    return (ordered[mid - 1] + ordered[mid]) / 2.0


def median_int(values: Iterable[int]) -> int:
    """Integer median of the values, truncating the mean of the middle pair; 0 when empty."""
    ordered = sorted(values)
    n = len(ordered)
    if n == 0:
        return 0
    mid = n // 2
    if n % 2 == 1:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) // 2


def run_result_from_snapshot(snapshot: MetricsSnapshot) -> RunResult:
    """Derive a run's throughput figures from its final snapshot.

    The capture time is clamped to at least one millisecond; Mbps here is
    megabits per second.
    """
    elapsed = max(snapshot.capture_elapsed_sec, _MIN_ELAPSED_SEC)
    return RunResult(
        pps=snapshot.pkts_processed / elapsed,
        mbps=(snapshot.bytes_processed * 8.0) / (elapsed * 1_000_000.0),
        p95_ns=snapshot.percentile_ns(95.0),
        pkts_processed=snapshot.pkts_processed,
        bytes_processed=snapshot.bytes_processed,
        capture_elapsed_sec=elapsed,
    )


def run_json_path(path: str, run_number: int) -> str:
    """Path of a per-run JSON file: the run number goes before the last dot."""
    dot = path.rfind(".")
    if dot < 0:
        return f"{path}_run{run_number}"
    return f"{path[:dot]}_run{run_number}{path[dot:]}"


def min_regressed_runs(num_runs: int) -> int:
    """Runs that must regress for a regression to count as persistent (ceil of 60%)."""
    return max(1, (num_runs * 3 + 4) // 5)


def _relative_delta(current: float, baseline: float) -> float:
    if baseline == 0:
        difference = current - baseline
        if difference == 0 or math.isnan(difference):
            return math.nan
        return math.copysign(math.inf, difference)
    return (current - baseline) / baseline


def analyze_runs(
    runs: Sequence[RunResult],
    baseline_pps: float,
    baseline_mbps: float,
    threshold: float = REGRESSION_THRESHOLD_DEFAULT,
) -> RegressionSummary:
    """Flag each run whose throughput fell more than threshold below the baseline."""
    runs = list(runs)
    if not runs:
        raise ValueError("at least one run is required")

    flagged = []
    pps_deltas = []
    mbps_deltas = []
    for run in runs:
        pps_delta = _relative_delta(run.pps, baseline_pps)
        mbps_delta = _relative_delta(run.mbps, baseline_mbps)
        pps_deltas.append(pps_delta)
        mbps_deltas.append(mbps_delta)
        flagged.append(
            replace(
                run,
                pps_regressed=pps_delta < -threshold,
                mbps_regressed=mbps_delta < -threshold,
            )
        )

    median_pps = median(run.pps for run in runs)
    median_mbps = median(run.mbps for run in runs)
    median_pps_delta = _relative_delta(median_pps, baseline_pps)
    median_mbps_delta = _relative_delta(median_mbps, baseline_mbps)

    return RegressionSummary(
        baseline_pps=baseline_pps,
        baseline_mbps=baseline_mbps,
        threshold=threshold,
        runs=tuple(flagged),
        pps_deltas=tuple(pps_deltas),
        mbps_deltas=tuple(mbps_deltas),
        median_pps=median_pps,
        median_mbps=median_mbps,
        median_pps_delta=median_pps_delta,
        median_mbps_delta=median_mbps_delta,
        median_pps_regressed=median_pps_delta < -threshold,
        median_mbps_regressed=median_mbps_delta < -threshold,
        pps_regressed_count=sum(run.pps_regressed for run in flagged),
        mbps_regressed_count=sum(run.mbps_regressed for run in flagged),
        min_regressed_runs=min_regressed_runs(len(runs)),
    )


def format_summary_table(summary: RegressionSummary) -> str:
    """The regression comparison table printed at the end of a run."""
    n = summary.num_runs
    pps_status = "REGRESSION" if summary.pps_persistent else "OK"
    mbps_status = "REGRESSION" if summary.mbps_persistent else "OK"
    if summary.any_persistent:
        result = (
            "RESULT: PERFORMANCE REGRESSION DETECTED "
            f"(persistent across >= {summary.min_regressed_runs} runs)"
        )
    else:
        result = "RESULT: ALL METRICS WITHIN THRESHOLD (or not persistent)"
    lines = [
        "",
        _RULE,
        f"REGRESSION COMPARISON RESULTS (threshold: {summary.threshold * 100:.1f}%)",
        _RULE,
        "Metric    Baseline      Median        Delta     Runs Regressed  Status",
        _THIN_RULE,
        f"PPS       {summary.baseline_pps:10.2f}    {summary.median_pps:10.2f}    "
        f"{summary.median_pps_delta * 100:+6.1f}%    "
        f"{summary.pps_regressed_count}/{n}             {pps_status}",
        f"Mbps      {summary.baseline_mbps:10.4f}    {summary.median_mbps:10.4f}    "
        f"{summary.median_mbps_delta * 100:+6.1f}%    "
        f"{summary.mbps_regressed_count}/{n}             {mbps_status}",
        _RULE,
        result,
        _RULE,
        "",
    ]
    return "\n".join(lines) + "\n"