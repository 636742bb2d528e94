"""
Optimization Results Data Structures.

This module defines data structures for recording and summarizing a run:
- EvaluationResult: Outcome of a single evaluator call
- ResultTracker: Append-only result log with a running best
- ProgressUpdate / ProgressReporter: Per-evaluation progress delivery
- OptimizationSummary: Compiled output of a finished run

Key Concepts:
- Completion order: results are kept in the order evaluations finished
- Running best: replaced only on strict improvement, so ties keep the
  earlier holder
- Improvement: percentage gain of the best score over the first score

Usage:
    tracker = ResultTracker()
    tracker.record(result)
    top = tracker.top_n(5)
    summary = compile_results(tracker, start_time, end_time)
    print(summary.format_report())
"""

import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from strategy_optimizer.optimization.parameter_space import ParameterSet

logger = logging.getLogger(__name__)

# Number of results reported in a compiled summary.
TOP_RESULTS_COUNT = 10


@dataclass(frozen=True)
class EvaluationResult:
    """
    Results from a single evaluation.

    Attributes:
        iteration: Sequence number within the run (0-based, completion order)
        parameters: Parameter values evaluated (owned copy)
        score: Fitness score returned by the evaluator
        metrics: Auxiliary measurements returned by the evaluator
        timestamp: When the evaluation completed
        phase: Name of the phase that requested the evaluation
    """
    iteration: int
    parameters: ParameterSet
    score: float
    metrics: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    phase: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "iteration": self.iteration,
            "parameters": dict(self.parameters),
            "score": self.score,
            "metrics": dict(self.metrics),
            "timestamp": self.timestamp.isoformat(),
            "phase": self.phase,
        }


class ResultTracker:
    """
    Append-only log of evaluation results with a monotonic best pointer.

    Only the run that owns the tracker writes to it.
    """

    def __init__(self):
        self._results: List[EvaluationResult] = []
        self._best: Optional[EvaluationResult] = None

    def __len__(self) -> int:
        return len(self._results)

    @property
    def results(self) -> List[EvaluationResult]:
        """Copy of all results in completion order."""
        return list(self._results)

    @property
    def best(self) -> Optional[EvaluationResult]:
        return self._best

    @property
    def first(self) -> Optional[EvaluationResult]:
        return self._results[0] if self._results else None

    def record(self, result: EvaluationResult) -> bool:
        """
        Append a result and update the best pointer.

        Returns:
            True if the result became the new best
        """
        self._results.append(result)

        if self._best is None or result.score > self._best.score:
            self._best = result
            return True
        return False

    def top_n(self, n: int = TOP_RESULTS_COUNT) -> List[EvaluationResult]:
        """
        Get the top N results by score.

        Sorting is stable, so equal scores keep completion order. The log
        itself is never reordered.
        """
        if n <= 0:
            return []
        return sorted(self._results, key=lambda r: r.score, reverse=True)[:n]

    def scores(self) -> List[float]:
        return [r.score for r in self._results]

    def convergence_curve(self) -> List[float]:
        """
        Get the best score over evaluations (cumulative max).

        Returns:
            List of best values seen so far at each evaluation
        """
        curve = []
        best_so_far = float('-inf')
        for result in self._results:
            best_so_far = max(best_so_far, result.score)
            curve.append(best_so_far)
        return curve

    def to_dataframe(self) -> pd.DataFrame:
        """
        Tabulate results, one row per evaluation.

        Parameter values are flattened into ``param_<name>`` columns and
        numeric metrics into ``metric_<name>`` columns.
        """
        rows = []
        for result in self._results:
            row = {
                "iteration": result.iteration,
                "phase": result.phase,
                "score": result.score,
                "timestamp": result.timestamp,
            }
            for name, value in result.parameters.items():
                row[f"param_{name}"] = value
            for name, value in result.metrics.items():
                if isinstance(value, (int, float)):
                    row[f"metric_{name}"] = value
            rows.append(row)

        if not rows:
            return pd.DataFrame(columns=["iteration", "phase", "score", "timestamp"])
        return pd.DataFrame(rows).set_index("iteration", drop=False)


@dataclass(frozen=True)
class ProgressUpdate:
    """Progress snapshot emitted after every evaluation."""
    current: int
    total: int
    percentage: int
    best_score: float
    results_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "total": self.total,
            "percentage": self.percentage,
            "bestScore": self.best_score,
            "resultsCount": self.results_count,
        }


ProgressObserver = Callable[[ProgressUpdate], Any]


class ProgressReporter:
    """
    Delivers progress updates to an optional observer.

    The observer may be a plain or async callable. Its failures are logged
    and never abort the run.
    """

    def __init__(self, observer: Optional[ProgressObserver] = None):
        self.observer = observer

    @staticmethod
    def build_update(tracker: ResultTracker, total: int) -> ProgressUpdate:
        current = len(tracker)
        total = max(total, current, 1)
        best = tracker.best
        return ProgressUpdate(
            current=current,
            total=total,
            percentage=int(round(100 * current / total)),
            best_score=best.score if best is not None else 0.0,
            results_count=len(tracker),
        )

    async def report(self, tracker: ResultTracker, total: int) -> Optional[ProgressUpdate]:
        if self.observer is None:
            return None

        update = self.build_update(tracker, total)
        try:
            outcome = self.observer(update)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning(f"Progress observer failed: {e}")
        return update


@dataclass
class OptimizationSummary:
    """
    Complete results from an optimization run.

    Attributes:
        success: Whether the run finished normally (completed or cancelled)
        duration: Wall-clock duration in seconds
        total_tests: Number of evaluations performed
        best_result: Highest-scoring result (None if nothing was evaluated)
        top_results: Up to ten best results, best first
        best_score: Score of the best result (0 if none)
        average_score: Mean score across all evaluations (0 if none)
        improvement: Percentage gain of best over the first score
        parameters: Best parameter set ({} if none)
        cancelled: Whether the run was stopped before exhausting its budget
        start_time: When the run started
        end_time: When the run finished
    """
    success: bool
    duration: float
    total_tests: int
    best_result: Optional[EvaluationResult]
    top_results: List[EvaluationResult] = field(default_factory=list)
    best_score: float = 0.0
    average_score: float = 0.0
    improvement: float = 0.0
    parameters: ParameterSet = field(default_factory=dict)
    cancelled: bool = False
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def format_report(self) -> str:
        """Generate a human-readable summary."""
        status = "CANCELLED" if self.cancelled else "COMPLETED"
        lines = [
            f"=== Optimization Results ({status}) ===",
            f"Evaluations: {self.total_tests}",
            f"Duration: {self.duration:.1f}s",
            f"Best Score: {self.best_score:.4f}",
            f"Average Score: {self.average_score:.4f}",
            f"Improvement: {self.improvement:+.2f}%",
            "",
            "Best Parameters:",
        ]

        for name, value in self.parameters.items():
            if isinstance(value, float):
                lines.append(f"  {name}: {value:.4f}")
            else:
                lines.append(f"  {name}: {value}")

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the external summary shape."""
        return {
            "success": self.success,
            "duration": self.duration,
            "totalTests": self.total_tests,
            "bestResult": self.best_result.to_dict() if self.best_result else None,
            "topResults": [r.to_dict() for r in self.top_results],
            "summary": {
                "bestScore": self.best_score,
                "averageScore": self.average_score,
                "improvement": self.improvement,
                "parameters": dict(self.parameters),
            },
            "cancelled": self.cancelled,
        }


def calculate_improvement(first_score: float, best_score: float, count: int) -> float:
    """
    Percentage improvement of the best score over the first score.

    Defined as 0 when fewer than two evaluations exist or the first score
    is 0.
    """
    if count < 2 or first_score == 0:
        return 0.0
    return (best_score - first_score) / first_score * 100


def compile_results(
    tracker: ResultTracker,
    start_time: datetime,
    end_time: datetime,
    cancelled: bool = False,
) -> OptimizationSummary:
    """
    Compile a summary from a finished run's tracker.

    Pure with respect to its inputs: compiling twice yields equal output.
    """
    best = tracker.best
    scores = tracker.scores()
    first = tracker.first

    best_score = best.score if best is not None else 0.0
    average = float(np.mean(scores)) if scores else 0.0
    improvement = calculate_improvement(
        first.score if first is not None else 0.0,
        best_score,
        len(scores),
    )

    return OptimizationSummary(
        success=True,
        duration=(end_time - start_time).total_seconds(),
        total_tests=len(tracker),
        best_result=best,
        top_results=tracker.top_n(TOP_RESULTS_COUNT),
        best_score=best_score,
        average_score=average,
        improvement=improvement,
        parameters=dict(best.parameters) if best is not None else {},
        cancelled=cancelled,
        start_time=start_time,
        end_time=end_time,
    )
