"""
Base Classes for Optimization Phases.

This module defines the shared state of a single optimization run and the
abstract base class every search phase builds on. It provides:
- OptimizationRun: tracker, random state, cancellation flag and the one
  place evaluations are performed and recorded
- BasePhase: common budget/cancellation checks and phase logging

Evaluation discipline:
- One evaluation at a time; the evaluator call is the only suspension point
- After each result is recorded, progress is reported and control yields
  (the pacing point) before the next evaluation may start
- Cancellation is read only at phase boundaries and before each evaluation,
  so an in-flight evaluation always completes and is recorded

Usage:
    class MyPhase(BasePhase):
        name = "my_phase"

        async def _run(self, budget: int) -> None:
            for params in candidates:
                if self.should_stop(budget):
                    break
                await self.evaluate(params)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

import numpy as np

from strategy_optimizer.lib.logging_utils import OptimizationLogger
from strategy_optimizer.optimization.candidates import CandidateGenerator
from strategy_optimizer.optimization.errors import EvaluationError
from strategy_optimizer.optimization.evaluators import FitnessEvaluator, normalize_outcome
from strategy_optimizer.optimization.parameter_space import ParameterSet, ParameterSpace
from strategy_optimizer.optimization.results import (
    EvaluationResult,
    ProgressReporter,
    ResultTracker,
)

if TYPE_CHECKING:
    from strategy_optimizer.optimization.controller import RunConfig

logger = logging.getLogger(__name__)


class OptimizationRun:
    """
    State of one active optimization run.

    Created when a run starts and discarded once its summary is compiled.
    Owned exclusively by the controller; phases write to it one at a time.
    """

    def __init__(
        self,
        parameter_space: ParameterSpace,
        config: "RunConfig",
        evaluator: FitnessEvaluator,
        reporter: Optional[ProgressReporter] = None,
        total_iterations_estimate: int = 0,
        progress_total: Optional[int] = None,
        run_logger: Optional[OptimizationLogger] = None,
    ):
        self.parameter_space = parameter_space
        self.config = config
        self.tracker = ResultTracker()
        self.rng = np.random.default_rng(config.random_seed)
        self.generator = CandidateGenerator(parameter_space, self.rng)
        self.start_time = datetime.now()
        self.end_time: Optional[datetime] = None
        self.total_iterations_estimate = total_iterations_estimate
        self.progress_total = progress_total or config.max_iterations

        self._evaluator = evaluator
        self._reporter = reporter or ProgressReporter()
        self.log = run_logger or OptimizationLogger()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation. Once set, the flag is never cleared."""
        if not self._cancelled:
            logger.debug(f"Cancellation requested after {len(self.tracker)} evaluations")
        self._cancelled = True

    @property
    def evaluations(self) -> int:
        return len(self.tracker)

    @property
    def remaining_budget(self) -> int:
        return max(0, self.config.max_iterations - len(self.tracker))

    def top_results(self, n: int) -> List[EvaluationResult]:
        return self.tracker.top_n(n)

    async def evaluate(self, params: ParameterSet, phase: str = "") -> EvaluationResult:
        """
        Evaluate one parameter set and record the result.

        Args:
            params: Parameter values to evaluate (copied, never shared)
            phase: Name of the requesting phase

        Returns:
            The recorded EvaluationResult

        Raises:
            EvaluationError: If the evaluator fails or returns garbage
        """
        iteration = len(self.tracker)
        params = dict(params)

        try:
            outcome = await self._evaluator(dict(params), iteration)
            score, metrics = normalize_outcome(outcome)
        except EvaluationError as e:
            e.iteration = iteration
            e.parameters = params
            raise
        except Exception as e:
            raise EvaluationError(
                f"Evaluation {iteration} failed: {e}",
                iteration=iteration,
                parameters=params,
            ) from e

        result = EvaluationResult(
            iteration=iteration,
            parameters=params,
            score=score,
            metrics=metrics,
            timestamp=datetime.now(),
            phase=phase,
        )

        self.log.evaluation(iteration, score, phase)
        if self.tracker.record(result):
            self.log.new_best(score, iteration, params)

        await self._reporter.report(self.tracker, self.progress_total)

        # Pacing point: let the host loop service stop() and observers.
        await asyncio.sleep(self.config.pacing_delay)

        return result


class BasePhase(ABC):
    """
    Abstract base class for search phases.

    Provides common functionality for:
    - Budget accounting per phase
    - Cancellation checks before each unit of work
    - Phase start/finish logging

    Subclasses must implement the `_run` method.
    """

    name = "phase"

    def __init__(self, run: OptimizationRun):
        self.run = run
        self.evaluations = 0
        self._log = run.log

    @property
    def parameter_space(self) -> ParameterSpace:
        return self.run.parameter_space

    @property
    def rng(self) -> np.random.Generator:
        return self.run.rng

    def should_stop(self, budget: int) -> bool:
        """True once the run is cancelled or this phase's budget is spent."""
        return self.run.cancelled or self.evaluations >= budget

    async def evaluate(self, params: ParameterSet) -> EvaluationResult:
        result = await self.run.evaluate(params, phase=self.name)
        self.evaluations += 1
        return result

    async def execute(self, budget: int) -> int:
        """
        Run the phase within an iteration budget.

        Args:
            budget: Maximum evaluations this phase may start

        Returns:
            Number of evaluations performed
        """
        if self.run.cancelled:
            return 0
        if budget <= 0:
            self._log.phase_skipped(self.name, "no budget")
            return 0

        self._log.phase_start(self.name, budget)
        await self._run(budget)

        best = self.run.tracker.best
        self._log.phase_end(
            self.name,
            self.evaluations,
            best.score if best is not None else None,
        )
        return self.evaluations

    @abstractmethod
    async def _run(self, budget: int) -> None:
        """
        Run the phase's search strategy.

        Implementations must call should_stop() before every evaluation.
        """
        pass
