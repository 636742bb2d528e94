"""
Optimization Controller.

Sequences search phases for one run at a time:

    IDLE -> RUNNING -> COMPLETED
                    -> CANCELLED  (stop() was called)
                    -> FAILED     (evaluator error)

The depth profile picks a fixed phase list; each entry's budget share is
data, so adding a profile never touches phase implementations:

- basic:    grid (basic density, 100%)
- standard: grid (coarse, 60%), refinement around top 5 (remaining 40%)
- deep:     grid (coarse, 30%), genetic (40%), local search (absorbs
            everything not yet consumed; only if a best result exists)

Budgets are soft ceilings. A phase that runs out of candidates finishes
early and its unused share is forfeited, except for phases flagged
``absorb_remaining``.

Usage:
    optimizer = StrategyOptimizer(evaluator)
    optimizer.set_progress_observer(lambda p: print(p.percentage))
    summary = await optimizer.optimize(definitions, {"maxIterations": 200,
                                                     "optimizationDepth": "deep"})
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from strategy_optimizer.lib.logging_utils import OptimizationLogger
from strategy_optimizer.optimization.candidates import Density
from strategy_optimizer.optimization.errors import (
    EvaluationError,
    OptimizationInProgressError,
)
from strategy_optimizer.optimization.evaluators import FitnessEvaluator
from strategy_optimizer.optimization.genetic import GeneticPhase
from strategy_optimizer.optimization.grid_search import GridPhase, RefinementPhase
from strategy_optimizer.optimization.local_search import LocalSearchPhase
from strategy_optimizer.optimization.optimizer_base import BasePhase, OptimizationRun
from strategy_optimizer.optimization.parameter_space import ParameterSpace
from strategy_optimizer.optimization.results import (
    OptimizationSummary,
    ProgressObserver,
    ProgressReporter,
    compile_results,
)

logger = logging.getLogger(__name__)

# Hard limits on max_iterations; values outside the recommended range only warn.
MIN_ITERATIONS = 1
MAX_ITERATIONS = 10_000
RECOMMENDED_ITERATIONS = (10, 1000)


class RunState(Enum):
    """Lifecycle state of the optimizer."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class OptimizationDepth(Enum):
    """Depth profile selecting the phase sequence."""
    BASIC = "basic"
    STANDARD = "standard"
    DEEP = "deep"

    @classmethod
    def parse(cls, value: Union[str, "OptimizationDepth"]) -> "OptimizationDepth":
        if isinstance(value, OptimizationDepth):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown optimization depth {value!r}; "
                f"expected one of {[d.value for d in cls]}"
            ) from None


class PhaseKind(Enum):
    GRID = "grid"
    REFINEMENT = "refinement"
    GENETIC = "genetic"
    LOCAL_SEARCH = "local_search"


@dataclass(frozen=True)
class PhaseSpec:
    """
    One step of a depth profile.

    Attributes:
        kind: Which phase to run
        budget_fraction: Share of max_iterations; None means whatever the
            earlier phases' allocations left over
        density: Grid density (grid phases only)
        absorb_remaining: Budget is every iteration not yet consumed
        requires_results: Skip unless at least one result exists
        requires_best: Skip unless a best result exists
    """
    kind: PhaseKind
    budget_fraction: Optional[float] = None
    density: Density = Density.COARSE
    absorb_remaining: bool = False
    requires_results: bool = False
    requires_best: bool = False


DEPTH_PROFILES: Dict[OptimizationDepth, Tuple[PhaseSpec, ...]] = {
    OptimizationDepth.BASIC: (
        PhaseSpec(PhaseKind.GRID, budget_fraction=1.0, density=Density.BASIC),
    ),
    OptimizationDepth.STANDARD: (
        PhaseSpec(PhaseKind.GRID, budget_fraction=0.6, density=Density.COARSE),
        PhaseSpec(PhaseKind.REFINEMENT, requires_results=True),
    ),
    OptimizationDepth.DEEP: (
        PhaseSpec(PhaseKind.GRID, budget_fraction=0.3, density=Density.COARSE),
        PhaseSpec(PhaseKind.GENETIC, budget_fraction=0.4, requires_results=True),
        PhaseSpec(PhaseKind.LOCAL_SEARCH, absorb_remaining=True, requires_best=True),
    ),
}

PHASE_FACTORIES: Dict[PhaseKind, Callable[[OptimizationRun, PhaseSpec], BasePhase]] = {
    PhaseKind.GRID: lambda run, spec: GridPhase(run, density=spec.density),
    PhaseKind.REFINEMENT: lambda run, spec: RefinementPhase(run, top_k=5),
    PhaseKind.GENETIC: lambda run, spec: GeneticPhase(run),
    PhaseKind.LOCAL_SEARCH: lambda run, spec: LocalSearchPhase(run),
}


@dataclass
class RunConfig:
    """
    Configuration for a single optimization run.

    Attributes:
        max_iterations: Upper bound on evaluations for the whole run
        optimization_depth: Depth profile (basic, standard, deep)
        parallel_processing: Hint only; evaluations always run one at a time
        random_seed: Seed for sampling, shuffling and evolution (None = random)
        pacing_delay: Seconds to yield between evaluations
    """
    max_iterations: int = 100
    optimization_depth: Union[str, OptimizationDepth] = OptimizationDepth.STANDARD
    parallel_processing: bool = False
    random_seed: Optional[int] = None
    pacing_delay: float = 0.0

    def __post_init__(self):
        """Validate run configuration."""
        self.optimization_depth = OptimizationDepth.parse(self.optimization_depth)

        if isinstance(self.max_iterations, bool) or not isinstance(self.max_iterations, int):
            raise ValueError(f"max_iterations must be an integer, got {self.max_iterations!r}")
        if not MIN_ITERATIONS <= self.max_iterations <= MAX_ITERATIONS:
            raise ValueError(
                f"max_iterations ({self.max_iterations}) must be between "
                f"{MIN_ITERATIONS} and {MAX_ITERATIONS}"
            )
        low, high = RECOMMENDED_ITERATIONS
        if not low <= self.max_iterations <= high:
            logger.warning(
                f"max_iterations={self.max_iterations} is outside the "
                f"recommended range [{low}, {high}]"
            )
        if self.pacing_delay < 0:
            raise ValueError(f"pacing_delay must be >= 0, got {self.pacing_delay}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RunConfig":
        """Create from a mapping using either camelCase or snake_case keys."""
        def pick(snake: str, camel: str, default: Any) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        return cls(
            max_iterations=pick("max_iterations", "maxIterations", 100),
            optimization_depth=pick("optimization_depth", "optimizationDepth", "standard"),
            parallel_processing=bool(pick("parallel_processing", "parallelProcessing", False)),
            random_seed=pick("random_seed", "randomSeed", None),
            pacing_delay=float(pick("pacing_delay", "pacingDelay", 0.0)),
        )

    @classmethod
    def coerce(cls, config: Union["RunConfig", Mapping[str, Any], None]) -> "RunConfig":
        if config is None:
            return cls()
        if isinstance(config, RunConfig):
            return config
        return cls.from_dict(config)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "maxIterations": self.max_iterations,
            "optimizationDepth": self.optimization_depth.value,
            "parallelProcessing": self.parallel_processing,
            "randomSeed": self.random_seed,
            "pacingDelay": self.pacing_delay,
        }


def estimate_total_iterations(space: ParameterSpace, config: RunConfig) -> int:
    """Search-space size (at most 10 values per dimension), capped by max_iterations."""
    return min(space.estimate_combinations(10), config.max_iterations)


class StrategyOptimizer:
    """
    Phased parameter optimizer driving an injected fitness evaluator.

    At most one run is active per instance. stop() requests cancellation
    and returns immediately; the run halts at its next check and still
    returns a (partial) summary.

    Example:
        optimizer = StrategyOptimizer(SimulatedEvaluator(seed=1))
        summary = await optimizer.optimize(
            [{"name": "length", "type": "integer", "min": 5, "max": 50,
              "step": 1, "current": 14}],
            RunConfig(max_iterations=20, optimization_depth="basic"),
        )
        print(summary.format_report())
    """

    def __init__(
        self,
        evaluator: FitnessEvaluator,
        progress_observer: Optional[ProgressObserver] = None,
    ):
        self.evaluator = evaluator
        self._reporter = ProgressReporter(progress_observer)
        self._log = OptimizationLogger()
        self._state = RunState.IDLE
        self._run: Optional[OptimizationRun] = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == RunState.RUNNING

    @property
    def current_run(self) -> Optional[OptimizationRun]:
        return self._run

    def estimate_total_iterations(
        self,
        parameter_definitions: Union[ParameterSpace, Iterable[Any]],
        config: Union[RunConfig, Mapping[str, Any], None] = None,
    ) -> int:
        if not isinstance(parameter_definitions, ParameterSpace):
            parameter_definitions = ParameterSpace.from_definitions(parameter_definitions)
        return estimate_total_iterations(parameter_definitions, RunConfig.coerce(config))

    def set_progress_observer(self, observer: Optional[ProgressObserver]) -> None:
        """Register (or with None, remove) the progress observer."""
        self._reporter.observer = observer

    def stop(self) -> None:
        """Request cancellation of the active run. Safe to call any time."""
        if self._run is None or self._run.cancelled:
            return
        logger.info("Stop requested; finishing in-flight evaluation")
        self._run.cancel()

    def _progress_total(self, space: ParameterSpace, config: RunConfig, run: OptimizationRun) -> int:
        if config.optimization_depth == OptimizationDepth.BASIC:
            grid_size = run.generator.count_grid_candidates(Density.BASIC)
            return max(1, min(grid_size, config.max_iterations))
        return config.max_iterations

    async def optimize(
        self,
        parameter_definitions: Union[ParameterSpace, Iterable[Any]],
        config: Union[RunConfig, Mapping[str, Any], None] = None,
    ) -> OptimizationSummary:
        """
        Run an optimization and return its summary.

        Args:
            parameter_definitions: ParameterSpace, or definitions / wire-shape dicts
            config: RunConfig or a mapping with maxIterations/optimizationDepth/...

        Returns:
            OptimizationSummary (partial if the run was stopped)

        Raises:
            OptimizationInProgressError: If a run is already active
            ParameterDefinitionError: If a definition is unrecoverable
            EvaluationError: If the evaluator fails; no summary is produced
        """
        if self._state == RunState.RUNNING:
            raise OptimizationInProgressError("Optimization already in progress")

        config = RunConfig.coerce(config)
        if isinstance(parameter_definitions, ParameterSpace):
            space = parameter_definitions
        else:
            space = ParameterSpace.from_definitions(parameter_definitions)

        run = OptimizationRun(
            parameter_space=space,
            config=config,
            evaluator=self.evaluator,
            reporter=self._reporter,
            run_logger=self._log,
        )
        run.total_iterations_estimate = estimate_total_iterations(space, config)
        run.progress_total = self._progress_total(space, config, run)

        self._run = run
        self._state = RunState.RUNNING

        if config.parallel_processing:
            logger.info("parallel_processing requested; evaluations still run sequentially")

        self._log.run_start(
            config.optimization_depth.value,
            config.max_iterations,
            len(space),
            estimate=run.total_iterations_estimate,
        )

        try:
            await self._execute_profile(run)
        except EvaluationError as e:
            logger.error(f"Optimization failed: {e}", exc_info=True)
            self._state = RunState.FAILED
            raise
        finally:
            run.end_time = datetime.now()
            self._run = None
            if self._state == RunState.RUNNING:
                self._state = RunState.FAILED

        self._state = RunState.CANCELLED if run.cancelled else RunState.COMPLETED

        summary = compile_results(
            run.tracker,
            run.start_time,
            run.end_time,
            cancelled=run.cancelled,
        )
        self._log.run_end(
            self._state.value,
            summary.total_tests,
            summary.best_score if summary.best_result is not None else None,
            summary.duration,
        )
        return summary

    async def _execute_profile(self, run: OptimizationRun) -> None:
        """Run each phase of the configured depth profile in order."""
        config = run.config
        allocated = 0

        for spec in DEPTH_PROFILES[config.optimization_depth]:
            if run.cancelled:
                break

            if spec.absorb_remaining:
                budget = run.remaining_budget
            elif spec.budget_fraction is None:
                budget = config.max_iterations - allocated
            else:
                budget = int(config.max_iterations * spec.budget_fraction)
            allocated += budget
            budget = min(budget, run.remaining_budget)

            if spec.requires_results and len(run.tracker) == 0:
                self._log.phase_skipped(spec.kind.value, "no results yet")
                continue
            if spec.requires_best and run.tracker.best is None:
                self._log.phase_skipped(spec.kind.value, "no best result")
                continue

            phase = PHASE_FACTORIES[spec.kind](run, spec)
            await phase.execute(budget)
