"""
Phased Parameter Optimization for Trading Strategy Backtesting.

This module searches a bounded parameter space for the set that maximizes
an externally supplied fitness score, combining three search methods:

- Grid Search: Shuffled Cartesian grid at a chosen density
- Genetic Algorithm: Tournament selection, uniform crossover, elitism
- Local Search: First-improvement hill climbing around the best result

Key Features:
- Depth profiles (basic, standard, deep) as data-driven phase lists
- Hard iteration budget across all phases
- Cooperative cancellation with partial summaries
- Progress reporting after every evaluation
- Reproducible runs under a fixed random seed

Typical Workflow:
    1. Describe parameters as wire-shape dicts or ParameterDefinitions
    2. Provide an async evaluator (or wrap a sync one)
    3. Run StrategyOptimizer.optimize with a RunConfig
    4. Inspect the OptimizationSummary

Example:
    from strategy_optimizer.optimization import (
        RunConfig,
        SimulatedEvaluator,
        StrategyOptimizer,
    )

    optimizer = StrategyOptimizer(SimulatedEvaluator(seed=7))
    summary = await optimizer.optimize(
        [
            {"name": "length", "type": "integer", "min": 5, "max": 50,
             "step": 1, "current": 14},
            {"name": "use_filter", "type": "boolean", "current": True},
        ],
        RunConfig(max_iterations=200, optimization_depth="deep", random_seed=7),
    )
    print(summary.format_report())
"""

from strategy_optimizer.optimization.errors import (
    OptimizationError,
    OptimizationInProgressError,
    ParameterDefinitionError,
    EvaluationError,
    ConfigValidationError,
)

from strategy_optimizer.optimization.parameter_space import (
    ParameterDefinition,
    ParameterSpace,
    ParameterType,
    ParameterSet,
)

from strategy_optimizer.optimization.candidates import (
    CandidateGenerator,
    Density,
    MAX_CANDIDATES,
    params_key,
    remove_duplicate_sets,
)

from strategy_optimizer.optimization.evaluators import (
    EvaluationOutcome,
    FitnessEvaluator,
    SimulatedEvaluator,
    normalize_outcome,
    wrap_sync_evaluator,
)

from strategy_optimizer.optimization.results import (
    EvaluationResult,
    ResultTracker,
    ProgressUpdate,
    ProgressReporter,
    OptimizationSummary,
    calculate_improvement,
    compile_results,
)

from strategy_optimizer.optimization.optimizer_base import (
    BasePhase,
    OptimizationRun,
)

from strategy_optimizer.optimization.grid_search import (
    GridPhase,
    RefinementPhase,
)

from strategy_optimizer.optimization.genetic import (
    GeneticConfig,
    GeneticPhase,
    Individual,
    population_size_for,
)

from strategy_optimizer.optimization.local_search import LocalSearchPhase

from strategy_optimizer.optimization.controller import (
    DEPTH_PROFILES,
    OptimizationDepth,
    PhaseKind,
    PhaseSpec,
    RunConfig,
    RunState,
    StrategyOptimizer,
    estimate_total_iterations,
)


__all__ = [
    # Errors
    "OptimizationError",
    "OptimizationInProgressError",
    "ParameterDefinitionError",
    "EvaluationError",
    "ConfigValidationError",
    # Parameter Space
    "ParameterDefinition",
    "ParameterSpace",
    "ParameterType",
    "ParameterSet",
    # Candidates
    "CandidateGenerator",
    "Density",
    "MAX_CANDIDATES",
    "params_key",
    "remove_duplicate_sets",
    # Evaluators
    "EvaluationOutcome",
    "FitnessEvaluator",
    "SimulatedEvaluator",
    "normalize_outcome",
    "wrap_sync_evaluator",
    # Results
    "EvaluationResult",
    "ResultTracker",
    "ProgressUpdate",
    "ProgressReporter",
    "OptimizationSummary",
    "calculate_improvement",
    "compile_results",
    # Phases
    "BasePhase",
    "OptimizationRun",
    "GridPhase",
    "RefinementPhase",
    "GeneticConfig",
    "GeneticPhase",
    "Individual",
    "population_size_for",
    "LocalSearchPhase",
    # Controller
    "DEPTH_PROFILES",
    "OptimizationDepth",
    "PhaseKind",
    "PhaseSpec",
    "RunConfig",
    "RunState",
    "StrategyOptimizer",
    "estimate_total_iterations",
]
