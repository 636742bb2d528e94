"""
Fitness Evaluator contract and reference evaluators.

The engine never computes fitness itself. It calls an injected async
function with a parameter set and an iteration index and expects back a
score plus auxiliary metrics, either as a ``(score, metrics)`` tuple or as
a mapping with ``score`` and optional ``metrics`` keys.

This module provides:
- normalize_outcome: Validate and unpack an evaluator's return value
- wrap_sync_evaluator: Run a blocking evaluator in a worker thread
- SimulatedEvaluator: Deterministic-under-seed stand-in for a backtest

Example:
    def run_backtest(params, iteration):
        report = engine.run(data, make_strategy(params))
        return report.net_profit, report.metrics

    optimizer = StrategyOptimizer(wrap_sync_evaluator(run_backtest))
"""

import asyncio
import math
from numbers import Real
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from strategy_optimizer.optimization.errors import EvaluationError
from strategy_optimizer.optimization.parameter_space import ParameterSet

EvaluationOutcome = Union[Tuple[float, Dict[str, Any]], Mapping[str, Any]]
FitnessEvaluator = Callable[[ParameterSet, int], Awaitable[EvaluationOutcome]]


def normalize_outcome(outcome: Any) -> Tuple[float, Dict[str, Any]]:
    """
    Unpack an evaluator return value into ``(score, metrics)``.

    Raises:
        EvaluationError: If the outcome has no usable numeric score
    """
    if isinstance(outcome, Mapping):
        if "score" not in outcome:
            raise EvaluationError(f"Evaluator result missing 'score': {outcome!r}")
        score = outcome["score"]
        metrics = outcome.get("metrics") or {}
    elif isinstance(outcome, tuple) and len(outcome) == 2:
        score, metrics = outcome
        metrics = metrics or {}
    else:
        raise EvaluationError(
            f"Evaluator must return (score, metrics) or a mapping, got {type(outcome).__name__}"
        )

    if isinstance(score, bool) or not isinstance(score, Real) or math.isnan(score):
        raise EvaluationError(f"Evaluator returned a non-numeric score: {score!r}")
    if not isinstance(metrics, Mapping):
        raise EvaluationError(f"Evaluator metrics must be a mapping, got {type(metrics).__name__}")

    return float(score), dict(metrics)


def wrap_sync_evaluator(
    fn: Callable[[ParameterSet, int], EvaluationOutcome],
) -> FitnessEvaluator:
    """
    Adapt a blocking evaluator to the async contract.

    The function runs in a worker thread so a slow backtest does not
    stall the event loop (and with it, stop requests and progress).
    """
    async def evaluator(params: ParameterSet, iteration: int) -> EvaluationOutcome:
        return await asyncio.to_thread(fn, params, iteration)

    evaluator.__name__ = getattr(fn, "__name__", "evaluator")
    return evaluator


class SimulatedEvaluator:
    """
    Synthetic fitness landscape for demos and tests.

    Score starts at 50, gains ``sin(v / 10) * 20`` plus +/-5 noise for each
    numeric value, then +/-15 global noise, clamped to [0, 100]. Set
    ``noise=False`` for a deterministic landscape.

    Attributes:
        latency: Seconds to sleep per call, simulating backtest time
        noise: Whether to add random noise to scores and metrics
        calls: Number of evaluations performed
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        latency: float = 0.0,
        noise: bool = True,
    ):
        self.latency = latency
        self.noise = noise
        self.calls = 0
        self._rng = np.random.default_rng(seed)

    def _jitter(self, spread: float) -> float:
        if not self.noise:
            return 0.0
        return float(self._rng.uniform(-spread, spread))

    def score(self, params: ParameterSet) -> float:
        score = 50.0
        for value in params.values():
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                score += math.sin(value / 10) * 20 + self._jitter(5)
        score += self._jitter(15)
        return max(0.0, min(100.0, score))

    def metrics(self, score: float) -> Dict[str, float]:
        return {
            "total_return": score / 2 + self._jitter(10),
            "sharpe_ratio": score / 50 + self._jitter(0.25),
            "max_drawdown": max(5.0, 30 - score / 3 + abs(self._jitter(10))),
            "win_rate": max(30.0, min(80.0, score + self._jitter(10))),
            "profit_factor": max(0.5, score / 40 + abs(self._jitter(0.5))),
            "trades": int(150 + self._jitter(50)),
        }

    async def __call__(self, params: ParameterSet, iteration: int) -> Tuple[float, Dict[str, float]]:
        if self.latency > 0:
            await asyncio.sleep(self.latency)
        self.calls += 1
        score = self.score(params)
        return score, self.metrics(score)
