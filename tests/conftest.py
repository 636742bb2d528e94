"""
Pytest fixtures for strategy optimizer tests.

This module provides:
- Parameter definition fixtures in the external wire shape
- Deterministic evaluators that record their calls
- A factory for standalone optimization runs
"""

import logging

import pytest

from strategy_optimizer.optimization.controller import RunConfig
from strategy_optimizer.optimization.optimizer_base import OptimizationRun
from strategy_optimizer.optimization.parameter_space import ParameterSpace


def numeric_sum(params):
    """Score = sum of numeric (non-boolean) values."""
    return float(sum(
        v for v in params.values()
        if isinstance(v, (int, float)) and not isinstance(v, bool)
    ))


class RecordingEvaluator:
    """
    Deterministic async evaluator that records every call.

    Args:
        score_fn: Maps a parameter set to a score (default: numeric sum)
        fail_on: Iteration index at which to raise RuntimeError
    """

    def __init__(self, score_fn=None, fail_on=None):
        self.score_fn = score_fn or numeric_sum
        self.fail_on = fail_on
        self.calls = []

    async def __call__(self, params, iteration):
        self.calls.append((dict(params), iteration))
        if self.fail_on is not None and iteration == self.fail_on:
            raise RuntimeError("backtest crashed")
        return self.score_fn(params), {"iteration": iteration}


# =============================================================================
# Parameter Fixtures
# =============================================================================

@pytest.fixture
def length_definition():
    """Integer parameter in wire shape."""
    return {"name": "length", "type": "integer", "min": 5, "max": 50, "step": 1, "current": 14}


@pytest.fixture
def multiplier_definition():
    """Float parameter in wire shape."""
    return {"name": "mult", "type": "float", "min": 1.0, "max": 3.0, "step": 0.25, "current": 2.0}


@pytest.fixture
def flag_definition():
    """Boolean parameter in wire shape."""
    return {"name": "use_filter", "type": "boolean", "current": True}


@pytest.fixture
def mixed_definitions(length_definition, multiplier_definition, flag_definition):
    return [length_definition, multiplier_definition, flag_definition]


@pytest.fixture
def mixed_space(mixed_definitions):
    return ParameterSpace.from_definitions(mixed_definitions, name="mixed")


@pytest.fixture
def wide_definitions():
    """Three integer parameters on 0..100 (125 coarse grid candidates)."""
    return [
        {"name": name, "type": "integer", "min": 0, "max": 100, "step": 1, "current": 50}
        for name in ("fast", "slow", "signal")
    ]


@pytest.fixture
def boolean_definitions():
    """Four boolean switches (16 combinations)."""
    return [
        {"name": f"flag_{i}", "type": "boolean", "current": False}
        for i in range(4)
    ]


# =============================================================================
# Evaluator / Run Fixtures
# =============================================================================

@pytest.fixture
def recording_evaluator():
    return RecordingEvaluator()


@pytest.fixture
def evaluator_factory():
    """The RecordingEvaluator class, for tests needing a custom score."""
    return RecordingEvaluator


@pytest.fixture
def make_run(recording_evaluator):
    """Factory for an OptimizationRun outside the controller."""
    def _make(space, max_iterations=50, seed=42, evaluator=None, **kwargs):
        config = RunConfig(max_iterations=max_iterations, random_seed=seed)
        return OptimizationRun(space, config, evaluator or recording_evaluator, **kwargs)
    return _make


@pytest.fixture
def restore_root_logging():
    """Restore root logger handlers and level after setup_logging()."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
