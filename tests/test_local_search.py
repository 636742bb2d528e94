"""
Tests for strategy_optimizer/optimization/local_search.py.

This module tests:
- Neighbour generation
- First-improvement hill climbing towards a known optimum
- Budget, missing-best and boolean handling
"""

import pytest

from strategy_optimizer.optimization.local_search import LocalSearchPhase
from strategy_optimizer.optimization.parameter_space import ParameterSpace


def peak_at_30(params):
    return -abs(params["length"] - 30)


@pytest.fixture
def length_space(length_definition):
    return ParameterSpace.from_definitions([length_definition])


@pytest.fixture
def peak_evaluator(evaluator_factory):
    return evaluator_factory(score_fn=peak_at_30)


# ============================================================================
# Neighbour Tests
# ============================================================================

class TestGenerateNeighbors:
    """Tests for LocalSearchPhase.generate_neighbors."""

    def test_changes_only_one_parameter(self, mixed_space, make_run):
        phase = LocalSearchPhase(make_run(mixed_space))
        params = {"length": 20, "mult": 2.0, "use_filter": False}

        neighbors = phase.generate_neighbors(params, mixed_space.get_parameter("mult"))

        assert [n["mult"] for n in neighbors] == [1.5, 1.75, 2.25, 2.5]
        assert all(n["length"] == 20 and n["use_filter"] is False for n in neighbors)
        assert params == {"length": 20, "mult": 2.0, "use_filter": False}


# ============================================================================
# Hill Climbing Tests
# ============================================================================

class TestLocalSearchPhase:
    """Tests for LocalSearchPhase.execute."""

    @pytest.mark.asyncio
    async def test_climbs_to_optimum(self, length_space, make_run, peak_evaluator):
        run = make_run(length_space, max_iterations=200, evaluator=peak_evaluator)
        await run.evaluate({"length": 20})
        phase = LocalSearchPhase(run)

        await phase.execute(100)

        assert run.tracker.best.parameters == {"length": 30}
        assert run.tracker.best.score == 0
        assert phase.anchor.parameters == {"length": 30}

    @pytest.mark.asyncio
    async def test_first_improvement_reanchors(self, length_space, make_run, peak_evaluator):
        run = make_run(length_space, max_iterations=200, evaluator=peak_evaluator)
        await run.evaluate({"length": 20})

        await LocalSearchPhase(run).execute(100)

        # From 20: 18 and 19 are worse, 21 improves and stops the round.
        evaluated = [params["length"] for params, _ in peak_evaluator.calls]
        assert evaluated[:4] == [20, 18, 19, 21]
        # The next round starts from 21.
        assert evaluated[4:7] == [19, 20, 22]

    @pytest.mark.asyncio
    async def test_terminates_when_no_neighbor_improves(self, length_space, make_run, peak_evaluator):
        run = make_run(length_space, max_iterations=200, evaluator=peak_evaluator)
        await run.evaluate({"length": 30})
        phase = LocalSearchPhase(run)

        evaluations = await phase.execute(100)

        assert evaluations == 4
        assert phase.rounds == 1

    @pytest.mark.asyncio
    async def test_respects_budget(self, length_space, make_run, peak_evaluator):
        run = make_run(length_space, max_iterations=200, evaluator=peak_evaluator)
        await run.evaluate({"length": 5})

        assert await LocalSearchPhase(run).execute(5) == 5

    @pytest.mark.asyncio
    async def test_no_best_means_no_evaluations(self, length_space, make_run, peak_evaluator):
        run = make_run(length_space, evaluator=peak_evaluator)
        assert await LocalSearchPhase(run).execute(20) == 0
        assert peak_evaluator.calls == []

    @pytest.mark.asyncio
    async def test_booleans_never_perturbed(
        self, length_definition, flag_definition, make_run, evaluator_factory
    ):
        space = ParameterSpace.from_definitions([length_definition, flag_definition])
        evaluator = evaluator_factory(score_fn=peak_at_30)
        run = make_run(space, max_iterations=200, evaluator=evaluator)
        await run.evaluate({"length": 25, "use_filter": True})

        await LocalSearchPhase(run).execute(50)

        assert all(params["use_filter"] is True for params, _ in evaluator.calls)

    @pytest.mark.asyncio
    async def test_stops_when_cancelled(self, length_space, make_run, peak_evaluator):
        run = make_run(length_space, max_iterations=200, evaluator=peak_evaluator)
        await run.evaluate({"length": 20})
        run.cancel()

        assert await LocalSearchPhase(run).execute(100) == 0
        assert len(peak_evaluator.calls) == 1
