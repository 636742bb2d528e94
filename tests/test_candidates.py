"""
Tests for strategy_optimizer/optimization/candidates.py.

This module tests:
- Grid generation at each density (coverage, shuffling, capping)
- Fine candidate generation around prior results
- Parameter-set deduplication helpers
"""

import itertools

import numpy as np
import pytest

from strategy_optimizer.optimization.candidates import (
    MAX_CANDIDATES,
    CandidateGenerator,
    Density,
    params_key,
    remove_duplicate_sets,
)
from strategy_optimizer.optimization.parameter_space import ParameterSpace
from strategy_optimizer.optimization.results import EvaluationResult


@pytest.fixture
def length_space(length_definition):
    return ParameterSpace.from_definitions([length_definition])


# ============================================================================
# Density Tests
# ============================================================================

class TestDensity:
    """Tests for the Density enum."""

    def test_values(self):
        assert Density.BASIC.value == 3
        assert Density.COARSE.value == 5
        assert Density.STANDARD.value == 7
        assert Density.FINE.value == 10

    def test_parse_by_name(self):
        assert Density.parse("coarse") == Density.COARSE
        assert Density.parse(Density.FINE) == Density.FINE


# ============================================================================
# Grid Generation Tests
# ============================================================================

class TestGenerate:
    """Tests for CandidateGenerator.generate."""

    def test_four_booleans_basic_covers_all_combinations(self, boolean_definitions):
        space = ParameterSpace.from_definitions(boolean_definitions)
        generator = CandidateGenerator(space, np.random.default_rng(1))

        candidates = generator.generate(Density.BASIC)

        assert len(candidates) == 16
        expected = {
            tuple(combo) for combo in itertools.product([True, False], repeat=4)
        }
        actual = {
            tuple(c[f"flag_{i}"] for i in range(4)) for c in candidates
        }
        assert actual == expected

    def test_single_integer_basic(self, length_space):
        generator = CandidateGenerator(length_space, np.random.default_rng(1))
        candidates = generator.generate(Density.BASIC)
        assert sorted(c["length"] for c in candidates) == [5, 28, 50]

    def test_grid_size_is_product_of_sample_counts(self, mixed_space):
        generator = CandidateGenerator(mixed_space, np.random.default_rng(1))
        # length: 5 values, mult: 5 values, use_filter: 2 values
        assert len(generator.generate(Density.COARSE)) == 50
        assert generator.count_grid_candidates(Density.COARSE) == 50

    def test_candidates_have_no_duplicates(self, mixed_space):
        generator = CandidateGenerator(mixed_space, np.random.default_rng(1))
        candidates = generator.generate(Density.STANDARD)
        assert len({params_key(c) for c in candidates}) == len(candidates)

    def test_capped_at_max_candidates(self):
        space = ParameterSpace.from_definitions([
            {"name": f"p{i}", "type": "integer", "min": 0, "max": 100, "step": 1}
            for i in range(5)
        ])
        generator = CandidateGenerator(space, np.random.default_rng(1))

        candidates = generator.generate(Density.FINE)

        assert len(candidates) == MAX_CANDIDATES
        assert generator.count_grid_candidates(Density.FINE) == MAX_CANDIDATES
        assert len({params_key(c) for c in candidates}) == MAX_CANDIDATES

    def test_custom_cap(self, mixed_space):
        generator = CandidateGenerator(mixed_space, np.random.default_rng(1), max_candidates=10)
        assert len(generator.generate(Density.COARSE)) == 10

    def test_order_is_shuffled(self, mixed_space):
        generator = CandidateGenerator(mixed_space, np.random.default_rng(5))
        names, value_lists = generator._value_lists(Density.COARSE)
        product_order = [dict(zip(names, values)) for values in itertools.product(*value_lists)]

        candidates = generator.generate(Density.COARSE)

        assert candidates != product_order
        assert sorted(map(params_key, candidates)) == sorted(map(params_key, product_order))

    def test_early_prefix_spans_first_dimension(self, wide_definitions):
        space = ParameterSpace.from_definitions(wide_definitions)
        generator = CandidateGenerator(space, np.random.default_rng(7))

        first_ten = generator.generate(Density.COARSE)[:10]

        assert len({c["fast"] for c in first_ten}) > 1

    def test_same_seed_same_order(self, mixed_space):
        first = CandidateGenerator(mixed_space, np.random.default_rng(5)).generate(Density.COARSE)
        second = CandidateGenerator(mixed_space, np.random.default_rng(5)).generate(Density.COARSE)
        assert first == second

    def test_candidates_are_independent_copies(self, length_space):
        generator = CandidateGenerator(length_space, np.random.default_rng(1))
        candidates = generator.generate(Density.BASIC)
        candidates[0]["length"] = -1
        assert all(c["length"] != -1 for c in candidates[1:])

    def test_all_candidates_valid(self, mixed_space):
        generator = CandidateGenerator(mixed_space, np.random.default_rng(3))
        for params in generator.generate(Density.FINE):
            valid, errors = mixed_space.validate_params(params)
            assert valid, errors


# ============================================================================
# Fine Generation Tests
# ============================================================================

class TestGenerateFine:
    """Tests for CandidateGenerator.generate_fine."""

    def _result(self, iteration, params, score=1.0):
        return EvaluationResult(iteration=iteration, parameters=params, score=score)

    def test_perturbs_one_numeric_parameter_at_a_time(self, length_definition, flag_definition):
        space = ParameterSpace.from_definitions([length_definition, flag_definition])
        generator = CandidateGenerator(space, np.random.default_rng(1))

        fine = generator.generate_fine([self._result(0, {"length": 20, "use_filter": True})])

        assert [c["length"] for c in fine] == [18, 19, 21, 22]
        assert all(c["use_filter"] is True for c in fine)

    def test_overlapping_results_deduplicated(self, length_space):
        generator = CandidateGenerator(length_space, np.random.default_rng(1))

        fine = generator.generate_fine([
            self._result(0, {"length": 20}),
            self._result(1, {"length": 21}),
        ])

        assert sorted(c["length"] for c in fine) == [18, 19, 20, 21, 22, 23]

    def test_accepts_plain_parameter_sets(self, length_space):
        generator = CandidateGenerator(length_space, np.random.default_rng(1))
        fine = generator.generate_fine([{"length": 5}])
        assert [c["length"] for c in fine] == [6, 7]

    def test_no_results_no_candidates(self, length_space):
        generator = CandidateGenerator(length_space, np.random.default_rng(1))
        assert generator.generate_fine([]) == []

    def test_small_float_steps_stay_distinct(self):
        space = ParameterSpace.from_definitions([
            {"name": "eps", "type": "float", "min": 0.0, "max": 0.001, "step": 1e-7, "current": 0.0005},
        ])
        generator = CandidateGenerator(space, np.random.default_rng(1))

        fine = generator.generate_fine([{"eps": 0.0005}])

        assert len(fine) == 4
        assert len({c["eps"] for c in fine}) == 4

    def test_source_parameters_not_mutated(self, length_space):
        generator = CandidateGenerator(length_space, np.random.default_rng(1))
        base = {"length": 20}
        generator.generate_fine([base])
        assert base == {"length": 20}


# ============================================================================
# Helper Tests
# ============================================================================

class TestHelpers:
    """Tests for params_key and remove_duplicate_sets."""

    def test_params_key_ignores_order(self):
        assert params_key({"a": 1, "b": 2.0}) == params_key({"b": 2.0, "a": 1})

    def test_params_key_tolerates_float_noise(self):
        assert params_key({"x": 0.1 + 0.2}) == params_key({"x": 0.3})

    def test_remove_duplicate_sets_keeps_first(self):
        sets = [{"a": 1}, {"a": 2}, {"a": 1}]
        assert remove_duplicate_sets(sets) == [{"a": 1}, {"a": 2}]

    def test_params_key_keeps_sub_micro_differences(self):
        assert params_key({"x": 1e-7}) != params_key({"x": 2e-7})
