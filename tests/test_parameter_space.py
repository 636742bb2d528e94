"""
Tests for strategy_optimizer/optimization/parameter_space.py.

This module tests:
- ParameterType parsing (aliases, unknown types)
- ParameterDefinition defaulting, validation, sampling and perturbation
- ParameterSpace construction, validation and size estimation
"""

import numpy as np
import pytest

from strategy_optimizer.optimization.errors import ParameterDefinitionError
from strategy_optimizer.optimization.parameter_space import (
    ParameterDefinition,
    ParameterSpace,
    ParameterType,
)


# ============================================================================
# ParameterType Tests
# ============================================================================

class TestParameterType:
    """Tests for ParameterType parsing."""

    def test_parse_full_names(self):
        assert ParameterType.parse("integer") == ParameterType.INTEGER
        assert ParameterType.parse("float") == ParameterType.FLOAT
        assert ParameterType.parse("boolean") == ParameterType.BOOLEAN

    def test_parse_short_aliases(self):
        assert ParameterType.parse("int") == ParameterType.INTEGER
        assert ParameterType.parse("BOOL") == ParameterType.BOOLEAN

    def test_parse_unknown_raises(self):
        with pytest.raises(ParameterDefinitionError, match="Unknown parameter type"):
            ParameterType.parse("categorical")

    def test_definition_error_is_value_error(self):
        with pytest.raises(ValueError):
            ParameterType.parse("string")


# ============================================================================
# ParameterDefinition Tests
# ============================================================================

class TestParameterDefinition:
    """Tests for ParameterDefinition."""

    def test_from_wire_shape(self, length_definition):
        param = ParameterDefinition.from_dict(length_definition)
        assert param.name == "length"
        assert param.param_type == ParameterType.INTEGER
        assert param.min_value == 5
        assert param.max_value == 50
        assert param.step == 1
        assert param.current == 14

    def test_to_dict_uses_wire_keys(self, multiplier_definition):
        data = ParameterDefinition.from_dict(multiplier_definition).to_dict()
        assert data["type"] == "float"
        assert data["min"] == 1.0
        assert data["max"] == 3.0
        assert data["step"] == 0.25

    def test_missing_name_raises(self):
        with pytest.raises(ParameterDefinitionError, match="missing name"):
            ParameterDefinition.from_dict({"type": "integer", "min": 1, "max": 2})

    def test_default_constraints_positive_current(self):
        param = ParameterDefinition(name="length", param_type="integer", current=14)
        assert param.min_value == 1
        assert param.max_value == 100
        assert param.step == 1

    def test_default_max_scales_with_current(self):
        param = ParameterDefinition(name="length", param_type="integer", current=50)
        assert param.max_value == 150

    def test_default_constraints_non_positive_current(self):
        param = ParameterDefinition(name="offset", param_type="float", current=-5.0)
        assert param.min_value == -100.0
        assert param.max_value == 100.0
        assert param.step == pytest.approx(0.1)

    def test_min_greater_than_max_raises(self):
        with pytest.raises(ParameterDefinitionError, match="must be <= max"):
            ParameterDefinition(name="x", param_type="float", min_value=5.0, max_value=1.0)

    def test_non_numeric_bound_raises(self):
        with pytest.raises(ParameterDefinitionError, match="min must be a finite number"):
            ParameterDefinition(name="x", param_type="float", min_value="low", max_value=1.0)

    def test_non_positive_step_raises(self):
        with pytest.raises(ParameterDefinitionError, match="step must be > 0"):
            ParameterDefinition(name="x", param_type="float", min_value=0.0, max_value=1.0, step=-0.5)

    def test_integer_bounds_tightened(self):
        param = ParameterDefinition(name="x", param_type="int", min_value=1.5, max_value=9.7)
        assert param.min_value == 2
        assert param.max_value == 9

    def test_current_clamped_into_range(self):
        param = ParameterDefinition(name="x", param_type="integer", min_value=5, max_value=50, current=80)
        assert param.current == 50

    def test_boolean_has_no_bounds(self, flag_definition):
        param = ParameterDefinition.from_dict(flag_definition)
        assert param.min_value is None
        assert param.max_value is None
        assert param.current is True
        assert not param.is_numeric

    def test_sample_values_integer_midpoint_rounds(self, length_definition):
        param = ParameterDefinition.from_dict(length_definition)
        assert param.sample_values(3) == [5, 28, 50]

    def test_sample_values_float(self, multiplier_definition):
        param = ParameterDefinition.from_dict(multiplier_definition)
        assert param.sample_values(5) == pytest.approx([1.0, 1.5, 2.0, 2.5, 3.0])

    def test_sample_values_deduplicated_on_narrow_range(self):
        param = ParameterDefinition(name="x", param_type="integer", min_value=1, max_value=2)
        assert param.sample_values(5) == [1, 2]

    def test_sample_values_boolean(self, flag_definition):
        param = ParameterDefinition.from_dict(flag_definition)
        assert param.sample_values(7) == [True, False]

    def test_sample_random_within_bounds(self, length_definition, multiplier_definition):
        rng = np.random.default_rng(0)
        length = ParameterDefinition.from_dict(length_definition)
        mult = ParameterDefinition.from_dict(multiplier_definition)

        for _ in range(200):
            value = length.sample_random(rng)
            assert isinstance(value, int)
            assert 5 <= value <= 50
            assert 1.0 <= mult.sample_random(rng) <= 3.0

    def test_clamp(self, length_definition):
        param = ParameterDefinition.from_dict(length_definition)
        assert param.clamp(0) == 5
        assert param.clamp(99) == 50
        assert param.clamp(20) == 20

    def test_perturb_clamps_at_bounds(self, length_definition):
        param = ParameterDefinition.from_dict(length_definition)
        assert param.perturb(49, 2) == 50
        assert param.perturb(6, -2) == 5

    def test_neighbor_values_interior(self, length_definition):
        param = ParameterDefinition.from_dict(length_definition)
        assert param.neighbor_values(20) == [18, 19, 21, 22]

    def test_neighbor_values_at_upper_bound(self, length_definition):
        param = ParameterDefinition.from_dict(length_definition)
        assert param.neighbor_values(50) == [48, 49]

    def test_neighbor_values_at_lower_bound(self, length_definition):
        param = ParameterDefinition.from_dict(length_definition)
        assert param.neighbor_values(5) == [6, 7]

    def test_float_neighbors_have_no_accumulation_noise(self):
        param = ParameterDefinition(name="x", param_type="float", min_value=0.0, max_value=1.0, step=0.1)
        assert param.neighbor_values(0.3) == [0.1, 0.2, 0.4, 0.5]

    def test_boolean_has_no_neighbors(self, flag_definition):
        param = ParameterDefinition.from_dict(flag_definition)
        assert param.neighbor_values(True) == []

    def test_contains(self, length_definition):
        param = ParameterDefinition.from_dict(length_definition)
        assert param.contains(5)
        assert param.contains(50)
        assert not param.contains(51)
        assert not param.contains(10.5)
        assert not param.contains(True)


# ============================================================================
# ParameterSpace Tests
# ============================================================================

class TestParameterSpace:
    """Tests for ParameterSpace."""

    def test_from_definitions(self, mixed_space):
        assert len(mixed_space) == 3
        assert mixed_space.names == ["length", "mult", "use_filter"]

    def test_duplicate_names_raise(self, length_definition):
        with pytest.raises(ParameterDefinitionError, match="Duplicate"):
            ParameterSpace.from_definitions([length_definition, dict(length_definition)])

    def test_optimizable_excludes_booleans(self, mixed_space):
        assert [p.name for p in mixed_space.optimizable] == ["length", "mult"]

    def test_get_parameter(self, mixed_space):
        assert mixed_space.get_parameter("mult").step == 0.25
        assert mixed_space.get_parameter("missing") is None

    def test_get_defaults(self, mixed_space):
        assert mixed_space.get_defaults() == {"length": 14, "mult": 2.0, "use_filter": True}

    def test_sample_random_is_valid(self, mixed_space):
        rng = np.random.default_rng(7)
        for _ in range(50):
            valid, errors = mixed_space.validate_params(mixed_space.sample_random(rng))
            assert valid, errors

    def test_validate_params_reports_problems(self, mixed_space):
        valid, errors = mixed_space.validate_params({"length": 99, "mult": 2.0})
        assert not valid
        assert len(errors) == 2
        assert any("Missing parameter: use_filter" in e for e in errors)

    def test_estimate_combinations(self, mixed_space):
        # length: min(10, 45) * mult: 8 * use_filter: 2
        assert mixed_space.estimate_combinations(10) == 160

    def test_to_dict(self, mixed_space):
        data = mixed_space.to_dict()
        assert data["name"] == "mixed"
        assert len(data["parameters"]) == 3
