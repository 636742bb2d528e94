"""
Parameter Space Definitions for Strategy Optimization.

This module defines the typed, bounded search dimensions the optimizer
works over:
- ParameterDefinition: Configuration for a single strategy input
- ParameterSpace: Ordered, name-unique collection of definitions

Parameter Types:
- Integer: Discrete values (e.g., moving average length)
- Float: Continuous values (e.g., ATR multiplier)
- Boolean: Binary switches (tested exhaustively, never perturbed)

Definitions usually arrive from an external parser in the wire shape
``{name, type, min, max, step, current}``. Missing bounds are synthesized
from ``current`` so that loosely declared inputs are still searchable.

Usage:
    from strategy_optimizer.optimization.parameter_space import (
        ParameterDefinition,
        ParameterSpace,
    )

    space = ParameterSpace.from_definitions([
        {"name": "length", "type": "integer", "min": 5, "max": 50, "step": 1, "current": 14},
        {"name": "mult", "type": "float", "min": 1.0, "max": 3.0, "step": 0.25, "current": 2.0},
    ])
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from strategy_optimizer.optimization.errors import ParameterDefinitionError

# A concrete assignment of values to every parameter in a space.
ParameterSet = Dict[str, Any]

# Neighbour offsets (in step units) used for fine sampling and local search.
PERTURBATION_STEPS = (-2, -1, 1, 2)

# Decimal places kept for float values to avoid accumulation noise.
FLOAT_PRECISION = 10


class ParameterType(Enum):
    """Types of parameters for optimization."""
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"

    @classmethod
    def parse(cls, value: Union[str, "ParameterType"]) -> "ParameterType":
        """Parse a type name, accepting the short ``int``/``bool`` aliases."""
        if isinstance(value, ParameterType):
            return value
        aliases = {"int": "integer", "bool": "boolean"}
        name = str(value).strip().lower()
        try:
            return cls(aliases.get(name, name))
        except ValueError:
            raise ParameterDefinitionError(f"Unknown parameter type: {value!r}") from None


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float, np.integer, np.floating))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


@dataclass
class ParameterDefinition:
    """
    Configuration for a single parameter in optimization.

    Attributes:
        name: Parameter name (unique key within a run)
        param_type: Type of parameter (integer, float, boolean)
        min_value: Lower bound (numeric types only)
        max_value: Upper bound (numeric types only)
        step: Perturbation step size (numeric types only)
        current: Value currently configured in the strategy
        description: Human-readable description
    """
    name: str
    param_type: Union[str, ParameterType] = ParameterType.FLOAT
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    step: Optional[float] = None
    current: Any = None
    description: str = ""

    def __post_init__(self):
        """Normalize the type and fill in missing numeric constraints."""
        if not self.name:
            raise ParameterDefinitionError("Parameter name must be a non-empty string")

        self.param_type = ParameterType.parse(self.param_type)

        if self.param_type == ParameterType.BOOLEAN:
            self.min_value = None
            self.max_value = None
            self.step = None
            self.current = bool(self.current) if self.current is not None else False
            return

        self._apply_default_constraints()
        self._validate_numeric()

    def _apply_default_constraints(self) -> None:
        """Synthesize bounds from ``current`` where the caller left them out."""
        current = self.current if _is_number(self.current) else 0

        if self.min_value is None:
            self.min_value = 1 if current > 0 else -100
        if self.max_value is None:
            self.max_value = max(current * 3, 100)
        if self.step is None:
            self.step = 1 if self.param_type == ParameterType.INTEGER else 0.1

    def _validate_numeric(self) -> None:
        for label, value in (
            ("min", self.min_value),
            ("max", self.max_value),
            ("step", self.step),
        ):
            if not _is_number(value):
                raise ParameterDefinitionError(
                    f"Parameter '{self.name}': {label} must be a finite number, got {value!r}"
                )

        if self.param_type == ParameterType.INTEGER:
            # Integer bounds are tightened so rounding never leaves the range.
            self.min_value = int(math.ceil(self.min_value))
            self.max_value = int(math.floor(self.max_value))
            self.step = max(1, int(round(self.step)))
        else:
            self.min_value = float(self.min_value)
            self.max_value = float(self.max_value)
            self.step = float(self.step)

        if self.min_value > self.max_value:
            raise ParameterDefinitionError(
                f"Parameter '{self.name}': min ({self.min_value}) must be "
                f"<= max ({self.max_value})"
            )
        if self.step <= 0:
            raise ParameterDefinitionError(
                f"Parameter '{self.name}': step must be > 0, got {self.step}"
            )

        if _is_number(self.current):
            self.current = self.coerce(self.current)
        else:
            self.current = self.min_value

    @property
    def is_numeric(self) -> bool:
        return self.param_type in (ParameterType.INTEGER, ParameterType.FLOAT)

    def clamp(self, value: Any) -> Any:
        """Restrict a numeric value to [min_value, max_value]."""
        if not self.is_numeric:
            return value
        return min(self.max_value, max(self.min_value, value))

    def coerce(self, value: Any) -> Any:
        """Clamp and cast a value so it matches this definition."""
        if self.param_type == ParameterType.BOOLEAN:
            return bool(value)

        value = self.clamp(value)
        if self.param_type == ParameterType.INTEGER:
            return int(round(value))
        return round(float(value), FLOAT_PRECISION)

    def sample_values(self, step_count: int) -> List[Any]:
        """
        Get evenly spaced sample values for grid generation.

        Args:
            step_count: Number of values between min and max inclusive

        Returns:
            Distinct values in ascending order (``[True, False]`` for booleans)
        """
        if self.param_type == ParameterType.BOOLEAN:
            return [True, False]

        values = []
        for raw in np.linspace(self.min_value, self.max_value, max(1, step_count)):
            value = self.coerce(float(raw))
            if value not in values:
                values.append(value)
        return values

    def sample_random(self, rng: Optional[np.random.Generator] = None) -> Any:
        """
        Sample a uniformly random value from this parameter's range.

        Args:
            rng: Random number generator (uses default if None)

        Returns:
            Sampled value
        """
        if rng is None:
            rng = np.random.default_rng()

        if self.param_type == ParameterType.BOOLEAN:
            return bool(rng.random() < 0.5)

        if self.param_type == ParameterType.INTEGER:
            return int(rng.integers(self.min_value, self.max_value + 1))

        return float(rng.uniform(self.min_value, self.max_value))

    def perturb(self, value: Any, multiplier: int) -> Any:
        """Move ``value`` by ``multiplier`` steps, clamped to the bounds."""
        if not self.is_numeric:
            return value
        return self.coerce(value + self.step * multiplier)

    def neighbor_values(self, value: Any) -> List[Any]:
        """
        Get the distinct +/-1 and +/-2 step perturbations of a value.

        Perturbations that clamp back onto ``value`` are skipped. Booleans
        have no neighbours.
        """
        if not self.is_numeric:
            return []

        neighbors = []
        for multiplier in PERTURBATION_STEPS:
            candidate = self.perturb(value, multiplier)
            if candidate != value and candidate not in neighbors:
                neighbors.append(candidate)
        return neighbors

    def contains(self, value: Any) -> bool:
        """Check a value has the declared type and lies within bounds."""
        if self.param_type == ParameterType.BOOLEAN:
            return isinstance(value, (bool, np.bool_))
        if not _is_number(value):
            return False
        if self.param_type == ParameterType.INTEGER and int(value) != value:
            return False
        return self.min_value <= value <= self.max_value

    def cardinality(self, max_steps: int = 10) -> int:
        """Estimated number of distinct values worth testing."""
        if self.param_type == ParameterType.BOOLEAN:
            return 2
        steps = int((self.max_value - self.min_value) / self.step)
        return max(1, min(max_steps, steps))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the external wire shape."""
        return {
            "name": self.name,
            "type": self.param_type.value,
            "min": self.min_value,
            "max": self.max_value,
            "step": self.step,
            "current": self.current,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParameterDefinition":
        """
        Create from the external wire shape.

        Both ``min``/``max`` and ``min_value``/``max_value`` keys are accepted.
        """
        if "name" not in data:
            raise ParameterDefinitionError(f"Parameter definition missing name: {data!r}")

        return cls(
            name=data["name"],
            param_type=data.get("type", data.get("param_type", "float")),
            min_value=data.get("min", data.get("min_value")),
            max_value=data.get("max", data.get("max_value")),
            step=data.get("step"),
            current=data.get("current", data.get("default")),
            description=data.get("description", ""),
        )


@dataclass
class ParameterSpace:
    """
    Collection of parameters defining the optimization space.

    Attributes:
        parameters: Ordered list of parameter definitions
        name: Name of this parameter space
    """
    parameters: List[ParameterDefinition] = field(default_factory=list)
    name: str = "unnamed"

    def __post_init__(self):
        """Validate parameter names are unique."""
        names = [p.name for p in self.parameters]
        if len(names) != len(set(names)):
            duplicates = {n for n in names if names.count(n) > 1}
            raise ParameterDefinitionError(f"Duplicate parameter names: {duplicates}")

    @classmethod
    def from_definitions(
        cls,
        definitions: Iterable[Union[ParameterDefinition, Dict[str, Any]]],
        name: str = "unnamed",
    ) -> "ParameterSpace":
        """Build a space from definitions or their wire-shape dicts."""
        parameters = [
            d if isinstance(d, ParameterDefinition) else ParameterDefinition.from_dict(d)
            for d in definitions
        ]
        return cls(parameters=parameters, name=name)

    def __len__(self) -> int:
        return len(self.parameters)

    def __iter__(self):
        return iter(self.parameters)

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.parameters]

    @property
    def optimizable(self) -> List[ParameterDefinition]:
        """Numeric parameters; booleans are never perturbed."""
        return [p for p in self.parameters if p.is_numeric]

    def get_parameter(self, name: str) -> Optional[ParameterDefinition]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def sample_random(self, rng: Optional[np.random.Generator] = None) -> ParameterSet:
        """Sample one parameter set with a uniform random value per parameter."""
        if rng is None:
            rng = np.random.default_rng()
        return {param.name: param.sample_random(rng) for param in self.parameters}

    def get_defaults(self) -> ParameterSet:
        """Get the currently configured value of every parameter."""
        return {param.name: param.current for param in self.parameters}

    def estimate_combinations(self, max_steps_per_param: int = 10) -> int:
        """Estimate the size of the search space, capping each dimension."""
        count = 1
        for param in self.parameters:
            count *= param.cardinality(max_steps_per_param)
        return count

    def validate_params(self, params: ParameterSet) -> Tuple[bool, List[str]]:
        """
        Validate a parameter set against this space.

        Args:
            params: Parameters to validate

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors = []

        for param in self.parameters:
            if param.name not in params:
                errors.append(f"Missing parameter: {param.name}")
                continue

            value = params[param.name]
            if not param.contains(value):
                errors.append(
                    f"{param.name}: {value!r} invalid for {param.param_type.value} "
                    f"[{param.min_value}, {param.max_value}]"
                )

        return len(errors) == 0, errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "parameters": [p.to_dict() for p in self.parameters],
        }
