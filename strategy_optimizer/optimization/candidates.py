"""
Candidate Generation for Grid and Refinement Searches.

Turns a ParameterSpace into concrete parameter sets:
- generate(): Cartesian product of per-parameter sample values at a given
  density, capped at MAX_CANDIDATES and returned in shuffled order so an
  early stop still covers the space broadly
- generate_fine(): +/-1 and +/-2 step perturbations around prior results,
  one parameter at a time, deduplicated

Complexity:
- The full product grows as density ** n_params; the cap bounds memory
  and enumeration time regardless of dimensionality.

Usage:
    rng = np.random.default_rng(42)
    generator = CandidateGenerator(space, rng)
    for params in generator.generate(Density.COARSE):
        ...
"""

import itertools
import logging
from enum import Enum
from typing import Any, Hashable, Iterable, List, Optional, Tuple

import numpy as np

from strategy_optimizer.optimization.parameter_space import (
    FLOAT_PRECISION,
    ParameterSet,
    ParameterSpace,
)

logger = logging.getLogger(__name__)

# Hard ceiling on the number of grid candidates produced in one call.
MAX_CANDIDATES = 10_000


class Density(Enum):
    """Number of sample values per numeric dimension."""
    BASIC = 3
    COARSE = 5
    STANDARD = 7
    FINE = 10

    @classmethod
    def parse(cls, value) -> "Density":
        if isinstance(value, Density):
            return value
        return cls[str(value).strip().upper()]


def params_key(params: ParameterSet) -> Tuple[Tuple[str, Hashable], ...]:
    """Hashable key for full value-set equality of a parameter set."""
    items = []
    for k, v in sorted(params.items()):
        if isinstance(v, float):
            items.append((k, round(v, FLOAT_PRECISION)))
        else:
            items.append((k, v))
    return tuple(items)


def remove_duplicate_sets(sets: Iterable[ParameterSet]) -> List[ParameterSet]:
    """Drop repeated parameter sets, keeping first occurrences in order."""
    unique = []
    seen = set()
    for params in sets:
        key = params_key(params)
        if key not in seen:
            seen.add(key)
            unique.append(params)
    return unique


class CandidateGenerator:
    """
    Produces candidate parameter sets from a parameter space.

    Every returned set is a fresh dict, so callers may keep or mutate it
    without affecting other candidates.
    """

    def __init__(
        self,
        parameter_space: ParameterSpace,
        rng: Optional[np.random.Generator] = None,
        max_candidates: int = MAX_CANDIDATES,
    ):
        self.parameter_space = parameter_space
        self.max_candidates = max_candidates
        self._rng = rng if rng is not None else np.random.default_rng()

    def _value_lists(self, density: Density) -> Tuple[List[str], List[List[Any]]]:
        names = self.parameter_space.names
        value_lists = [
            param.sample_values(density.value)
            for param in self.parameter_space.parameters
        ]
        return names, value_lists

    def count_grid_candidates(self, density=Density.STANDARD) -> int:
        """Number of candidates generate() would return for a density."""
        density = Density.parse(density)
        _, value_lists = self._value_lists(density)
        count = 1
        for values in value_lists:
            count *= len(values)
            if count >= self.max_candidates:
                return self.max_candidates
        return count

    def generate(self, density=Density.STANDARD) -> List[ParameterSet]:
        """
        Generate grid candidates at the given density.

        Per-parameter sample values are already distinct, so the product
        contains no duplicates. Enumeration stops at max_candidates.

        Args:
            density: Density level (enum or name such as "coarse")

        Returns:
            Shuffled list of parameter sets
        """
        density = Density.parse(density)
        names, value_lists = self._value_lists(density)

        product = itertools.product(*value_lists)
        sets = [
            dict(zip(names, values))
            for values in itertools.islice(product, self.max_candidates)
        ]

        if len(sets) >= self.max_candidates:
            logger.warning(
                f"Candidate generation capped at {self.max_candidates} sets "
                f"({len(names)} parameters at density {density.name.lower()})"
            )

        self._rng.shuffle(sets)

        logger.debug(f"Generated {len(sets)} candidates at density {density.name.lower()}")
        return sets

    def generate_fine(self, top_results: Iterable[Any]) -> List[ParameterSet]:
        """
        Generate fine candidates around prior results.

        For each result and each numeric parameter, emits the result's
        parameter set with that one value moved by -2, -1, +1 and +2 steps
        (clamped). Perturbations equal to the original value are skipped.

        Args:
            top_results: Results (or plain parameter sets) to refine around

        Returns:
            Deduplicated list in generation order
        """
        sets = []

        for result in top_results:
            base = getattr(result, "parameters", result)
            for param in self.parameter_space.optimizable:
                if param.name not in base:
                    continue
                for value in param.neighbor_values(base[param.name]):
                    new_set = dict(base)
                    new_set[param.name] = value
                    sets.append(new_set)

        unique = remove_duplicate_sets(sets)
        logger.debug(f"Generated {len(unique)} fine candidates ({len(sets)} before dedup)")
        return unique
