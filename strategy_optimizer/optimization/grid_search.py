"""
Grid Search Phases for Parameter Optimization.

This module implements the two candidate-list driven phases:
- GridPhase: evaluates the shuffled Cartesian grid at a given density
- RefinementPhase: evaluates fine perturbations around the best results
  found so far

Both walk their candidate list in order and stop when the list or the
phase budget is exhausted, or when the run is cancelled.

Complexity:
- Grid size: density ** n_params, capped at MAX_CANDIDATES
- Refinement size: at most top_k * n_numeric_params * 4 candidates
"""

import logging
from abc import abstractmethod
from typing import List

from strategy_optimizer.optimization.candidates import Density
from strategy_optimizer.optimization.optimizer_base import BasePhase, OptimizationRun
from strategy_optimizer.optimization.parameter_space import ParameterSet

logger = logging.getLogger(__name__)


class _CandidateListPhase(BasePhase):
    """Evaluates a precomputed candidate list in order."""

    @abstractmethod
    def candidates(self) -> List[ParameterSet]:
        """Candidates to evaluate, in order."""
        pass

    async def _run(self, budget: int) -> None:
        candidates = self.candidates()
        limit = min(len(candidates), budget)

        logger.info(
            f"{self.name}: {len(candidates)} candidates, evaluating up to {limit}"
        )

        for params in candidates:
            if self.should_stop(budget):
                break
            await self.evaluate(params)


class GridPhase(_CandidateListPhase):
    """
    Exhaustive (capped, shuffled) grid sampling.

    Example:
        phase = GridPhase(run, density=Density.COARSE)
        await phase.execute(budget=30)
    """

    name = "grid"

    def __init__(self, run: OptimizationRun, density=Density.COARSE):
        super().__init__(run)
        self.density = Density.parse(density)

    def candidates(self) -> List[ParameterSet]:
        return self.run.generator.generate(self.density)


class RefinementPhase(_CandidateListPhase):
    """
    Fine-tunes around the top results recorded so far.

    Candidates are the +/-1 and +/-2 step perturbations of each of the
    top_k results, one parameter at a time.
    """

    name = "refinement"

    def __init__(self, run: OptimizationRun, top_k: int = 5):
        super().__init__(run)
        self.top_k = top_k

    def candidates(self) -> List[ParameterSet]:
        top_results = self.run.top_results(self.top_k)
        return self.run.generator.generate_fine(top_results)
