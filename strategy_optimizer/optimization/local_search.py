"""
Local Search (hill-climbing) Phase for Parameter Optimization.

Starts from the run's best result and repeatedly walks the numeric
parameters in order. For each parameter it evaluates up to four
neighbours (value moved by -2, -1, +1, +2 steps, clamped) and re-anchors
on the first neighbour that beats the current anchor, then moves on to
the next parameter. Every neighbour evaluated is recorded, improving or
not.

A round that finds no improvement across all parameters ends the phase,
as do budget exhaustion and cancellation.
"""

import logging
from typing import List, Optional

from strategy_optimizer.optimization.optimizer_base import BasePhase
from strategy_optimizer.optimization.parameter_space import (
    ParameterDefinition,
    ParameterSet,
)
from strategy_optimizer.optimization.results import EvaluationResult

logger = logging.getLogger(__name__)


class LocalSearchPhase(BasePhase):
    """First-improvement hill climbing seeded at the current best."""

    name = "local_search"

    def __init__(self, run):
        super().__init__(run)
        self.rounds = 0
        self.anchor: Optional[EvaluationResult] = None

    def generate_neighbors(
        self,
        params: ParameterSet,
        param: ParameterDefinition,
    ) -> List[ParameterSet]:
        """Parameter sets differing from ``params`` in ``param`` only."""
        neighbors = []
        for value in param.neighbor_values(params[param.name]):
            neighbor = dict(params)
            neighbor[param.name] = value
            neighbors.append(neighbor)
        return neighbors

    async def _run(self, budget: int) -> None:
        self.anchor = self.run.tracker.best
        if self.anchor is None:
            logger.warning("Local search has no best result to start from")
            return

        improved = True
        while improved and not self.should_stop(budget):
            improved = False
            self.rounds += 1

            for param in self.parameter_space.optimizable:
                if self.should_stop(budget):
                    break
                if param.name not in self.anchor.parameters:
                    continue

                for neighbor in self.generate_neighbors(self.anchor.parameters, param):
                    if self.should_stop(budget):
                        break

                    result = await self.evaluate(neighbor)
                    if result.score > self.anchor.score:
                        self.anchor = result
                        improved = True
                        break

            logger.debug(
                f"Local search round {self.rounds}: anchor score={self.anchor.score:.4f}, "
                f"improved={improved}"
            )
