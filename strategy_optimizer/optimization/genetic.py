"""
Genetic Algorithm Phase for Parameter Optimization.

Evolves a fixed-size population of parameter sets:
1. Seed with the best known results (keeping their fitness) and pad with
   uniformly random individuals
2. Evaluate every individual whose fitness is unset
3. Carry the top 20% forward unchanged (elitism)
4. Fill the rest with offspring: two tournament-selected parents (size 3),
   uniform per-parameter crossover, and a 10% chance of re-randomizing
   the whole offspring
5. Repeat for floor(budget / population_size) generations

Population size is clamp(budget // 5, 10, 20).
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from strategy_optimizer.optimization.optimizer_base import BasePhase, OptimizationRun
from strategy_optimizer.optimization.parameter_space import ParameterSet

logger = logging.getLogger(__name__)


@dataclass
class GeneticConfig:
    """
    Configuration for the genetic phase.

    Attributes:
        min_population: Lower clamp for population size
        max_population: Upper clamp for population size
        population_divisor: Budget divided by this gives the raw population size
        seed_count: Maximum known results seeded into the first generation
        elite_fraction: Fraction of each generation carried forward unchanged
        tournament_size: Individuals compared per parent selection
        mutation_rate: Per-offspring probability of full re-randomization
    """
    min_population: int = 10
    max_population: int = 20
    population_divisor: int = 5
    seed_count: int = 5
    elite_fraction: float = 0.2
    tournament_size: int = 3
    mutation_rate: float = 0.1


@dataclass
class Individual:
    """A candidate in the population; fitness None means not yet evaluated."""
    genes: ParameterSet
    fitness: Optional[float] = None

    @property
    def rank_fitness(self) -> float:
        return self.fitness if self.fitness is not None else 0.0


def population_size_for(budget: int, config: Optional[GeneticConfig] = None) -> int:
    """Population size for a budget: clamp(budget // divisor, min, max)."""
    config = config or GeneticConfig()
    return min(
        config.max_population,
        max(config.min_population, budget // config.population_divisor),
    )


class GeneticPhase(BasePhase):
    """
    Genetic algorithm search seeded from prior results.

    Example:
        phase = GeneticPhase(run)
        await phase.execute(budget=50)   # population 10, 5 generations
    """

    name = "genetic"

    def __init__(self, run: OptimizationRun, config: Optional[GeneticConfig] = None):
        super().__init__(run)
        self.config = config or GeneticConfig()
        self.generations_run = 0

    def initialize_population(self, size: int) -> List[Individual]:
        """Seed with top known results, then pad with random individuals."""
        seeds = self.run.top_results(min(self.config.seed_count, size))
        population = [
            Individual(genes=dict(result.parameters), fitness=result.score)
            for result in seeds
        ]

        while len(population) < size:
            population.append(
                Individual(genes=self.parameter_space.sample_random(self.rng))
            )

        return population

    def select_parent(self, population: List[Individual]) -> Individual:
        """Tournament selection: fittest of tournament_size uniform picks."""
        best = population[int(self.rng.integers(len(population)))]
        for _ in range(1, self.config.tournament_size):
            candidate = population[int(self.rng.integers(len(population)))]
            if candidate.rank_fitness > best.rank_fitness:
                best = candidate
        return best

    def crossover(self, parent1: Individual, parent2: Individual) -> ParameterSet:
        """Uniform crossover: each gene from either parent with equal odds."""
        offspring = {}
        for name in self.parameter_space.names:
            source = parent1 if self.rng.random() < 0.5 else parent2
            offspring[name] = source.genes[name]
        return offspring

    def mutate(self, genes: ParameterSet) -> ParameterSet:
        """Re-randomize every parameter of the offspring within bounds."""
        return self.parameter_space.sample_random(self.rng)

    def evolve(self, population: List[Individual]) -> List[Individual]:
        """Produce the next generation of the same size."""
        ranked = sorted(population, key=lambda ind: ind.rank_fitness, reverse=True)
        elite_count = int(len(ranked) * self.config.elite_fraction)

        next_generation = [
            Individual(genes=dict(ind.genes), fitness=ind.fitness)
            for ind in ranked[:elite_count]
        ]

        while len(next_generation) < len(ranked):
            parent1 = self.select_parent(ranked)
            parent2 = self.select_parent(ranked)
            genes = self.crossover(parent1, parent2)

            if self.rng.random() < self.config.mutation_rate:
                genes = self.mutate(genes)

            next_generation.append(Individual(genes=genes))

        return next_generation

    async def _run(self, budget: int) -> None:
        population_size = population_size_for(budget, self.config)
        generations = budget // population_size

        logger.info(
            f"Genetic search: population={population_size}, generations={generations}"
        )

        population = self.initialize_population(population_size)

        for generation in range(generations):
            if self.should_stop(budget):
                break

            for individual in population:
                if self.should_stop(budget):
                    break
                if individual.fitness is None:
                    result = await self.evaluate(individual.genes)
                    individual.fitness = result.score

            self.generations_run += 1
            best = max(population, key=lambda ind: ind.rank_fitness)
            logger.debug(
                f"Generation {generation + 1}/{generations}: "
                f"best fitness={best.rank_fitness:.4f}"
            )

            if generation < generations - 1:
                population = self.evolve(population)
