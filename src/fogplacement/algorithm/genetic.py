# -*- coding: utf-8 -*-
"""
Two-level genetic algorithm.

Outer level: a population of placements. The fitness of a placement is the
cost of the best routing found for it by the inner level.

Inner level: for one fixed placement, a population of routing tables (tuple
and migration routes) evolved with the same operators.

Both levels share the same policy per generation:
- sort ascending by cost;
- keep the best ``elite_fraction`` unchanged;
- fill the rest with children of two parents drawn uniformly from the best
  ``parent_fraction``; every gene (a module's node, or a full route row) is
  inherited from parent 1 or parent 2 with ``crossover_probability`` each,
  otherwise it is regenerated at random (legal node / valid random path);
- stop when the best cost stays within ``convergence_error`` for the
  configured number of generations, or at the generation budget.

A placement that already exceeds a node capacity is not routed: it gets the
worst possible fitness directly.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..solution import Solution
from .base import PlacementAlgorithm


logger = logging.getLogger(__name__)


@dataclass
class Individual:
    placement: List[int]
    solution: Optional[Solution] = None
    fitness: float = math.inf


class GeneticAlgorithm(PlacementAlgorithm):
    name = "genetic"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.generations = 0

    # ================================================================
    # Helpers
    # ================================================================
    def _same_cost(self, a: Optional[float], b: Optional[float]) -> bool:
        if a is None or b is None:
            return False
        if a == b:
            return True
        return abs(a - b) <= self.config.convergence_error

    def _elite_count(self, size: int) -> int:
        return min(size, max(1, int(size * self.config.elite_fraction)))

    def _parent_count(self, size: int) -> int:
        return min(size, max(1, int(size * self.config.parent_fraction)))

    def _pick(self, first: object, second: object, mutate):
        """Gene-level crossover: parent 1, parent 2, or a fresh random gene."""
        r = self.rng.random()
        if r < self.config.crossover_probability:
            return first
        if r < 2 * self.config.crossover_probability:
            return second
        return mutate()

    # ================================================================
    # Operators
    # ================================================================
    def mate_placement(self, first: Sequence[int], second: Sequence[int]) -> List[int]:
        return [
            self._pick(first[j], second[j], lambda j=j: self.generator.random_node(j))
            for j in range(self.problem.module_count)
        ]

    def mate_routing(self, first: Solution, second: Solution, placement: Sequence[int]) -> Solution:
        p = self.problem
        tuple_routing = []
        for k, (start, final) in enumerate(zip(p.start_modules, p.final_modules)):
            tuple_routing.append(self._pick(
                first.tuple_routing[k],
                second.tuple_routing[k],
                lambda s=start, f=final: self.generator.random_path(placement[s], placement[f]),
            ))

        migration_routing = []
        for j in range(p.module_count):
            origin = self.generator.migration_start(placement, j)
            migration_routing.append(self._pick(
                first.migration_routing[j],
                second.migration_routing[j],
                lambda o=origin, j=j: self.generator.random_path(o, placement[j]),
            ))

        return self.evaluator.evaluate(placement, tuple_routing, migration_routing)

    # ================================================================
    # Inner GA: routing for a fixed placement
    # ================================================================
    def optimize_routing(self, placement: Sequence[int]) -> Solution:
        size = self.config.population_size_ga_routing
        population = [
            self.evaluator.evaluate(placement, *self.generator.random_routings(placement))
            for _ in range(size)
        ]

        best: Optional[Solution] = None
        previous_cost: Optional[float] = None
        convergence = 0

        for _ in range(self.config.max_iter_routing_ga):
            population.sort(key=lambda s: s.cost)
            generation_best = population[0]

            if self._same_cost(previous_cost, generation_best.cost):
                convergence += 1
            else:
                convergence = 0
            previous_cost = generation_best.cost

            if self.better(generation_best, best):
                best = generation_best
            if convergence >= self.config.max_iter_routing_convergence_ga:
                break

            elite = population[: self._elite_count(size)]
            parents = population[: self._parent_count(size)]
            children = [
                self.mate_routing(self.rng.choice(parents), self.rng.choice(parents), placement)
                for _ in range(size - len(elite))
            ]
            population = elite + children

        if best is None:
            # no generation ran (zero budget)
            best = min(population, key=lambda s: s.cost)
        return best

    def evaluate_individual(self, individual: Individual) -> None:
        if self.evaluator.exceeds_capacity(individual.placement):
            individual.solution = self.evaluator.evaluate(
                individual.placement, *self.generator.random_routings(individual.placement)
            )
            individual.fitness = math.inf
            return

        individual.solution = self.optimize_routing(individual.placement)
        individual.fitness = individual.solution.cost

    # ================================================================
    # Outer GA: placement
    # ================================================================
    def _run(self) -> Optional[Solution]:
        size = self.config.population_size_ga_placement
        population = [Individual(self.generator.random_placement()) for _ in range(size)]
        self.generations = 0

        best: Optional[Solution] = None
        previous_fitness: Optional[float] = None
        convergence = 0

        for generation in range(self.config.max_iter_placement_ga):
            if self.time_exceeded():
                logger.info("%s: time limit reached at generation %d", self.name, generation)
                break

            for individual in population:
                if individual.solution is None:
                    self.evaluate_individual(individual)

            population.sort(key=lambda ind: ind.fitness)
            leader = population[0]
            self.generations = generation + 1

            if self._same_cost(previous_fitness, leader.fitness):
                convergence += 1
            else:
                convergence = 0
            previous_fitness = leader.fitness

            if self.better(leader.solution, best):
                best = leader.solution
                self.debug("generation %d new best %.6f", generation, best.cost)
            if best is not None and best.valid:
                self.trace.record(generation, best.cost)

            if convergence >= self.config.max_iter_placement_convergence_ga:
                self.debug("converged after %d generations", generation + 1)
                break

            elite = population[: self._elite_count(size)]
            parents = population[: self._parent_count(size)]
            children = [
                Individual(self.mate_placement(
                    self.rng.choice(parents).placement,
                    self.rng.choice(parents).placement,
                ))
                for _ in range(size - len(elite))
            ]
            population = elite + children

        return best
