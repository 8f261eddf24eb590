# -*- coding: utf-8 -*-
"""
Particle swarm optimization over integer placements and routes.

Position of a particle = placement vector + routing cells (tuple rows, then
migration rows). Velocity = one integer per placement entry and per routing
cell. Every iteration:

1. refresh personal bests, then the global best;
2. v = inertia·v + cognitive·r1·(pbest − x) + social·r2·(gbest − x), truncated
   to int, applied per entry;
3. clamp the new nodes to [0, N-1]; a placement entry landing on a node the
   module may not use is moved to a random legal node and its velocity set to
   the move actually made;
4. route rows are pinned to the (new) hosts of their endpoints and repaired
   hop by hop so every hop is a physical link from which the destination is
   still reachable.

The swarm runs for a fixed number of iterations: there is no convergence
test, unlike the genetic algorithm and the random search.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..solution import Solution
from .base import PlacementAlgorithm


logger = logging.getLogger(__name__)


@dataclass
class Particle:
    placement: List[int]
    routing: List[List[int]]
    velocity_placement: List[int]
    velocity_routing: List[List[int]]
    solution: Solution
    best_solution: Solution


class ParticleSwarm(PlacementAlgorithm):
    name = "pso"

    # ================================================================
    # Encoding helpers
    # ================================================================
    def _routing_rows(self, solution: Solution) -> List[List[int]]:
        return [list(row) for row in solution.tuple_routing] + [
            list(row) for row in solution.migration_routing
        ]

    def _row_endpoints(self, placement: Sequence[int], row: int):
        p = self.problem
        if row < p.dependency_count:
            start, final = p.dependency(row)
            return placement[start], placement[final]
        module = row - p.dependency_count
        return self.generator.migration_start(placement, module), placement[module]

    def _evaluate(self, placement: Sequence[int], routing: Sequence[Sequence[int]]) -> Solution:
        d = self.problem.dependency_count
        return self.evaluator.evaluate(placement, routing[:d], routing[d:])

    def new_particle(self) -> Particle:
        solution = self.generator.random_solution(self.evaluator)
        routing = self._routing_rows(solution)
        return Particle(
            placement=list(solution.placement),
            routing=routing,
            velocity_placement=[0] * self.problem.module_count,
            velocity_routing=[[0] * self.problem.node_count for _ in routing],
            solution=solution,
            best_solution=solution,
        )

    def _clamp(self, node: int) -> int:
        return min(max(node, 0), self.problem.node_count - 1)

    def _velocity(self, velocity: int, position: int, personal: int, best: int) -> int:
        c = self.config
        return int(
            c.inertia * velocity
            + c.cognitive * self.rng.random() * (personal - position)
            + c.social * self.rng.random() * (best - position)
        )

    # ================================================================
    # Particle moves
    # ================================================================
    def move(self, particle: Particle, global_best: Solution) -> None:
        p = self.problem
        personal = particle.best_solution

        placement = []
        for j in range(p.module_count):
            position = particle.placement[j]
            velocity = self._velocity(
                particle.velocity_placement[j], position,
                personal.placement[j], global_best.placement[j],
            )
            node = self._clamp(position + velocity)
            if not p.is_legal(node, j):
                node = self.generator.random_node(j)
                velocity = node - position
            particle.velocity_placement[j] = velocity
            placement.append(node)

        personal_rows = self._routing_rows(personal)
        global_rows = self._routing_rows(global_best)

        routing = []
        for r, row in enumerate(particle.routing):
            moved = []
            for c, position in enumerate(row):
                velocity = self._velocity(
                    particle.velocity_routing[r][c], position,
                    personal_rows[r][c], global_rows[r][c],
                )
                moved.append(self._clamp(position + velocity))

            start, final = self._row_endpoints(placement, r)
            repaired = self.generator.repair_path(moved, start, final)
            particle.velocity_routing[r] = [
                new - old for new, old in zip(repaired, row)
            ]
            routing.append(repaired)

        particle.placement = placement
        particle.routing = routing
        particle.solution = self._evaluate(placement, routing)

    # ================================================================
    # Main loop
    # ================================================================
    def _run(self) -> Optional[Solution]:
        swarm = [self.new_particle() for _ in range(self.config.population_size_pso)]
        global_best: Optional[Solution] = None

        def refresh_bests() -> None:
            nonlocal global_best
            for particle in swarm:
                if particle.solution.cost < particle.best_solution.cost:
                    particle.best_solution = particle.solution
                if self.better(particle.best_solution, global_best):
                    global_best = particle.best_solution

        iteration = 0
        for iteration in range(self.config.max_iter_pso):
            if self.time_exceeded():
                logger.info("%s: time limit reached at iteration %d", self.name, iteration)
                break

            refresh_bests()
            if global_best.valid:
                self.trace.record(iteration, global_best.cost)

            for particle in swarm:
                self.move(particle, global_best)
        else:
            iteration = self.config.max_iter_pso

        refresh_bests()
        if global_best.valid:
            self.trace.record(iteration, global_best.cost)
        return global_best
