# -*- coding: utf-8 -*-
"""
Exhaustive search over placements and routes.

Two nested recursive enumerations:

1. placement: modules are assigned in index order to every node allowed by
   the possible-deployment matrix (partial placements that already exceed a
   node capacity are skipped when ``prune_infeasible_placements`` is set);
2. routing: for a complete placement, every routing row (migration rows
   first, then one row per dependency) is filled hop by hop with every
   neighbour of the previous hop from which the destination is still
   reachable within the remaining columns.

Each complete (placement, routing) pair is scored; the best one is replaced
only by a strictly cheaper solution, so ties keep the first one found.

The search space grows as nodes^modules × paths^rows: use it on small
instances only, mainly as ground truth for the heuristics.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional

from ..config import EPSILON
from ..solution import Solution
from .base import PlacementAlgorithm


logger = logging.getLogger(__name__)


class BruteForce(PlacementAlgorithm):
    name = "brute_force"

    def estimate_search_space(self) -> int:
        """Number of placements to enumerate (routes come on top of it)."""
        return math.prod(len(self.problem.legal_nodes(j)) for j in range(self.problem.module_count))

    def _run(self) -> Optional[Solution]:
        p = self.problem
        n = p.node_count
        m = p.module_count
        demand = [p.get_module_demand(j) for j in range(m)]
        capacity = [p.get_node_capacity(i) for i in range(n)]
        prune = self.config.prune_infeasible_placements

        placements = self.estimate_search_space()
        if placements > self.config.brute_force_warn_size:
            logger.warning(
                "%s: %d placements to enumerate, the run may not finish in reasonable time",
                self.name, placements,
            )

        placement = [0] * m
        used = [[0.0, 0.0, 0.0] for _ in range(n)]
        # rows 0..m-1 are migration routes, the rest tuple routes
        routes: List[List[int]] = [[0] * n for _ in range(m + p.dependency_count)]
        row_count = len(routes)

        best_solution: Optional[Solution] = None
        iteration = 0

        def fits(node: int, module: int) -> bool:
            return all(
                used[node][r] + demand[module][r] <= capacity[node][r] + EPSILON
                for r in range(3)
            )

        def evaluate() -> None:
            nonlocal best_solution, iteration
            solution = self.evaluator.evaluate(placement, routes[m:], routes[:m])
            iteration += 1
            if self.better(solution, best_solution):
                best_solution = solution
                self.trace.record(iteration, solution.cost)
                self.debug("iteration %d new best %.6f", iteration, solution.cost)

        def route(row: int, col: int) -> None:
            if row == row_count:
                evaluate()
                return
            if col >= n - 1:
                route(row + 1, 1)
                return

            path = routes[row]
            final_node = path[n - 1]
            previous = path[col - 1]

            # arrived: pad the remaining columns with the destination
            if previous == final_node:
                for j in range(col, n - 1):
                    path[j] = final_node
                route(row + 1, 1)
                return

            for node in p.neighbours(previous):
                if p.is_valid_hop(node, final_node, n - col):
                    path[col] = node
                    route(row, col + 1)

        def start_routing() -> None:
            for module in range(m):
                origin = self.generator.migration_start(placement, module)
                routes[module][0] = origin
                routes[module][n - 1] = placement[module]
            for k in range(p.dependency_count):
                start, final = p.dependency(k)
                routes[m + k][0] = placement[start]
                routes[m + k][n - 1] = placement[final]
            route(0, 1)

        def place(module: int) -> None:
            if module == m:
                start_routing()
                return

            for node in p.legal_nodes(module):
                if prune and not fits(node, module):
                    continue
                placement[module] = node
                for r in range(3):
                    used[node][r] += demand[module][r]
                place(module + 1)
                for r in range(3):
                    used[node][r] -= demand[module][r]

        place(0)
        self.debug("evaluated %d complete solutions", iteration)
        return best_solution
