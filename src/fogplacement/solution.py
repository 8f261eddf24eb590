# -*- coding: utf-8 -*-
"""
Candidate solutions and their random generators.

A solution ("job") is a placement plus two routing tables:

- placement[module] = hosting node;
- tuple_routing[k] = hop path of dependency k, one column per node:
  column 0 hosts the source module, the last column hosts the destination
  module, and once the destination is reached the remaining columns repeat it;
- migration_routing[module] = hop path the module state travels from its
  previous host to the new one (a constant row on a first optimization).

Solutions are immutable; operators always build new ones through
``CostEvaluator.evaluate``.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import OBJECTIVES
from .matrix_utils import placement_vector_to_matrix
from .problem import ProblemModel


Path = Tuple[int, ...]


@dataclass(frozen=True)
class Solution:
    placement: Tuple[int, ...]
    tuple_routing: Tuple[Path, ...]
    migration_routing: Tuple[Path, ...]
    cost: float
    detailed_cost: Dict[str, float] = field(compare=False)
    violations: int = 0

    @property
    def valid(self) -> bool:
        return self.violations == 0

    def host(self, module: int) -> int:
        return self.placement[module]

    def placement_matrix(self, node_count: int) -> List[List[int]]:
        return placement_vector_to_matrix(self.placement, node_count)

    def objective_vector(self) -> List[float]:
        return [self.detailed_cost.get(name, 0.0) for name in OBJECTIVES]

    def converged_with(self, other: Optional["Solution"], error: float) -> bool:
        """True when both solutions are valid and every objective differs by at most ``error``."""
        if other is None or not self.valid or not other.valid:
            return False
        return all(
            abs(self.detailed_cost.get(name, 0.0) - other.detailed_cost.get(name, 0.0)) <= error
            for name in OBJECTIVES
        )

    def describe(self, problem: ProblemModel) -> str:
        lines = [f"cost={self.cost:.6f} valid={self.valid} violations={self.violations}"]
        for name in OBJECTIVES:
            lines.append(f"  {name:<12}: {self.detailed_cost.get(name, 0.0):.6f}")

        lines.append("placement:")
        for module, node in enumerate(self.placement):
            node_name = problem.node_names[node] if 0 <= node < problem.node_count else "-"
            lines.append(f"  {problem.module_names[module]} -> {node_name}")

        if self.tuple_routing:
            lines.append("tuple routing:")
        for k, path in enumerate(self.tuple_routing):
            start, final = problem.dependency(k)
            hops = " -> ".join(problem.node_names[n] for n in _compress(path))
            lines.append(
                f"  {problem.module_names[start]} -> {problem.module_names[final]}: {hops}"
            )

        moved = [
            (module, path) for module, path in enumerate(self.migration_routing)
            if path and path[0] != path[-1]
        ]
        if moved:
            lines.append("migration routing:")
        for module, path in moved:
            hops = " -> ".join(problem.node_names[n] for n in _compress(path))
            lines.append(f"  {problem.module_names[module]}: {hops}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cost": self.cost,
            "valid": self.valid,
            "violations": self.violations,
            "detailed_cost": dict(self.detailed_cost),
            "placement": list(self.placement),
            "tuple_routing": [list(p) for p in self.tuple_routing],
            "migration_routing": [list(p) for p in self.migration_routing],
        }


def _compress(path: Sequence[int]) -> List[int]:
    """Drop repeated consecutive hops."""
    result: List[int] = []
    for node in path:
        if not result or result[-1] != node:
            result.append(node)
    return result


class SolutionGenerator:
    """Random placements and routes for one problem, driven by an explicit RNG."""

    def __init__(self, problem: ProblemModel, rng: Optional[random.Random] = None):
        self.problem = problem
        self.rng = rng if rng is not None else random.Random()

    # ================================================================
    # Placement
    # ================================================================
    def random_node(self, module: int) -> int:
        return self.rng.choice(self.problem.legal_nodes(module))

    def random_placement(self) -> List[int]:
        return [self.random_node(j) for j in range(self.problem.module_count)]

    # ================================================================
    # Routing
    # ================================================================
    def _next_hop_candidates(self, previous: int, final_node: int, column: int) -> List[int]:
        n = self.problem.node_count
        return [
            z for z in self.problem.neighbours(previous)
            if self.problem.is_valid_hop(z, final_node, n - column)
        ]

    def random_path(self, start_node: int, final_node: int) -> List[int]:
        """A random hop path that keeps ``final_node`` reachable at every step.

        When no neighbour can reach the destination in time (disconnected
        topology) the rest of the path is filled with the destination; the
        resulting broken hop is penalised by the evaluator.
        """
        n = self.problem.node_count
        path = [start_node] * n
        path[n - 1] = final_node

        for j in range(1, n - 1):
            previous = path[j - 1]
            if previous == final_node:
                path[j:n - 1] = [final_node] * (n - 1 - j)
                break

            candidates = self._next_hop_candidates(previous, final_node, j)
            if not candidates:
                path[j:n - 1] = [final_node] * (n - 1 - j)
                break
            path[j] = self.rng.choice(candidates)

        return path

    def random_tuple_routing(self, placement: Sequence[int]) -> List[List[int]]:
        return [
            self.random_path(placement[start], placement[final])
            for start, final in zip(self.problem.start_modules, self.problem.final_modules)
        ]

    def migration_start(self, placement: Sequence[int], module: int) -> int:
        current = self.problem.current_node(module)
        return placement[module] if current is None else current

    def random_migration_routing(self, placement: Sequence[int]) -> List[List[int]]:
        return [
            self.random_path(self.migration_start(placement, j), placement[j])
            for j in range(self.problem.module_count)
        ]

    def repair_path(self, path: Sequence[int], start_node: int, final_node: int) -> List[int]:
        """
        Pin both ends of ``path`` and replace every hop that is not a physical
        link, or from which the destination can no longer be reached within the
        remaining columns, by a random valid hop.
        """
        n = self.problem.node_count
        repaired = list(path)
        repaired[0] = start_node
        repaired[n - 1] = final_node

        for j in range(1, n - 1):
            previous = repaired[j - 1]
            if previous == final_node:
                repaired[j:n - 1] = [final_node] * (n - 1 - j)
                break

            node = repaired[j]
            linked = node == previous or (
                0 <= node < n and self.problem.has_link(previous, node)
            )
            if linked and self.problem.is_valid_hop(node, final_node, n - j):
                continue

            candidates = self._next_hop_candidates(previous, final_node, j)
            if not candidates:
                repaired[j:n - 1] = [final_node] * (n - 1 - j)
                break
            repaired[j] = self.rng.choice(candidates)

        return repaired

    # ================================================================
    # Whole solutions
    # ================================================================
    def random_routings(self, placement: Sequence[int]) -> Tuple[List[List[int]], List[List[int]]]:
        return self.random_tuple_routing(placement), self.random_migration_routing(placement)

    def random_solution(self, evaluator) -> Solution:
        placement = self.random_placement()
        tuple_routing, migration_routing = self.random_routings(placement)
        return evaluator.evaluate(placement, tuple_routing, migration_routing)
