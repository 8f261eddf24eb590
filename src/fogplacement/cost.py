# -*- coding: utf-8 -*-
"""
Cost and constraint evaluation of candidate solutions.

Objectives (kept separately in ``Solution.detailed_cost``):

- operational: resource prices of the hosting nodes
               + bandwidth price of every traversed link;
- power:       (busy - idle power) × module MIPS / node MIPS;
- processing:  module MIPS / node MIPS;
- latency:     link latency × dependency intensity over traversed links;
- bandwidth:   bandwidth demand / (link bandwidth + EPSILON) over traversed links;
- migration:   (link latency + module size / (link bandwidth + EPSILON))
               × incoming dependency intensity, over the migration route.

A link is "traversed" when two consecutive hops of a route differ.

Every violated constraint adds ``reference_cost`` to the scalar cost, and an
objective larger than ``reference_cost`` is clamped to ``reference_cost`` plus
a jitter in (0, 1) derived from the solution itself, so infeasible solutions
stay ordered without ever evaluating differently twice.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import (
    BANDWIDTH_COST,
    EPSILON,
    INF,
    LATENCY_COST,
    MIGRATION_COST,
    OBJECTIVES,
    OPERATIONAL_COST,
    POWER_COST,
    PROCESSING_COST,
    AlgorithmConfig,
)
from .matrix_utils import dot, multiply, placement_vector_to_matrix
from .problem import ProblemModel
from .solution import Solution


logger = logging.getLogger(__name__)


class CostEvaluator:
    def __init__(self, problem: ProblemModel, config: Optional[AlgorithmConfig] = None):
        self.problem = problem
        self.config = config if config is not None else AlgorithmConfig()
        self.reference_cost: float = float(self.config.reference_cost)
        self._weights = np.array([self.config.weight(name) for name in OBJECTIVES], dtype=float)
        self._capacity = problem.capacity_array()
        self._demand = problem.demand_array()

    # ================================================================
    # Entry point
    # ================================================================
    def evaluate(
        self,
        placement: Sequence[int],
        tuple_routing: Sequence[Sequence[int]],
        migration_routing: Sequence[Sequence[int]],
    ) -> Solution:
        placement = tuple(int(x) for x in placement)
        tuple_routing = tuple(tuple(int(x) for x in row) for row in tuple_routing)
        migration_routing = tuple(tuple(int(x) for x in row) for row in migration_routing)
        self._check_shapes(placement, tuple_routing, migration_routing)

        violations = self.count_violations(placement, tuple_routing, migration_routing)
        raw = self.detailed_costs(placement, tuple_routing, migration_routing)

        jitter = random.Random(hash((placement, tuple_routing, migration_routing))).random()
        detailed = {name: self._clamp(value, jitter) for name, value in raw.items()}

        cost = violations * self.reference_cost
        cost += dot(self._weights, [detailed[name] for name in OBJECTIVES])

        return Solution(
            placement=placement,
            tuple_routing=tuple_routing,
            migration_routing=migration_routing,
            cost=cost,
            detailed_cost=detailed,
            violations=violations,
        )

    def _clamp(self, value: float, jitter: float) -> float:
        if math.isnan(value) or value > self.reference_cost:
            return self.reference_cost + max(jitter, EPSILON)
        return value

    def _check_shapes(self, placement, tuple_routing, migration_routing) -> None:
        p = self.problem
        if len(placement) != p.module_count:
            raise ValueError(f"placement must have {p.module_count} entries, got {len(placement)}")
        if len(tuple_routing) != p.dependency_count:
            raise ValueError(
                f"tuple routing must have {p.dependency_count} rows, got {len(tuple_routing)}"
            )
        if len(migration_routing) != p.module_count:
            raise ValueError(
                f"migration routing must have {p.module_count} rows, got {len(migration_routing)}"
            )
        for row in tuple_routing + migration_routing:
            if len(row) != p.node_count:
                raise ValueError(f"routing rows must have {p.node_count} columns, got {len(row)}")

    # ================================================================
    # Constraints
    # ================================================================
    def node_usage(self, placement: Sequence[int]) -> np.ndarray:
        """N×3 array of (mips, ram, storage) used on every node."""
        matrix = placement_vector_to_matrix(placement, self.problem.node_count)
        return multiply(matrix, self._demand)

    def exceeds_capacity(self, placement: Sequence[int]) -> bool:
        usage = self.node_usage(placement)
        return bool(np.any(usage > self._capacity + EPSILON))

    def link_usage(self, tuple_routing: Sequence[Sequence[int]]) -> Dict[Tuple[int, int], float]:
        """Bandwidth requested on every traversed link, summed over dependencies."""
        n = self.problem.node_count
        usage: Dict[Tuple[int, int], float] = {}
        for k, path in enumerate(tuple_routing):
            needed = self.problem.dependency_bandwidth(k)
            for prev, nxt in _traversed(path):
                if 0 <= prev < n and 0 <= nxt < n:
                    usage[(prev, nxt)] = usage.get((prev, nxt), 0.0) + needed
        return usage

    def count_violations(
        self,
        placement: Sequence[int],
        tuple_routing: Sequence[Sequence[int]],
        migration_routing: Sequence[Sequence[int]],
    ) -> int:
        p = self.problem
        n = p.node_count
        violations = 0

        # every module on exactly one legal node
        for module, node in enumerate(placement):
            if not 0 <= node < n:
                violations += 1
            elif not p.is_legal(node, module):
                violations += 1

        # routes start and end at the right hosts
        for k, path in enumerate(tuple_routing):
            start, final = p.dependency(k)
            if path[0] != placement[start] or path[-1] != placement[final]:
                violations += 1

        for module, path in enumerate(migration_routing):
            current = p.current_node(module)
            origin = placement[module] if current is None else current
            if path[0] != origin or path[-1] != placement[module]:
                violations += 1

        # node resources
        usage = self.node_usage(placement)
        violations += int(np.any(usage > self._capacity + EPSILON, axis=1).sum())

        # link bandwidth
        for (prev, nxt), used in self.link_usage(tuple_routing).items():
            if used > p.get_link_bandwidth(prev, nxt) + EPSILON:
                violations += 1

        # hops over physical links only
        for path in list(tuple_routing) + list(migration_routing):
            for prev, nxt in _traversed(path):
                if not (0 <= prev < n and 0 <= nxt < n) or not p.has_link(prev, nxt):
                    violations += 1

        return violations

    def is_valid(self, placement, tuple_routing, migration_routing) -> bool:
        return self.count_violations(placement, tuple_routing, migration_routing) == 0

    # ================================================================
    # Objectives
    # ================================================================
    def detailed_costs(
        self,
        placement: Sequence[int],
        tuple_routing: Sequence[Sequence[int]],
        migration_routing: Sequence[Sequence[int]],
    ) -> Dict[str, float]:
        p = self.problem
        n = p.node_count
        costs = {name: 0.0 for name in OBJECTIVES}

        for module, node in enumerate(placement):
            if not 0 <= node < n:
                continue
            load = p.module_mips[module] / p.node_mips[node]
            costs[OPERATIONAL_COST] += (
                p.node_mips_price[node] * p.module_mips[module]
                + p.node_ram_price[node] * p.module_ram[module]
                + p.node_storage_price[node] * p.module_storage[module]
            )
            costs[POWER_COST] += (p.node_busy_power[node] - p.node_idle_power[node]) * load
            costs[PROCESSING_COST] += load

        for k, path in enumerate(tuple_routing):
            needed = p.dependency_bandwidth(k)
            intensity = p.dependency_weight(k)
            for prev, nxt in _traversed(path):
                if not (0 <= prev < n and 0 <= nxt < n):
                    costs[LATENCY_COST] = INF
                    continue
                costs[OPERATIONAL_COST] += p.node_bw_price[prev] * needed
                costs[LATENCY_COST] += p.get_link_latency(prev, nxt) * intensity
                costs[BANDWIDTH_COST] += needed / (p.get_link_bandwidth(prev, nxt) + EPSILON)

        for module, path in enumerate(migration_routing):
            size = p.module_size(module)
            weight = p.total_dependency(module) or 1.0
            for prev, nxt in _traversed(path):
                if not (0 <= prev < n and 0 <= nxt < n):
                    costs[MIGRATION_COST] = INF
                    continue
                costs[MIGRATION_COST] += weight * (
                    p.get_link_latency(prev, nxt)
                    + size / (p.get_link_bandwidth(prev, nxt) + EPSILON)
                )

        return costs

    def weighted_sum(self, costs: Dict[str, float]) -> float:
        return dot(self._weights, [costs[name] for name in OBJECTIVES])


def _traversed(path: Sequence[int]) -> List[Tuple[int, int]]:
    return [(path[j - 1], path[j]) for j in range(1, len(path)) if path[j - 1] != path[j]]
