# -*- coding: utf-8 -*-
"""
Mixed-integer programming formulation solved through pulp (CBC by default).

Variables (all binary):
- place[i][j]        module j runs on node i;
- route[k][(a, b)]   dependency k uses the physical link a -> b;
- migrate[j][(a, b)] module j state crosses link a -> b (re-optimization only).

Constraints:
- every module on exactly one node, and only where it may be deployed;
- node MIPS / RAM / storage capacity;
- flow conservation of every dependency:
      out(k, a) - in(k, a) = place[a][start(k)] - place[a][final(k)]
- flow conservation of every migration:
      out(j, a) - in(j, a) = current[a][j] - place[a][j]
- link bandwidth: sum_k demand(k) * route[k][(a, b)] <= bandwidth(a, b).

The objective is the weighted sum of the same cost components the
heuristics use, so the optimum of the model is the optimum of the
evaluator on valid solutions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pulp

from ..config import (
    BANDWIDTH_COST,
    EPSILON,
    LATENCY_COST,
    MIGRATION_COST,
    OPERATIONAL_COST,
    POWER_COST,
    PROCESSING_COST,
    AlgorithmConfig,
)
from ..errors import SolverError
from ..matrix_utils import routing_from_link_matrix
from ..problem import ProblemModel
from ..solution import Solution
from .base import PlacementAlgorithm


logger = logging.getLogger(__name__)

Link = Tuple[int, int]


@dataclass
class LinearProgrammingModel:
    problem: ProblemModel
    lp: pulp.LpProblem
    place: Dict[Tuple[int, int], pulp.LpVariable]
    route: List[Dict[Link, pulp.LpVariable]]
    migrate: List[Dict[Link, pulp.LpVariable]] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)


@dataclass
class Assignment:
    """Rounded variable values of a solved model."""
    placement: List[List[int]]                 # N×M binary
    route_links: List[List[List[int]]]         # per dependency, N×N binary
    migration_links: List[List[List[int]]]     # per module, N×N binary (empty on a first run)
    objective: float


def build_model(problem: ProblemModel, config: Optional[AlgorithmConfig] = None) -> LinearProgrammingModel:
    config = config if config is not None else AlgorithmConfig()
    n, m = problem.node_count, problem.module_count
    links = [(a, b) for a in range(n) for b in range(n) if a != b and problem.has_link(a, b)]

    lp = pulp.LpProblem("fog_placement", pulp.LpMinimize)

    place = {
        (i, j): pulp.LpVariable(f"place_{i}_{j}", cat="Binary")
        for i in range(n) for j in range(m)
    }
    route = [
        {(a, b): pulp.LpVariable(f"route_{k}_{a}_{b}", cat="Binary") for a, b in links}
        for k in range(problem.dependency_count)
    ]
    migrate = []
    if not problem.is_first_optimization:
        migrate = [
            {(a, b): pulp.LpVariable(f"migrate_{j}_{a}_{b}", cat="Binary") for a, b in links}
            for j in range(m)
        ]

    # ------------------------------------------------------------
    # Objective
    # ------------------------------------------------------------
    terms = []
    for i in range(n):
        for j in range(m):
            load = problem.module_mips[j] / problem.node_mips[i]
            op = (
                problem.node_mips_price[i] * problem.module_mips[j]
                + problem.node_ram_price[i] * problem.module_ram[j]
                + problem.node_storage_price[i] * problem.module_storage[j]
            )
            pw = (problem.node_busy_power[i] - problem.node_idle_power[i]) * load
            coefficient = (
                config.weight(OPERATIONAL_COST) * op
                + config.weight(POWER_COST) * pw
                + config.weight(PROCESSING_COST) * load
            )
            terms.append(coefficient * place[(i, j)])

    for k in range(problem.dependency_count):
        needed = problem.dependency_bandwidth(k)
        intensity = problem.dependency_weight(k)
        for a, b in links:
            coefficient = (
                config.weight(OPERATIONAL_COST) * problem.node_bw_price[a] * needed
                + config.weight(LATENCY_COST) * problem.get_link_latency(a, b) * intensity
                + config.weight(BANDWIDTH_COST) * needed / (problem.get_link_bandwidth(a, b) + EPSILON)
            )
            terms.append(coefficient * route[k][(a, b)])

    for j, variables in enumerate(migrate):
        size = problem.module_size(j)
        weight = problem.total_dependency(j) or 1.0
        for a, b in links:
            coefficient = config.weight(MIGRATION_COST) * weight * (
                problem.get_link_latency(a, b) + size / (problem.get_link_bandwidth(a, b) + EPSILON)
            )
            terms.append(coefficient * variables[(a, b)])

    lp += pulp.lpSum(terms)

    # ------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------
    for j in range(m):
        lp += pulp.lpSum(place[(i, j)] for i in range(n)) == 1, f"single_placement_{j}"
        for i in range(n):
            if problem.possible_deployment[i][j] == 0:
                lp += place[(i, j)] == 0, f"possible_deployment_{i}_{j}"

    for i in range(n):
        lp += pulp.lpSum(problem.module_mips[j] * place[(i, j)] for j in range(m)) <= problem.node_mips[i], f"mips_{i}"
        lp += pulp.lpSum(problem.module_ram[j] * place[(i, j)] for j in range(m)) <= problem.node_ram[i], f"ram_{i}"
        lp += pulp.lpSum(problem.module_storage[j] * place[(i, j)] for j in range(m)) <= problem.node_storage[i], f"storage_{i}"

    # ------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------
    for k, variables in enumerate(route):
        start, final = problem.dependency(k)
        for a in range(n):
            outgoing = pulp.lpSum(variables[(x, y)] for x, y in links if x == a)
            incoming = pulp.lpSum(variables[(x, y)] for x, y in links if y == a)
            lp += outgoing - incoming == place[(a, start)] - place[(a, final)], f"flow_{k}_{a}"

    for j, variables in enumerate(migrate):
        origin = problem.current_node(j)
        for a in range(n):
            outgoing = pulp.lpSum(variables[(x, y)] for x, y in links if x == a)
            incoming = pulp.lpSum(variables[(x, y)] for x, y in links if y == a)
            current = 1 if origin == a else 0
            lp += outgoing - incoming == current - place[(a, j)], f"migration_flow_{j}_{a}"

    if route:
        for a, b in links:
            lp += pulp.lpSum(
                problem.dependency_bandwidth(k) * route[k][(a, b)] for k in range(len(route))
            ) <= problem.get_link_bandwidth(a, b), f"bandwidth_{a}_{b}"

    return LinearProgrammingModel(problem, lp, place, route, migrate, links)


def solve_model(model: LinearProgrammingModel, config: Optional[AlgorithmConfig] = None) -> Optional[Assignment]:
    """Solve ``model``; ``None`` when the solver does not report an optimal solution."""
    config = config if config is not None else AlgorithmConfig()
    solver = pulp.PULP_CBC_CMD(msg=config.solver_verbose, timeLimit=config.solver_time_limit)

    try:
        model.lp.solve(solver)
    except pulp.PulpSolverError as e:
        logger.error("MILP solver failed: %s", e)
        return None

    status = pulp.LpStatus[model.lp.status]
    if status != "Optimal":
        logger.warning("MILP model not solved (status: %s)", status)
        return None

    p = model.problem
    n, m = p.node_count, p.module_count

    def rounded(var: pulp.LpVariable) -> int:
        value = var.value()
        return 1 if value is not None and value > 0.5 else 0

    def link_matrix(variables: Dict[Link, pulp.LpVariable]) -> List[List[int]]:
        matrix = [[0] * n for _ in range(n)]
        for (a, b), var in variables.items():
            matrix[a][b] = rounded(var)
        return matrix

    return Assignment(
        placement=[[rounded(model.place[(i, j)]) for j in range(m)] for i in range(n)],
        route_links=[link_matrix(variables) for variables in model.route],
        migration_links=[link_matrix(variables) for variables in model.migrate],
        objective=float(pulp.value(model.lp.objective) or 0.0),
    )


class LinearProgramming(PlacementAlgorithm):
    name = "linear_programming"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.model: Optional[LinearProgrammingModel] = None
        self.assignment: Optional[Assignment] = None

    def assignment_to_solution(self, assignment: Assignment) -> Solution:
        p = self.problem
        n = p.node_count
        placement = []
        for j in range(p.module_count):
            hosts = [i for i in range(n) if assignment.placement[i][j] == 1]
            if len(hosts) != 1:
                raise SolverError(f"Solver placed module {j} on {len(hosts)} nodes")
            placement.append(hosts[0])

        tuple_routing = []
        for k, links in enumerate(assignment.route_links):
            start, final = p.dependency(k)
            tuple_routing.append(
                routing_from_link_matrix(links, placement[start], placement[final], n)
            )

        migration_routing = []
        for j in range(p.module_count):
            origin = self.generator.migration_start(placement, j)
            if assignment.migration_links:
                migration_routing.append(
                    routing_from_link_matrix(assignment.migration_links[j], origin, placement[j], n)
                )
            else:
                migration_routing.append([placement[j]] * n)

        return self.evaluator.evaluate(placement, tuple_routing, migration_routing)

    def _run(self) -> Optional[Solution]:
        self.model = build_model(self.problem, self.config)
        self.assignment = solve_model(self.model, self.config)
        if self.assignment is None:
            return None

        try:
            solution = self.assignment_to_solution(self.assignment)
        except SolverError as e:
            logger.error("%s: unusable solver result: %s", self.name, e)
            return None

        self.trace.record(0, solution.cost)
        self.debug("model objective %.6f, evaluated cost %.6f", self.assignment.objective, solution.cost)
        return solution
