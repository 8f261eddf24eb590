# -*- coding: utf-8 -*-
"""
Multi-objective formulation for Pareto optimizers (pymoo).

Decision vector (all integers in [0, N-1]):

    [ host of module 0 .. M-1
    | N hops of dependency 0 | ... | N hops of dependency D-1
    | N hops of the migration route of module 0 | ... ]

Objectives: operational, power, processing, latency and bandwidth cost, plus
migration cost when re-optimizing a running deployment. A single inequality
constraint carries the number of violated constraints (feasible when <= 0).

``NSGA2Placement`` hands the formulation to pymoo's NSGA-II, seeded with
random solutions, and returns the feasible Pareto member with the lowest
weighted cost.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
from pymoo.algorithms.moo.nsga2 import NSGA2
from pymoo.core.callback import Callback
from pymoo.core.problem import ElementwiseProblem
from pymoo.operators.crossover.sbx import SBX
from pymoo.operators.mutation.pm import PM
from pymoo.operators.repair.rounding import RoundingRepair
from pymoo.optimize import minimize
from pymoo.termination.collection import TerminationCollection
from pymoo.termination.max_gen import MaximumGenerationTermination
from pymoo.termination.max_time import TimeBasedTermination

from ..config import MIGRATION_COST, OBJECTIVES, AlgorithmConfig
from ..cost import CostEvaluator
from ..problem import ProblemModel
from ..solution import Solution
from .base import PlacementAlgorithm


logger = logging.getLogger(__name__)


class MultiObjectiveFormulation:
    def __init__(self, problem: ProblemModel, config: Optional[AlgorithmConfig] = None):
        self.problem = problem
        self.config = config if config is not None else AlgorithmConfig()
        self.evaluator = CostEvaluator(problem, self.config)

        self.objectives: List[str] = [name for name in OBJECTIVES if name != MIGRATION_COST]
        if not problem.is_first_optimization:
            self.objectives.append(MIGRATION_COST)

        n, m, d = problem.node_count, problem.module_count, problem.dependency_count
        self.n_placement_vars = m
        self.n_tuple_routing_vars = d * n
        self.n_migration_routing_vars = m * n
        self.n_var = self.n_placement_vars + self.n_tuple_routing_vars + self.n_migration_routing_vars
        self.lower_bound = 0
        self.upper_bound = n - 1

    @property
    def n_obj(self) -> int:
        return len(self.objectives)

    # ================================================================
    # Encoding
    # ================================================================
    def decode(self, x: Sequence[float]) -> Tuple[List[int], List[List[int]], List[List[int]]]:
        if len(x) != self.n_var:
            raise ValueError(f"Decision vector must have {self.n_var} entries, got {len(x)}")

        n = self.problem.node_count
        values = [min(max(int(round(float(v))), self.lower_bound), self.upper_bound) for v in x]

        placement = values[: self.n_placement_vars]
        offset = self.n_placement_vars
        tuple_routing = [
            values[offset + k * n: offset + (k + 1) * n]
            for k in range(self.problem.dependency_count)
        ]
        offset += self.n_tuple_routing_vars
        migration_routing = [
            values[offset + j * n: offset + (j + 1) * n]
            for j in range(self.problem.module_count)
        ]
        return placement, tuple_routing, migration_routing

    def encode(self, solution: Solution) -> List[int]:
        x = list(solution.placement)
        for row in solution.tuple_routing:
            x.extend(row)
        for row in solution.migration_routing:
            x.extend(row)
        return x

    # ================================================================
    # Evaluation
    # ================================================================
    def to_solution(self, x: Sequence[float]) -> Solution:
        return self.evaluator.evaluate(*self.decode(x))

    def evaluate(self, x: Sequence[float]) -> Tuple[List[float], int]:
        """Objective vector and number of violated constraints of ``x``."""
        solution = self.to_solution(x)
        return [solution.detailed_cost[name] for name in self.objectives], solution.violations

    def weighted_cost(self, objectives: Sequence[float]) -> float:
        return float(sum(
            self.config.weight(name) * value for name, value in zip(self.objectives, objectives)
        ))


class PlacementProblem(ElementwiseProblem):
    """pymoo view of a ``MultiObjectiveFormulation``."""

    def __init__(self, formulation: MultiObjectiveFormulation, **kwargs):
        self.formulation = formulation
        super().__init__(
            n_var=formulation.n_var,
            n_obj=formulation.n_obj,
            n_ieq_constr=1,
            xl=formulation.lower_bound,
            xu=formulation.upper_bound,
            vtype=int,
            **kwargs,
        )

    def _evaluate(self, x, out, *args, **kwargs):
        objectives, violations = self.formulation.evaluate(x)
        out["F"] = objectives
        out["G"] = [violations]


class _TraceCallback(Callback):
    """Records the lowest weighted cost of the feasible non-dominated set per generation."""

    def __init__(self, owner: "NSGA2Placement", formulation: MultiObjectiveFormulation):
        super().__init__()
        self.owner = owner
        self.formulation = formulation
        self.best: Optional[float] = None

    def notify(self, algorithm):
        opt = algorithm.opt
        if opt is None or len(opt) == 0:
            return
        feasible = opt.get("feasible").ravel()
        if not feasible.any():
            return
        costs = [self.formulation.weighted_cost(f) for f in opt.get("F")[feasible]]
        value = min(costs)
        if self.best is None or value < self.best:
            self.best = value
        self.owner.trace.record(algorithm.n_gen, self.best)


class NSGA2Placement(PlacementAlgorithm):
    name = "nsga2"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.pareto_front: List[Solution] = []

    def _termination(self):
        generations = MaximumGenerationTermination(self.config.max_gen_nsga2)
        if self.config.time_limit is None:
            return generations
        return TerminationCollection(generations, TimeBasedTermination(self.config.time_limit))

    def _run(self) -> Optional[Solution]:
        formulation = MultiObjectiveFormulation(self.problem, self.config)
        size = self.config.population_size_nsga2

        # a random feasible-by-construction start population
        initial = np.array(
            [formulation.encode(self.generator.random_solution(self.evaluator)) for _ in range(size)],
            dtype=float,
        )

        algorithm = NSGA2(
            pop_size=size,
            sampling=initial,
            crossover=SBX(prob=0.9, eta=15, vtype=float, repair=RoundingRepair()),
            mutation=PM(eta=20, vtype=float, repair=RoundingRepair()),
            eliminate_duplicates=True,
        )

        result = minimize(
            PlacementProblem(formulation),
            algorithm,
            self._termination(),
            seed=self.rng.randrange(2 ** 31),
            callback=_TraceCallback(self, formulation),
            verbose=self.config.debug,
        )

        self.pareto_front = []
        if result.X is None:
            return None

        for x in np.atleast_2d(result.X):
            solution = formulation.to_solution(x)
            if solution.valid:
                self.pareto_front.append(solution)

        self.debug("%d feasible Pareto solutions", len(self.pareto_front))
        if not self.pareto_front:
            return None
        return min(self.pareto_front, key=lambda s: s.cost)
