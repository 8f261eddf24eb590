# -*- coding: utf-8 -*-
import numpy as np
import pytest

from conftest import TINY_OPTIMUM
from fogplacement.algorithm import BruteForce, NSGA2Placement
from fogplacement.algorithm.multi_objective import MultiObjectiveFormulation, PlacementProblem


def test_decision_vector_layout(tiny_problem):
    formulation = MultiObjectiveFormulation(tiny_problem)
    # 3 hosts, 2 dependency routes and 3 migration routes of 3 hops
    assert formulation.n_var == 3 + 2 * 3 + 3 * 3
    assert formulation.upper_bound == 2
    assert formulation.n_obj == 5
    assert "migration" not in formulation.objectives


def test_migration_is_an_objective_when_reoptimizing(line_migration_problem):
    formulation = MultiObjectiveFormulation(line_migration_problem)
    assert formulation.n_obj == 6
    assert formulation.objectives[-1] == "migration"


def test_encode_then_decode_gives_the_same_solution(tiny_problem):
    optimum = BruteForce(tiny_problem).execute()
    formulation = MultiObjectiveFormulation(tiny_problem)

    x = formulation.encode(optimum)
    assert len(x) == formulation.n_var
    assert formulation.to_solution(x) == optimum

    objectives, violations = formulation.evaluate(x)
    assert violations == 0
    assert formulation.weighted_cost(objectives) == pytest.approx(TINY_OPTIMUM)


def test_decode_rounds_and_clips(tiny_problem):
    formulation = MultiObjectiveFormulation(tiny_problem)
    x = [0.2, 0.9, 7.0] + [-3.0] * 15
    placement, tuple_routing, migration_routing = formulation.decode(x)
    assert placement == [0, 1, 2]
    assert tuple_routing == [[0, 0, 0], [0, 0, 0]]
    assert len(migration_routing) == 3


def test_decode_rejects_a_wrong_length(tiny_problem):
    with pytest.raises(ValueError):
        MultiObjectiveFormulation(tiny_problem).decode([0, 1])


def test_pymoo_problem_reports_violations(tiny_problem):
    formulation = MultiObjectiveFormulation(tiny_problem)
    problem = PlacementProblem(formulation)
    assert problem.n_var == formulation.n_var
    assert problem.n_obj == 5

    out = {}
    # module 0 on node 2 is not allowed
    problem._evaluate(np.array([2, 1, 2] + [0] * 15), out)
    assert len(out["F"]) == 5
    assert out["G"][0] > 0


def test_nsga2_finds_a_good_valid_solution(tiny_problem, fast_config):
    algorithm = NSGA2Placement(tiny_problem, fast_config)
    solution = algorithm.execute()

    assert solution is not None
    assert solution.valid
    assert solution.cost <= TINY_OPTIMUM * 1.2
    assert algorithm.pareto_front
    assert all(s.valid for s in algorithm.pareto_front)
    assert solution.cost == min(s.cost for s in algorithm.pareto_front)
    assert algorithm.trace.is_non_increasing()


def test_nsga2_infeasible_instance_returns_none(infeasible_problem, fast_config):
    assert NSGA2Placement(infeasible_problem, fast_config).execute() is None
