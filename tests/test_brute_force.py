# -*- coding: utf-8 -*-
import pytest

from conftest import TINY_OPTIMUM, build_tiny_test_case
from fogplacement import AlgorithmConfig, ProblemModel
from fogplacement.algorithm import BruteForce


def test_finds_the_unique_optimum(tiny_problem):
    algorithm = BruteForce(tiny_problem)
    solution = algorithm.execute()

    assert solution is not None
    assert solution.placement == (0, 1, 2)
    assert solution.cost == pytest.approx(TINY_OPTIMUM)
    assert algorithm.elapsed_time > 0
    assert algorithm.trace.is_non_increasing()
    assert algorithm.trace.last_value == pytest.approx(TINY_OPTIMUM)


def test_search_space_estimate(tiny_problem, scenario_problem):
    assert BruteForce(tiny_problem).estimate_search_space() == 3
    assert BruteForce(scenario_problem).estimate_search_space() == 2 ** 5


def test_scenario_puts_everything_on_the_cheap_node(scenario_problem):
    solution = BruteForce(scenario_problem).execute()
    assert solution.placement == (1, 1, 1, 1, 1)
    assert solution.detailed_cost["operational"] == pytest.approx(400000.0)


def test_infeasible_instance_returns_none(infeasible_problem):
    assert BruteForce(infeasible_problem).execute() is None
    unpruned = AlgorithmConfig(prune_infeasible_placements=False)
    assert BruteForce(infeasible_problem, unpruned).execute() is None


def test_pruning_does_not_change_the_result(tiny_problem):
    unpruned = BruteForce(tiny_problem, AlgorithmConfig(prune_infeasible_placements=False)).execute()
    assert unpruned.cost == pytest.approx(TINY_OPTIMUM)


def test_migration_route_is_enumerated(line_migration_problem):
    solution = BruteForce(line_migration_problem).execute()
    assert solution.placement == (2,)
    assert solution.migration_routing == ((0, 1, 2),)
    assert solution.detailed_cost["migration"] == pytest.approx(2.4)


def test_ties_keep_the_first_solution():
    case = build_tiny_test_case()
    # node 0 and node 2 now cost the same for module 1
    case["node_costs"] = [[1.0, 0, 0, 0], [5.0, 0, 0, 0], [1.0, 0, 0, 0]]
    case["latency_matrix"] = [[0, 1, 1], [1, 0, 1], [1, 1, 0]]
    solution = BruteForce(ProblemModel(case)).execute()
    assert solution.placement == (0, 0, 2)
