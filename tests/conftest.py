# -*- coding: utf-8 -*-
"""
Hand-checked test cases shared by the test modules.

tiny (3 nodes, 3 modules, unique optimum):
    latency 0-1 = 1, 1-2 = 1, 0-2 = 5, bandwidth 100 everywhere
    mips price 10 / 1 / 3 on nodes 0 / 1 / 2, every other price 0, no power
    module 0 only on node 0, module 2 only on node 2, module 1 anywhere
    dependencies 0 -> 1 and 1 -> 2, intensity 1, bandwidth demand 10
    optimum: placement [0, 1, 2] with direct routes
      operational 1000 + 100 + 300, processing 0.3, latency 2, bandwidth 0.2

infeasible: one module of 150 MIPS, two nodes of 100 MIPS.

scenario (2 nodes, 5 modules, no dependencies):
    node MIPS price 100 / 20, every module fits on node 1
    optimum: everything on node 1, operational cost 20 × 20000 = 400000

line migration: 3 nodes on a line 0 - 1 - 2, one module running on node 0
    that may only be deployed on node 2, so its state must cross both links.
"""

import random

import pytest

from fogplacement import AlgorithmConfig, ProblemModel

INF = float("inf")

TINY_OPTIMUM = 1402.5


def build_tiny_test_case():
    return {
        "test_data_id": 1,
        "node_count": 3,
        "module_count": 3,
        "computation_capacity": [
            [1000.0, 1000.0, 1000.0],
            [1000.0, 1000.0, 1000.0],
            [1000.0, 1000.0, 1000.0],
        ],
        "node_costs": [
            [10.0, 0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0, 0.0],
            [3.0, 0.0, 0.0, 0.0],
        ],
        "resource_demands": [
            [100.0, 10.0, 10.0],
            [100.0, 10.0, 10.0],
            [100.0, 10.0, 10.0],
        ],
        "latency_matrix": [
            [0.0, 1.0, 5.0],
            [1.0, 0.0, 1.0],
            [5.0, 1.0, 0.0],
        ],
        "bandwidth_matrix": [
            [0.0, 100.0, 100.0],
            [100.0, 0.0, 100.0],
            [100.0, 100.0, 0.0],
        ],
        "dependency_matrix": [
            [0, 1, 0],
            [0, 0, 1],
            [0, 0, 0],
        ],
        "bandwidth_demand_matrix": [
            [0, 10, 0],
            [0, 0, 10],
            [0, 0, 0],
        ],
        # rows = nodes, columns = modules
        "possible_deployment": [
            [1, 1, 0],
            [0, 1, 0],
            [0, 1, 1],
        ],
        "node_names": ["gateway", "fog", "cloud"],
        "module_names": ["sensor", "filter", "store"],
    }


def build_infeasible_test_case():
    return {
        "test_data_id": 2,
        "node_count": 2,
        "module_count": 1,
        "computation_capacity": [[100.0, 100.0, 100.0], [100.0, 100.0, 100.0]],
        "node_costs": [[1.0, 0.0, 0.0, 0.0], [1.0, 0.0, 0.0, 0.0]],
        "resource_demands": [[150.0, 1.0, 1.0]],
        "latency_matrix": [[0.0, 1.0], [1.0, 0.0]],
        "bandwidth_matrix": [[0.0, 100.0], [100.0, 0.0]],
        "dependency_matrix": [[0]],
    }


def build_scenario_test_case():
    mips = [3000.0, 3500.0, 4000.0, 4500.0, 5000.0]
    return {
        "test_data_id": 3,
        "node_count": 2,
        "module_count": 5,
        "computation_capacity": [[50000.0, 10000.0, 10000.0], [50000.0, 10000.0, 10000.0]],
        "node_costs": [[100.0, 0.0, 0.0, 0.0], [20.0, 0.0, 0.0, 0.0]],
        "resource_demands": [[m, 100.0, 100.0] for m in mips],
        "latency_matrix": [[0.0, 1.0], [1.0, 0.0]],
        "bandwidth_matrix": [[0.0, 100.0], [100.0, 0.0]],
        "dependency_matrix": [[0] * 5 for _ in range(5)],
    }


def build_line_migration_test_case():
    return {
        "test_data_id": 4,
        "node_count": 3,
        "module_count": 1,
        "computation_capacity": [[1000.0, 1000.0, 1000.0]] * 3,
        "node_costs": [[1.0, 0.0, 0.0, 0.0]] * 3,
        "resource_demands": [[100.0, 10.0, 10.0]],
        "latency_matrix": [
            [0.0, 1.0, INF],
            [1.0, 0.0, 1.0],
            [INF, 1.0, 0.0],
        ],
        "bandwidth_matrix": [
            [0.0, 100.0, 0.0],
            [100.0, 0.0, 100.0],
            [0.0, 100.0, 0.0],
        ],
        "dependency_matrix": [[0]],
        "possible_deployment": [[0], [0], [1]],
        "current_placement": [0],
    }


@pytest.fixture
def tiny_problem():
    return ProblemModel(build_tiny_test_case())


@pytest.fixture
def infeasible_problem():
    return ProblemModel(build_infeasible_test_case())


@pytest.fixture
def scenario_problem():
    return ProblemModel(build_scenario_test_case())


@pytest.fixture
def line_migration_problem():
    return ProblemModel(build_line_migration_test_case())


@pytest.fixture
def rng():
    return random.Random(12345)


@pytest.fixture
def fast_config():
    """Small budgets so the stochastic searches finish in well under a second."""
    return AlgorithmConfig(
        random_seed=7,
        max_iter_random=3000,
        max_iter_convergence_random=1500,
        population_size_pso=60,
        max_iter_pso=40,
        population_size_nsga2=24,
        max_gen_nsga2=30,
    )
