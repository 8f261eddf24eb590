# -*- coding: utf-8 -*-
import random

import pytest

from conftest import TINY_OPTIMUM
from fogplacement import AlgorithmConfig
from fogplacement.algorithm import RandomSearch


def test_reaches_the_optimum(tiny_problem, fast_config):
    algorithm = RandomSearch(tiny_problem, fast_config)
    solution = algorithm.execute()

    assert solution.placement == (0, 1, 2)
    assert solution.cost == pytest.approx(TINY_OPTIMUM)
    assert algorithm.trace.is_non_increasing()


def test_stops_when_nothing_improves(tiny_problem):
    config = AlgorithmConfig(max_iter_random=100000, max_iter_convergence_random=50)
    algorithm = RandomSearch(tiny_problem, config, rng=random.Random(4))
    calls = []
    sample = algorithm.generator.random_solution

    def counting_sample(evaluator):
        calls.append(1)
        return sample(evaluator)

    algorithm.generator.random_solution = counting_sample
    algorithm.execute()

    last_improvement = max(it for it, _ in algorithm.trace)
    assert len(calls) <= last_improvement + 1 + 50
    assert len(calls) < 100000


def test_same_seed_same_result(tiny_problem, fast_config):
    first = RandomSearch(tiny_problem, fast_config).execute()
    second = RandomSearch(tiny_problem, fast_config).execute()
    assert first == second


def test_infeasible_instance_returns_none(infeasible_problem, fast_config):
    assert RandomSearch(infeasible_problem, fast_config).execute() is None
