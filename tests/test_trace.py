# -*- coding: utf-8 -*-
import pytest

from fogplacement import IterationTrace, summarize_run
from fogplacement.algorithm import BruteForce


def test_record_and_read_back():
    trace = IterationTrace()
    trace.record(5, 3.0)
    trace.record(0, 10.0)
    trace.record(2, 4.0)

    assert trace.items() == [(0, 10.0), (2, 4.0), (5, 3.0)]
    assert trace.as_dict() == {0: 10.0, 2: 4.0, 5: 3.0}
    assert trace.last_value == 3.0
    assert len(trace) == 3
    assert 2 in trace
    assert 1 not in trace
    assert trace.is_non_increasing()


def test_empty_trace():
    trace = IterationTrace()
    assert trace.last_value is None
    assert trace.items() == []
    assert trace.is_non_increasing()


def test_increase_is_detected():
    trace = IterationTrace()
    trace.record(0, 1.0)
    trace.record(1, 2.0)
    assert not trace.is_non_increasing()
    assert trace.is_non_increasing(tolerance=1.0)


def test_to_frame():
    trace = IterationTrace()
    trace.record(0, 2.0)
    trace.record(3, 1.0)
    df = trace.to_frame()
    assert list(df.columns) == ["iteration", "best_value"]
    assert df["best_value"].tolist() == [2.0, 1.0]


def test_summarize_run(tiny_problem):
    algorithm = BruteForce(tiny_problem)
    solution = algorithm.execute()
    row = summarize_run(algorithm, solution)

    assert row["brute_force_found"] is True
    assert row["brute_force_cost"] == pytest.approx(1402.5)
    assert row["brute_force_operational"] == pytest.approx(1400.0)
    assert row["brute_force_migration"] == 0.0
    assert row["brute_force_nodes"] == 3
    assert row["brute_force_placement"] == [0, 1, 2]
    assert row["brute_force_improvements"] == len(algorithm.trace)
    assert "brute_force_iterations" not in row


def test_summarize_run_without_solution(infeasible_problem):
    algorithm = BruteForce(infeasible_problem)
    row = summarize_run(algorithm, algorithm.execute())
    assert row["brute_force_found"] is False
    assert row["brute_force_cost"] is None
    assert "brute_force_placement" not in row
