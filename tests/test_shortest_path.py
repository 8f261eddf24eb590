# -*- coding: utf-8 -*-
import pytest

from fogplacement.errors import ConfigurationError
from fogplacement.shortest_path import ShortestPathGraph

INF = float("inf")

LINE_WITH_ISLAND = [
    [0.0, 2.0, INF, INF],
    [2.0, 0.0, 3.0, INF],
    [INF, 3.0, 0.0, INF],
    [INF, INF, INF, 0.0],
]


def test_latency_weighted_path():
    graph = ShortestPathGraph.from_latency_matrix(
        [[0, 1, 10], [1, 0, 1], [10, 1, 0]], weight="latency"
    )
    graph.execute(0)
    assert graph.get_path(2) == [0, 1, 2]
    assert graph.get_distance(2) == pytest.approx(2.0)


def test_hop_weighted_path_prefers_fewer_links():
    graph = ShortestPathGraph.from_latency_matrix(
        [[0, 1, 10], [1, 0, 1], [10, 1, 0]], weight="hop"
    )
    graph.execute(0)
    assert graph.get_path(2) == [0, 2]
    assert graph.get_distance(2) == 1


def test_unreachable_and_self():
    graph = ShortestPathGraph.from_latency_matrix(LINE_WITH_ISLAND)
    graph.execute(0)
    assert graph.get_path(3) is None
    assert graph.get_distance(3) == INF
    assert graph.get_path(0) == [0]
    assert graph.get_distance(0) == 0


def test_repeated_execute_replaces_results():
    graph = ShortestPathGraph.from_latency_matrix(LINE_WITH_ISLAND, weight="latency")
    graph.execute(0)
    assert graph.get_path(2) == [0, 1, 2]
    graph.execute(2)
    assert graph.get_path(0) == [2, 1, 0]
    assert graph.get_distance(1) == pytest.approx(3.0)


def test_distance_matrix():
    graph = ShortestPathGraph.from_latency_matrix(LINE_WITH_ISLAND)
    matrix = graph.distance_matrix()
    assert matrix[0][2] == 2
    assert matrix[2][0] == 2
    assert matrix[0][3] == INF
    assert [matrix[i][i] for i in range(4)] == [0, 0, 0, 0]


def test_errors():
    graph = ShortestPathGraph.from_latency_matrix(LINE_WITH_ISLAND)
    with pytest.raises(RuntimeError):
        graph.get_path(1)
    with pytest.raises(KeyError):
        graph.execute(9)
    with pytest.raises(ConfigurationError):
        ShortestPathGraph.from_latency_matrix(LINE_WITH_ISLAND, weight="bandwidth")
    with pytest.raises(ConfigurationError):
        ShortestPathGraph([0, 1], [(0, 1, -1.0)])
