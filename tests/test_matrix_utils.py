# -*- coding: utf-8 -*-
import numpy as np
import pytest

from fogplacement.matrix_utils import (
    dot,
    matrix_sum,
    multiply,
    placement_matrix_to_vector,
    placement_vector_to_matrix,
    routing_from_link_matrix,
    transpose,
    vector_sum,
)


def test_basic_operations():
    a = [[1, 2], [3, 4]]
    b = [[5], [6]]
    assert multiply(a, b).tolist() == [[17.0], [39.0]]
    assert transpose(a).tolist() == [[1, 3], [2, 4]]
    assert dot([1, 2, 3], [4, 5, 6]) == 32.0
    assert matrix_sum(a) == 10.0
    assert vector_sum(a, axis=0).tolist() == [4.0, 6.0]
    assert vector_sum(a, axis=1).tolist() == [3.0, 7.0]


def test_shape_mismatch():
    with pytest.raises(ValueError):
        multiply([[1, 2]], [[1, 2]])
    with pytest.raises(ValueError):
        dot([1, 2], [1, 2, 3])


def test_placement_encodings():
    matrix = placement_vector_to_matrix([2, 0, 2], 3)
    assert matrix == [[0, 1, 0], [0, 0, 0], [1, 0, 1]]
    assert placement_matrix_to_vector(matrix) == [2, 0, 2]


def test_ambiguous_placement_column():
    matrix = np.array([[1, 0], [1, 0]])
    assert placement_matrix_to_vector(matrix) == [-1, -1]


def test_routing_from_link_matrix():
    links = [
        [0, 0, 1, 0],
        [0, 0, 0, 0],
        [0, 0, 0, 1],
        [0, 0, 0, 0],
    ]
    assert routing_from_link_matrix(links, 0, 3, 4) == [0, 2, 3, 3]
    assert routing_from_link_matrix(links, 1, 1, 4) == [1, 1, 1, 1]


def test_broken_flow_ends_on_last_reached_node():
    links = [[0, 1, 0], [0, 0, 0], [0, 0, 0]]
    assert routing_from_link_matrix(links, 0, 2, 3) == [0, 1, 1]
