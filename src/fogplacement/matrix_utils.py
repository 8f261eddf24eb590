# -*- coding: utf-8 -*-
"""
Small matrix helpers on top of numpy.

Besides the generic operations (multiply / transpose / dot / sums) this module
converts between the two placement encodings used across the package:

- placement vector: ``placement[module] = node``;
- placement matrix: N×M binary, ``matrix[node][module] == 1``.
"""

from __future__ import annotations

from typing import List, Sequence

import numpy as np


def multiply(a, b) -> np.ndarray:
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.shape[-1] != b.shape[0]:
        raise ValueError(f"Cannot multiply matrices of shape {a.shape} and {b.shape}")
    return a @ b


def transpose(a) -> np.ndarray:
    return np.asarray(a).T


def dot(a, b) -> float:
    a = np.asarray(a, dtype=float).ravel()
    b = np.asarray(b, dtype=float).ravel()
    if a.shape != b.shape:
        raise ValueError(f"Cannot take the dot product of sizes {a.size} and {b.size}")
    return float(np.dot(a, b))


def matrix_sum(a) -> float:
    return float(np.asarray(a, dtype=float).sum())


def vector_sum(a, axis: int = 0) -> np.ndarray:
    return np.asarray(a, dtype=float).sum(axis=axis)


def placement_vector_to_matrix(placement: Sequence[int], node_count: int) -> List[List[int]]:
    """Binary N×M matrix; modules with a negative node stay unplaced."""
    matrix = [[0] * len(placement) for _ in range(node_count)]
    for module, node in enumerate(placement):
        if 0 <= node < node_count:
            matrix[node][module] = 1
    return matrix


def placement_matrix_to_vector(matrix: Sequence[Sequence[int]]) -> List[int]:
    """Host node of every module, -1 when a column does not hold exactly one 1."""
    arr = np.rint(np.asarray(matrix, dtype=float)).astype(int)
    placement = []
    for column in arr.T:
        hosts = np.flatnonzero(column == 1)
        placement.append(int(hosts[0]) if hosts.size == 1 and column.sum() == 1 else -1)
    return placement


def routing_from_link_matrix(
    links: Sequence[Sequence[int]], source: int, destination: int, length: int
) -> List[int]:
    """
    Turn a binary link matrix (``links[i][j] == 1`` when the route uses link
    i -> j) into a hop path of ``length`` columns starting at ``source``.

    Links are followed from the source until no unvisited successor is left;
    the remaining columns are padded with the last node reached. The last
    column is always the last node reached, so a broken flow shows up as an
    endpoint mismatch rather than being hidden.
    """
    arr = np.rint(np.asarray(links, dtype=float)).astype(int)
    path = [source]
    visited = {source}
    current = source

    while current != destination and len(path) < length:
        successors = [int(j) for j in np.flatnonzero(arr[current] == 1) if int(j) not in visited]
        if not successors:
            break
        current = successors[0]
        visited.add(current)
        path.append(current)

    path += [current] * (length - len(path))
    return path
