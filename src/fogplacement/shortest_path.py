# -*- coding: utf-8 -*-
"""
Shortest paths over the node topology.

The graph has one vertex per compute node and a directed edge wherever the
latency matrix holds a finite value. Two weightings are used:

- "hop":     every edge costs 1, used to check whether a destination can
             still be reached within the remaining routing columns;
- "latency": the link latency, used for reporting latency-optimal paths.
"""

from __future__ import annotations

from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

import networkx as nx

from .config import INF
from .errors import ConfigurationError


class ShortestPathGraph:
    def __init__(
        self,
        vertices: Iterable[Hashable],
        edges: Iterable[Tuple[Hashable, Hashable, float]],
    ):
        self.graph = nx.DiGraph()
        self.graph.add_nodes_from(vertices)
        for u, v, w in edges:
            if w < 0:
                raise ConfigurationError(f"Negative edge weight {w} on ({u}, {v})")
            self.graph.add_edge(u, v, weight=float(w))

        self.source: Optional[Hashable] = None
        self._distances: Dict[Hashable, float] = {}
        self._paths: Dict[Hashable, List[Hashable]] = {}

    @classmethod
    def from_latency_matrix(
        cls, latency: Sequence[Sequence[float]], weight: str = "hop"
    ) -> "ShortestPathGraph":
        if weight not in ("hop", "latency"):
            raise ConfigurationError(f"Unknown edge weighting: {weight}")

        n = len(latency)
        edges = []
        for i in range(n):
            for j in range(n):
                if i == j or latency[i][j] == INF:
                    continue
                edges.append((i, j, 1.0 if weight == "hop" else latency[i][j]))
        return cls(range(n), edges)

    # ================================================================
    # Dijkstra
    # ================================================================
    def execute(self, source: Hashable) -> None:
        """Compute the shortest-path tree rooted at ``source``.

        Results of a previous call are discarded.
        """
        if source not in self.graph:
            raise KeyError(f"Unknown vertex: {source}")

        distances, paths = nx.single_source_dijkstra(self.graph, source, weight="weight")
        self.source = source
        self._distances = distances
        self._paths = paths

    def get_path(self, target: Hashable) -> Optional[List[Hashable]]:
        """Vertices from the last ``execute`` source to ``target``.

        ``None`` when the target is unreachable, ``[source]`` when the target
        is the source itself.
        """
        if self.source is None:
            raise RuntimeError("execute() must be called before get_path()")
        path = self._paths.get(target)
        return list(path) if path is not None else None

    def get_distance(self, target: Hashable) -> float:
        if self.source is None:
            raise RuntimeError("execute() must be called before get_distance()")
        return self._distances.get(target, INF)

    def distance_matrix(self) -> List[List[float]]:
        """All-pairs shortest distances (INF when unreachable), in vertex order."""
        vertices = list(self.graph.nodes())
        matrix = []
        for source in vertices:
            self.execute(source)
            matrix.append([self.get_distance(target) for target in vertices])
        return matrix
