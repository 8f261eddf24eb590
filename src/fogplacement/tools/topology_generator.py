#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Fog topology generator.

Builds the node graph of an experiment:
   - hierarchical : cloud / fog / edge tiers; every node of a tier is linked
                    to ``uplinks`` nodes of the tier above, plus optional
                    links between nodes of the same tier
   - random       : random connected graph (spanning tree + extra edges)
   - mesh         : every node has degree >= min_degree

Every edge carries a ``latency`` and a ``bandwidth`` attribute and every node
a ``tier`` attribute, so the graph converts directly into the latency and
bandwidth matrices of a placement problem.

Output when run as a script:
   - <name>_adjacency.json / <name>_latency.json / <name>_bandwidth.json:
     N×N matrices
   - <name>_topology.png: drawing of the graph

Edit CONFIG below and run the module, no command line arguments needed.
"""

import json
import logging
import os
import random
from typing import Dict, List, Optional, Tuple

import matplotlib
import networkx as nx

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from ..config import INF
from ..errors import ConfigurationError


logger = logging.getLogger(__name__)


# ==========================
# Parameters
# ==========================

CONFIG = {
    # "hierarchical" | "random" | "mesh"
    "topology_type": "hierarchical",

    # relative to the current working directory
    "output_dir": "topology_output",

    "random_seed": 42,

    # ---- hierarchical ----
    "hierarchical": {
        "tier_names": ["cloud", "fog", "edge"],
        "tier_sizes": [1, 2, 4],
        "uplinks": 1,                       # links to the tier above per node
        "intra_tier_prob": 0.0,             # probability of a link inside a tier
        # link parameters per tier, index = tier of the lower end
        "latency": [0.0, 50.0, 5.0],
        "bandwidth": [0.0, 1000.0, 100.0],
    },

    # ---- random ----
    "random": {
        "node_count": 10,
        "edge_prob": 0.2,
        "latency_range": [1.0, 20.0],
        "bandwidth_range": [100.0, 1000.0],
    },

    # ---- mesh ----
    "mesh": {
        "node_count": 8,
        "min_degree": 3,                    # must be < node_count
        "latency_range": [1.0, 10.0],
        "bandwidth_range": [100.0, 1000.0],
    },
}


# ==========================
# Helpers
# ==========================

def ensure_dir(path: str) -> None:
    if not os.path.exists(path):
        os.makedirs(path, exist_ok=True)


def graph_to_adjacency_matrix(G: nx.Graph) -> List[List[int]]:
    """Symmetric 0/1 adjacency matrix, nodes in ascending order."""
    nodes = sorted(G.nodes())
    index_map = {node: idx for idx, node in enumerate(nodes)}
    n = len(nodes)
    mat = [[0] * n for _ in range(n)]

    for u, v in G.edges():
        i = index_map[u]
        j = index_map[v]
        mat[i][j] = 1
        mat[j][i] = 1

    return mat


def graph_to_latency_matrix(G: nx.Graph) -> List[List[float]]:
    """Link latency matrix: 0 on the diagonal, INF where there is no link."""
    nodes = sorted(G.nodes())
    index_map = {node: idx for idx, node in enumerate(nodes)}
    n = len(nodes)
    mat = [[INF] * n for _ in range(n)]
    for i in range(n):
        mat[i][i] = 0.0

    for u, v, data in G.edges(data=True):
        latency = float(data.get("latency", 1.0))
        mat[index_map[u]][index_map[v]] = latency
        mat[index_map[v]][index_map[u]] = latency

    return mat


def graph_to_bandwidth_matrix(G: nx.Graph) -> List[List[float]]:
    """Link bandwidth matrix: 0 where there is no link."""
    nodes = sorted(G.nodes())
    index_map = {node: idx for idx, node in enumerate(nodes)}
    n = len(nodes)
    mat = [[0.0] * n for _ in range(n)]

    for u, v, data in G.edges(data=True):
        bandwidth = float(data.get("bandwidth", 0.0))
        mat[index_map[u]][index_map[v]] = bandwidth
        mat[index_map[v]][index_map[u]] = bandwidth

    return mat


def matrix_to_json(matrix: List[List[float]]) -> str:
    """JSON text of a matrix, INF written as null."""
    return json.dumps([[None if x == INF else x for x in row] for row in matrix])


def draw_graph(
    G: nx.Graph,
    filepath: str,
    pos: Optional[Dict[int, Tuple[float, float]]] = None,
    title: str = ""
) -> None:
    plt.figure(figsize=(8, 6))

    if pos is None:
        pos = nx.spring_layout(G, seed=42)

    tiers = sorted({data.get("tier", 0) for _, data in G.nodes(data=True)})
    colors = [tiers.index(G.nodes[node].get("tier", 0)) for node in G.nodes()]

    nx.draw_networkx_nodes(G, pos, node_size=300, node_color=colors, cmap=plt.cm.Blues, vmin=-1)
    nx.draw_networkx_edges(G, pos, width=1.0, alpha=0.8)
    nx.draw_networkx_labels(G, pos, font_size=8)
    edge_labels = {(u, v): f"{d.get('latency', 0):g}" for u, v, d in G.edges(data=True)}
    nx.draw_networkx_edge_labels(G, pos, edge_labels=edge_labels, font_size=6)

    plt.title(title)
    plt.axis("off")
    plt.tight_layout()
    plt.savefig(filepath, dpi=200)
    plt.close()


# ==========================
# Generator
# ==========================

class TopologyGenerator:
    def __init__(self, config: Dict, rng: Optional[random.Random] = None):
        self.config = config
        self.rng = rng if rng is not None else random.Random(config.get("random_seed"))

    def generate(self) -> Tuple[nx.Graph, str, Dict[int, Tuple[float, float]]]:
        ttype = self.config.get("topology_type", "hierarchical").lower()

        if ttype == "hierarchical":
            return self._generate_hierarchical()
        if ttype == "random":
            return self._generate_random()
        if ttype == "mesh":
            return self._generate_mesh()
        raise ConfigurationError(f"Unknown topology type: {ttype}")

    def _uniform(self, bounds) -> float:
        low, high = float(bounds[0]), float(bounds[1])
        return round(self.rng.uniform(low, high), 3)

    def _spanning_tree(self, G: nx.Graph, n: int, params: Dict) -> None:
        """Random spanning tree, keeps the graph connected."""
        nodes = list(range(n))
        self.rng.shuffle(nodes)
        for i in range(1, n):
            u = nodes[i]
            v = self.rng.choice(nodes[:i])
            G.add_edge(u, v, latency=self._uniform(params["latency_range"]),
                       bandwidth=self._uniform(params["bandwidth_range"]))

    # ---- 1. cloud / fog / edge ----
    def _generate_hierarchical(self) -> Tuple[nx.Graph, str, Dict[int, Tuple[float, float]]]:
        params = self.config["hierarchical"]
        tier_sizes = [int(s) for s in params["tier_sizes"]]
        tier_names = list(params.get("tier_names", [f"tier{t}" for t in range(len(tier_sizes))]))
        uplinks = int(params.get("uplinks", 1))
        intra_prob = float(params.get("intra_tier_prob", 0.0))

        if len(tier_names) != len(tier_sizes):
            raise ConfigurationError("tier_names and tier_sizes must have the same length")
        if any(s < 1 for s in tier_sizes):
            raise ConfigurationError("every tier needs at least one node")

        G = nx.Graph()
        tiers: List[List[int]] = []
        current_node_id = 0
        for tier, size in enumerate(tier_sizes):
            nodes = list(range(current_node_id, current_node_id + size))
            current_node_id += size
            tiers.append(nodes)
            for node in nodes:
                G.add_node(node, tier=tier, tier_name=tier_names[tier])

        for tier in range(1, len(tiers)):
            upper = tiers[tier - 1]
            latency = float(params["latency"][tier])
            bandwidth = float(params["bandwidth"][tier])
            for i, node in enumerate(tiers[tier]):
                # the first uplink is spread round robin, so every upper node gets children
                parents = [upper[i % len(upper)]]
                others = [u for u in upper if u != parents[0]]
                parents += self.rng.sample(others, min(len(others), max(0, uplinks - 1)))
                for parent in parents:
                    G.add_edge(node, parent, latency=latency, bandwidth=bandwidth)

            for a in range(len(tiers[tier])):
                for b in range(a + 1, len(tiers[tier])):
                    if self.rng.random() < intra_prob:
                        G.add_edge(tiers[tier][a], tiers[tier][b], latency=latency, bandwidth=bandwidth)

        name = "hierarchical_" + "-".join(str(s) for s in tier_sizes) + f"_N{G.number_of_nodes()}"

        pos: Dict[int, Tuple[float, float]] = {}
        for tier, nodes in enumerate(tiers):
            n = len(nodes)
            for i, node in enumerate(nodes):
                pos[node] = (i - (n - 1) / 2, -tier)

        return G, name, pos

    # ---- 2. random ----
    def _generate_random(self) -> Tuple[nx.Graph, str, Dict[int, Tuple[float, float]]]:
        params = self.config["random"]
        n = int(params["node_count"])
        p = float(params["edge_prob"])

        G = nx.Graph()
        G.add_nodes_from(range(n), tier=0)
        self._spanning_tree(G, n, params)

        for u in range(n):
            for v in range(u + 1, n):
                if G.has_edge(u, v):
                    continue
                if self.rng.random() < p:
                    G.add_edge(u, v, latency=self._uniform(params["latency_range"]),
                               bandwidth=self._uniform(params["bandwidth_range"]))

        name = f"random_N{n}_p{p:.2f}"
        pos = nx.spring_layout(G, seed=42)
        return G, name, pos

    # ---- 3. mesh ----
    def _generate_mesh(self) -> Tuple[nx.Graph, str, Dict[int, Tuple[float, float]]]:
        params = self.config["mesh"]
        n = int(params["node_count"])
        d_min = int(params["min_degree"])

        if d_min >= n:
            raise ConfigurationError(f"min_degree ({d_min}) must be smaller than node_count ({n})")

        G = nx.Graph()
        G.add_nodes_from(range(n), tier=0)
        self._spanning_tree(G, n, params)

        max_attempts = n * n * 10
        attempts = 0

        def all_ok():
            return all(G.degree(i) >= d_min for i in G.nodes())

        while not all_ok() and attempts < max_attempts:
            attempts += 1
            low_deg_nodes = [i for i in G.nodes() if G.degree(i) < d_min]
            u = self.rng.choice(low_deg_nodes)

            candidates = [v for v in G.nodes() if v != u and not G.has_edge(u, v)]
            if not candidates:
                continue
            v = self.rng.choice(candidates)
            G.add_edge(u, v, latency=self._uniform(params["latency_range"]),
                       bandwidth=self._uniform(params["bandwidth_range"]))

        if not all_ok():
            logger.warning("attempt budget exhausted, some nodes still have degree < %d", d_min)

        name = f"mesh_N{n}_d{d_min}"
        pos = nx.spring_layout(G, seed=42)
        return G, name, pos


# ==========================
# Entry point
# ==========================

def main():
    output_dir = os.path.abspath(CONFIG["output_dir"])
    ensure_dir(output_dir)

    gen = TopologyGenerator(CONFIG)
    G, topo_name, pos = gen.generate()

    print(f"Topology: {topo_name}")
    print(f"Nodes: {G.number_of_nodes()}, edges: {G.number_of_edges()}")

    for suffix, matrix in (
        ("adjacency", graph_to_adjacency_matrix(G)),
        ("latency", graph_to_latency_matrix(G)),
        ("bandwidth", graph_to_bandwidth_matrix(G)),
    ):
        path = os.path.join(output_dir, f"{topo_name}_{suffix}.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write(matrix_to_json(matrix))
        print(f"Saved {suffix} matrix to: {path}")

    img_path = os.path.join(output_dir, f"{topo_name}_topology.png")
    draw_graph(G, img_path, pos=pos, title=topo_name)
    print(f"Saved drawing to: {img_path}")


if __name__ == "__main__":
    main()
