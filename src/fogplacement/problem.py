# -*- coding: utf-8 -*-
"""
Static inputs of one placement run.

A ``ProblemModel`` is built from a ``test_case`` dict. Field conventions:

- "test_data_id": identifier (optional)
- "node_count": number of compute nodes N
- "module_count": number of application modules M
- "computation_capacity": [[mips, ram, storage], ...] per node
  (an optional 4th entry is the node bandwidth)
- "resource_demands": [[mips, ram, storage], ...] per module
  (an optional 4th entry is the module bandwidth)
- "node_costs": [[mips_price, ram_price, storage_price, bw_price], ...]
  or dicts with those keys
- "node_power": [[idle_power, busy_power], ...] (optional, default 0)
- "latency_matrix": N×N, INF / null / "inf" means no link
- "bandwidth_matrix": N×N available bandwidth, 0 means no link
- "dependency_matrix": M×M, nonzero (i, j) means module i sends to module j
- "bandwidth_demand_matrix": M×M bandwidth needed per dependency (optional)
- "possible_deployment": N×M in {0, 1} (optional, default all ones)
- "current_placement": N×M binary matrix or a list of M node indices,
  present only when re-optimizing a running deployment
- "node_names" / "module_names": labels used in reports (optional)

Every matrix field may also be given as a JSON string, which is how the
experiment CSV files store them.
"""

from __future__ import annotations

import copy
import json
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import INF
from .errors import ConfigurationError
from .shortest_path import ShortestPathGraph


_INF_TOKENS = ("inf", "infinity", "+inf")


def _parse_array(value: Any, name: str) -> Any:
    """Accept a nested list or its JSON string form."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Cannot parse field {name}: {e}") from e
    if isinstance(value, np.ndarray):
        return value.tolist()
    return value


def _to_float(value: Any, name: str) -> float:
    if value is None:
        return INF
    if isinstance(value, str):
        if value.strip().lower() in _INF_TOKENS:
            return INF
        try:
            return float(value)
        except ValueError as e:
            raise ConfigurationError(f"Non numeric value {value!r} in {name}") from e
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Non numeric value {value!r} in {name}") from e
    if math.isnan(result):
        raise ConfigurationError(f"NaN in {name}")
    return result


def _matrix(value: Any, rows: int, cols: int, name: str) -> List[List[float]]:
    value = _parse_array(value, name)
    if not isinstance(value, (list, tuple)) or len(value) != rows:
        raise ConfigurationError(f"{name} must have {rows} rows")
    result = []
    for i, row in enumerate(value):
        if not isinstance(row, (list, tuple)) or len(row) != cols:
            raise ConfigurationError(f"{name}[{i}] must have {cols} columns")
        result.append([_to_float(x, name) for x in row])
    return result


def _records(value: Any, count: int, width: int, keys: Tuple[str, ...], name: str) -> List[List[float]]:
    """Per-entity vectors given either as lists or as dicts keyed by ``keys``."""
    value = _parse_array(value, name)
    if not isinstance(value, (list, tuple)) or len(value) != count:
        raise ConfigurationError(f"{name} must have {count} entries")
    result = []
    for i, item in enumerate(value):
        if isinstance(item, dict):
            row = [_to_float(item.get(k, 0.0), name) for k in keys]
        else:
            if not isinstance(item, (list, tuple)) or len(item) < width:
                raise ConfigurationError(f"{name}[{i}] must have at least {width} values")
            row = [_to_float(x, name) for x in item[: len(keys)]]
            row += [0.0] * (len(keys) - len(row))
        result.append(row)
    return result


class ProblemModel:
    """Immutable container of the node/module data shared by all algorithms."""

    def __init__(self, test_case: Dict[str, Any]):
        self.test_data_id: int = int(test_case.get("test_data_id", -1))

        # ---------------- sizes ----------------
        try:
            self.node_count: int = int(test_case["node_count"])
            self.module_count: int = int(test_case["module_count"])
        except KeyError as e:
            raise ConfigurationError(f"Missing field {e.args[0]}") from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid size field: {e}") from e

        if self.node_count < 1:
            raise ConfigurationError("node_count must be >= 1")
        if self.module_count < 1:
            raise ConfigurationError("module_count must be >= 1")

        n, m = self.node_count, self.module_count

        # ---------------- nodes ----------------
        capacity = _records(
            test_case.get("computation_capacity"), n, 3,
            ("mips", "ram", "storage", "bandwidth"), "computation_capacity",
        )
        self.node_mips: List[float] = [c[0] for c in capacity]
        self.node_ram: List[float] = [c[1] for c in capacity]
        self.node_storage: List[float] = [c[2] for c in capacity]
        self.node_bandwidth: List[float] = [c[3] for c in capacity]

        for i, mips in enumerate(self.node_mips):
            if mips <= 0 or mips == INF:
                raise ConfigurationError(f"Node {i} must have a finite positive MIPS capacity")

        costs = _records(
            test_case.get("node_costs", [[0.0] * 4 for _ in range(n)]), n, 1,
            ("mips_price", "ram_price", "storage_price", "bw_price"), "node_costs",
        )
        self.node_mips_price: List[float] = [c[0] for c in costs]
        self.node_ram_price: List[float] = [c[1] for c in costs]
        self.node_storage_price: List[float] = [c[2] for c in costs]
        self.node_bw_price: List[float] = [c[3] for c in costs]

        power = _records(
            test_case.get("node_power", [[0.0, 0.0] for _ in range(n)]), n, 2,
            ("idle_power", "busy_power"), "node_power",
        )
        self.node_idle_power: List[float] = [p[0] for p in power]
        self.node_busy_power: List[float] = [p[1] for p in power]

        # ---------------- modules ----------------
        demands = _records(
            test_case.get("resource_demands"), m, 3,
            ("mips", "ram", "storage", "bandwidth"), "resource_demands",
        )
        self.module_mips: List[float] = [d[0] for d in demands]
        self.module_ram: List[float] = [d[1] for d in demands]
        self.module_storage: List[float] = [d[2] for d in demands]
        self.module_bandwidth: List[float] = [d[3] for d in demands]

        for j in range(m):
            if min(self.module_mips[j], self.module_ram[j], self.module_storage[j]) < 0:
                raise ConfigurationError(f"Module {j} has a negative resource demand")

        # ---------------- topology ----------------
        self.latency_matrix = _matrix(test_case.get("latency_matrix"), n, n, "latency_matrix")
        self.bandwidth_matrix = _matrix(test_case.get("bandwidth_matrix"), n, n, "bandwidth_matrix")

        for i in range(n):
            # a node always reaches itself at zero cost
            self.latency_matrix[i][i] = 0.0
            self.bandwidth_matrix[i][i] = INF
            for j in range(n):
                if self.latency_matrix[i][j] < 0:
                    raise ConfigurationError(f"Negative latency between {i} and {j}")
                if self.bandwidth_matrix[i][j] < 0:
                    raise ConfigurationError(f"Negative bandwidth between {i} and {j}")

        # ---------------- application ----------------
        self.dependency_matrix = _matrix(test_case.get("dependency_matrix"), m, m, "dependency_matrix")
        demand = test_case.get("bandwidth_demand_matrix")
        if demand is None:
            self.bandwidth_demand_matrix = [[0.0] * m for _ in range(m)]
        else:
            self.bandwidth_demand_matrix = _matrix(demand, m, m, "bandwidth_demand_matrix")

        # dependency list, row-major
        self.start_modules: List[int] = []
        self.final_modules: List[int] = []
        for i in range(m):
            for j in range(m):
                if self.dependency_matrix[i][j] != 0:
                    self.start_modules.append(i)
                    self.final_modules.append(j)
        self.dependency_count: int = len(self.start_modules)

        # ---------------- constraints ----------------
        deployment = test_case.get("possible_deployment")
        if deployment is None:
            self.possible_deployment = [[1] * m for _ in range(n)]
        else:
            raw = _matrix(deployment, n, m, "possible_deployment")
            if any(x not in (0.0, 1.0) for row in raw for x in row):
                raise ConfigurationError("possible_deployment must be binary")
            self.possible_deployment = [[int(x) for x in row] for row in raw]

        self._legal_nodes: List[List[int]] = []
        for j in range(m):
            legal = [i for i in range(n) if self.possible_deployment[i][j] == 1]
            if not legal:
                raise ConfigurationError(f"Module {j} has no legal deployment node")
            self._legal_nodes.append(legal)

        self.current_placement: Optional[List[int]] = self._parse_current_placement(
            test_case.get("current_placement")
        )

        self.node_names: List[str] = list(
            _parse_array(test_case.get("node_names"), "node_names") or [f"node{i}" for i in range(n)]
        )
        self.module_names: List[str] = list(
            _parse_array(test_case.get("module_names"), "module_names") or [f"module{j}" for j in range(m)]
        )
        if len(self.node_names) != n or len(self.module_names) != m:
            raise ConfigurationError("node_names/module_names do not match the node/module counts")

        # ---------------- derived ----------------
        self.hop_graph = ShortestPathGraph.from_latency_matrix(self.latency_matrix, weight="hop")
        self.hop_distance: List[List[float]] = self.hop_graph.distance_matrix()

        self._test_case = copy.deepcopy(dict(test_case))

    # ================================================================
    # Construction helpers
    # ================================================================
    def _parse_current_placement(self, value: Any) -> Optional[List[int]]:
        value = _parse_array(value, "current_placement")
        if value is None:
            return None

        n, m = self.node_count, self.module_count
        if len(value) == m and all(not isinstance(x, (list, tuple)) for x in value):
            placement = [int(x) for x in value]
        else:
            matrix = _matrix(value, n, m, "current_placement")
            placement = []
            for j in range(m):
                hosts = [i for i in range(n) if matrix[i][j] == 1]
                if len(hosts) != 1:
                    raise ConfigurationError(
                        f"current_placement must place module {j} on exactly one node"
                    )
                placement.append(hosts[0])

        for j, node in enumerate(placement):
            if not 0 <= node < n:
                raise ConfigurationError(f"current_placement puts module {j} on unknown node {node}")
        return placement

    # ================================================================
    # Accessors
    # ================================================================
    @property
    def is_first_optimization(self) -> bool:
        return self.current_placement is None

    def legal_nodes(self, module: int) -> List[int]:
        return list(self._legal_nodes[module])

    def is_legal(self, node: int, module: int) -> bool:
        return 0 <= node < self.node_count and self.possible_deployment[node][module] == 1

    def current_node(self, module: int) -> Optional[int]:
        if self.current_placement is None:
            return None
        return self.current_placement[module]

    def get_node_capacity(self, node: int) -> Tuple[float, float, float]:
        return self.node_mips[node], self.node_ram[node], self.node_storage[node]

    def get_module_demand(self, module: int) -> Tuple[float, float, float]:
        return self.module_mips[module], self.module_ram[module], self.module_storage[module]

    def get_link_latency(self, from_node: int, to_node: int) -> float:
        return self.latency_matrix[from_node][to_node]

    def get_link_bandwidth(self, from_node: int, to_node: int) -> float:
        return self.bandwidth_matrix[from_node][to_node]

    def has_link(self, from_node: int, to_node: int) -> bool:
        return self.latency_matrix[from_node][to_node] != INF

    def neighbours(self, node: int) -> List[int]:
        """Nodes reachable over one physical link (the node itself excluded)."""
        return [
            z for z in range(self.node_count)
            if z != node and self.latency_matrix[node][z] != INF
        ]

    def dependency(self, index: int) -> Tuple[int, int]:
        return self.start_modules[index], self.final_modules[index]

    def dependency_weight(self, index: int) -> float:
        i, j = self.dependency(index)
        return self.dependency_matrix[i][j]

    def dependency_bandwidth(self, index: int) -> float:
        i, j = self.dependency(index)
        return self.bandwidth_demand_matrix[i][j]

    def module_size(self, module: int) -> float:
        """Amount of state moved when a module migrates."""
        return self.module_ram[module] + self.module_storage[module]

    def total_dependency(self, module: int) -> float:
        """Sum of the dependency intensities flowing into ``module``."""
        return sum(self.dependency_matrix[l][module] for l in range(self.module_count))

    def is_valid_hop(self, node: int, final_node: int, max_distance: int) -> bool:
        """Can ``final_node`` be reached from ``node`` visiting at most
        ``max_distance`` vertices (both ends included)?"""
        if node == final_node:
            return True
        hops = self.hop_distance[node][final_node]
        if hops == INF:
            return False
        return hops + 1 <= max_distance

    def capacity_array(self) -> np.ndarray:
        """N×3 array of node (mips, ram, storage) capacities."""
        return np.array(
            [self.node_mips, self.node_ram, self.node_storage], dtype=float
        ).T

    def demand_array(self) -> np.ndarray:
        """M×3 array of module (mips, ram, storage) demands."""
        return np.array(
            [self.module_mips, self.module_ram, self.module_storage], dtype=float
        ).T

    def to_dict(self) -> Dict[str, Any]:
        """The test_case this model was built from (safe to pickle)."""
        return copy.deepcopy(self._test_case)

    def copy(self) -> "ProblemModel":
        return ProblemModel(self.to_dict())

    def __repr__(self) -> str:
        return (
            f"ProblemModel(id={self.test_data_id}, nodes={self.node_count}, "
            f"modules={self.module_count}, dependencies={self.dependency_count})"
        )
