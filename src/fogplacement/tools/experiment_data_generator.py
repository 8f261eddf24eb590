#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Experiment data generator.

Enumerates the cartesian product of the scenario dimensions below and writes
one CSV row per scenario:

1. topology: a TopologyGenerator config (hierarchical cloud/fog/edge, random
   or mesh graph);
2. node catalogue: resource capacities, prices and power of every tier;
3. application: modules (mips / ram / storage) and their dependencies
   (intensity / bandwidth demand), with modules pinned to tiers where a
   sensor or actuator is attached;
4. price scale: multiplier of every node price;
5. re-optimization: whether the row carries a current placement.

Matrix columns are JSON strings (INF latency written as null), which is what
``fogplacement.experiment.run_comparison.build_test_data_from_row`` reads
back. Rows are written in batches and merged into one CSV at the end.

All knobs live in the configuration block below; run the module to
generate the data.
"""

import copy
import itertools
import json
import os
import random
import time
from typing import Any, Dict, List, Optional

import networkx as nx
import pandas as pd

from ..problem import ProblemModel
from ..solution import SolutionGenerator
from .topology_generator import (
    TopologyGenerator,
    ensure_dir,
    graph_to_bandwidth_matrix,
    graph_to_latency_matrix,
    matrix_to_json,
)

# ============================================================
# 1. Configuration
# ============================================================

OUTPUT_DIR = os.path.join("data", "test_data")
BATCH_SIZE = 5000
FINAL_CSV_NAME = "experiment_all.csv"

# ---- topologies (TopologyGenerator configs) ----
TOPOLOGY_LIBRARY: Dict[str, Dict[str, Any]] = {
    "tiers_1-2-4": {
        "topology_type": "hierarchical",
        "hierarchical": {
            "tier_names": ["cloud", "fog", "edge"],
            "tier_sizes": [1, 2, 4],
            "uplinks": 1,
            "intra_tier_prob": 0.0,
            "latency": [0.0, 100.0, 4.0],
            "bandwidth": [0.0, 10000.0, 10000.0],
        },
    },
    "tiers_1-2-4_meshed": {
        "topology_type": "hierarchical",
        "hierarchical": {
            "tier_names": ["cloud", "fog", "edge"],
            "tier_sizes": [1, 2, 4],
            "uplinks": 2,
            "intra_tier_prob": 0.5,
            "latency": [0.0, 100.0, 4.0],
            "bandwidth": [0.0, 10000.0, 10000.0],
        },
    },
}

# ---- node catalogue, one profile per tier (index = tier) ----
NODE_CATALOG: Dict[str, List[Dict[str, float]]] = {
    "cloud_fog_mobile": [
        {"mips": 44800, "ram": 40000, "storage": 1000000, "bandwidth": 10000,
         "busy_power": 16 * 103, "idle_power": 16 * 83.25,
         "mips_price": 0.01, "ram_price": 0.05, "storage_price": 0.001, "bw_price": 0.0},
        {"mips": 2800, "ram": 4000, "storage": 1000000, "bandwidth": 10000,
         "busy_power": 107.339, "idle_power": 83.4333,
         "mips_price": 0.0, "ram_price": 0.05, "storage_price": 0.001, "bw_price": 0.0},
        {"mips": 1000, "ram": 1000, "storage": 1000000, "bandwidth": 10000,
         "busy_power": 87.53, "idle_power": 82.44,
         "mips_price": 0.0, "ram_price": 0.05, "storage_price": 0.001, "bw_price": 0.0},
    ],
}

# ---- applications ----
#   modules:      name, mips, ram, storage, tier it is pinned to (None = anywhere)
#   dependencies: source, destination, intensity, bandwidth demand
APPLICATION_CATALOG: Dict[str, Dict[str, Any]] = {
    "vr_game": {
        "modules": [
            {"name": "client", "mips": 100, "ram": 100, "storage": 100, "tier": 2},
            {"name": "calculator", "mips": 350, "ram": 100, "storage": 100, "tier": None},
            {"name": "connector", "mips": 100, "ram": 100, "storage": 100, "tier": None},
        ],
        "dependencies": [
            {"source": "client", "destination": "calculator", "intensity": 1.0, "bandwidth": 5.0},
            {"source": "calculator", "destination": "connector", "intensity": 0.1, "bandwidth": 10.0},
            {"source": "calculator", "destination": "client", "intensity": 1.0, "bandwidth": 5.0},
            {"source": "connector", "destination": "client", "intensity": 0.1, "bandwidth": 0.28},
        ],
    },
    "camera_tracking": {
        "modules": [
            {"name": "motion_detector", "mips": 200, "ram": 100, "storage": 100, "tier": 2},
            {"name": "object_detector", "mips": 550, "ram": 100, "storage": 100, "tier": None},
            {"name": "object_tracker", "mips": 300, "ram": 100, "storage": 100, "tier": None},
            {"name": "user_interface", "mips": 100, "ram": 100, "storage": 100, "tier": 0},
        ],
        "dependencies": [
            {"source": "motion_detector", "destination": "object_detector", "intensity": 1.0, "bandwidth": 20.0},
            {"source": "object_detector", "destination": "user_interface", "intensity": 0.05, "bandwidth": 20.0},
            {"source": "object_detector", "destination": "object_tracker", "intensity": 1.0, "bandwidth": 1.0},
        ],
    },
}

GENERATION_CONFIG: Dict[str, Any] = {
    "topology_names": ["tiers_1-2-4", "tiers_1-2-4_meshed"],
    "node_catalog_names": ["cloud_fog_mobile"],
    "application_names": ["vr_game", "camera_tracking"],
    "price_scales": [1.0, 10.0],
    "reoptimize": [False, True],
    "random_seed": 7,
}


# ============================================================
# 2. Test case assembly
# ============================================================

def build_nodes(G: nx.Graph, profiles: List[Dict[str, float]], price_scale: float = 1.0) -> Dict[str, Any]:
    """Per-node capacity / price / power lists from the tier of every node."""
    nodes = sorted(G.nodes())
    capacity, costs, power, names = [], [], [], []
    for node in nodes:
        tier = int(G.nodes[node].get("tier", 0))
        profile = profiles[min(tier, len(profiles) - 1)]
        capacity.append([profile["mips"], profile["ram"], profile["storage"], profile["bandwidth"]])
        costs.append([
            profile["mips_price"] * price_scale,
            profile["ram_price"] * price_scale,
            profile["storage_price"] * price_scale,
            profile["bw_price"] * price_scale,
        ])
        power.append([profile["idle_power"], profile["busy_power"]])
        names.append(f"{G.nodes[node].get('tier_name', 'node')}-{node}")
    return {
        "computation_capacity": capacity,
        "node_costs": costs,
        "node_power": power,
        "node_names": names,
    }


def build_application(application: Dict[str, Any], G: nx.Graph) -> Dict[str, Any]:
    """Module demands, dependency matrices and the possible-deployment matrix."""
    modules = application["modules"]
    index = {module["name"]: j for j, module in enumerate(modules)}
    m = len(modules)
    nodes = sorted(G.nodes())

    dependency = [[0.0] * m for _ in range(m)]
    demand = [[0.0] * m for _ in range(m)]
    for edge in application["dependencies"]:
        i, j = index[edge["source"]], index[edge["destination"]]
        dependency[i][j] = float(edge["intensity"])
        demand[i][j] = float(edge["bandwidth"])

    deployment = [[1] * m for _ in nodes]
    for j, module in enumerate(modules):
        tier = module.get("tier")
        if tier is None:
            continue
        allowed = [G.nodes[node].get("tier", 0) == tier for node in nodes]
        if not any(allowed):
            continue
        for i, ok in enumerate(allowed):
            deployment[i][j] = 1 if ok else 0

    return {
        "module_count": m,
        "module_names": [module["name"] for module in modules],
        "resource_demands": [[module["mips"], module["ram"], module["storage"]] for module in modules],
        "dependency_matrix": dependency,
        "bandwidth_demand_matrix": demand,
        "possible_deployment": deployment,
    }


def build_test_case(
    G: nx.Graph,
    profiles: List[Dict[str, float]],
    application: Dict[str, Any],
    price_scale: float = 1.0,
    test_data_id: int = 0,
) -> Dict[str, Any]:
    """A ``ProblemModel`` test_case dict for one topology / catalogue / application."""
    test_case = {
        "test_data_id": test_data_id,
        "node_count": G.number_of_nodes(),
        "latency_matrix": graph_to_latency_matrix(G),
        "bandwidth_matrix": graph_to_bandwidth_matrix(G),
    }
    test_case.update(build_nodes(G, profiles, price_scale))
    test_case.update(build_application(application, G))
    return test_case


def random_current_placement(test_case: Dict[str, Any], rng: random.Random) -> List[int]:
    """A random legal placement, used as the running deployment of a re-optimization."""
    problem = ProblemModel(test_case)
    return SolutionGenerator(problem, rng).random_placement()


def case_to_row(test_case: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a test_case into a CSV row (lists become JSON strings)."""
    row = {}
    for key, value in test_case.items():
        if key == "latency_matrix":
            row["latency_json"] = matrix_to_json(value)
        elif isinstance(value, (list, tuple)):
            row[f"{key}_json"] = json.dumps(value, ensure_ascii=False)
        else:
            row[key] = value
    return row


# ============================================================
# 3. Generation
# ============================================================

def generate_rows(config: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    config = config if config is not None else GENERATION_CONFIG
    rng = random.Random(config.get("random_seed"))
    rows = []

    for topo_name, catalog_name, app_name, price_scale, reoptimize in itertools.product(
        config["topology_names"],
        config["node_catalog_names"],
        config["application_names"],
        config["price_scales"],
        config["reoptimize"],
    ):
        topo_config = copy.deepcopy(TOPOLOGY_LIBRARY[topo_name])
        G, _, _ = TopologyGenerator(topo_config, rng=random.Random(rng.random())).generate()

        test_case = build_test_case(
            G,
            NODE_CATALOG[catalog_name],
            APPLICATION_CATALOG[app_name],
            price_scale=price_scale,
            test_data_id=len(rows),
        )
        if reoptimize:
            test_case["current_placement"] = random_current_placement(test_case, rng)

        row = {
            "topology_name": topo_name,
            "node_catalog": catalog_name,
            "application_name": app_name,
            "price_scale": price_scale,
            "reoptimize": reoptimize,
        }
        row.update(case_to_row(test_case))
        rows.append(row)

    return rows


def generate_experiment_data(output_dir: str = OUTPUT_DIR, config: Optional[Dict[str, Any]] = None) -> str:
    """Write the scenario rows in batches, merge them, return the merged CSV path."""
    ensure_dir(output_dir)
    batch_files: List[str] = []
    start_time = time.time()

    print("=== Experiment data generation ===")
    rows = generate_rows(config)
    print(f"{len(rows)} scenarios")

    for batch_idx, offset in enumerate(range(0, len(rows), BATCH_SIZE)):
        batch_path = os.path.join(output_dir, f"batch_{batch_idx:04d}.csv")
        pd.DataFrame(rows[offset: offset + BATCH_SIZE]).to_csv(batch_path, index=False, encoding="utf-8")
        print(f"[batch] {batch_path}")
        batch_files.append(batch_path)

    final_path = os.path.join(output_dir, FINAL_CSV_NAME)
    if batch_files:
        final_df = pd.concat([pd.read_csv(p) for p in batch_files], ignore_index=True)
        final_df.to_csv(final_path, index=False, encoding="utf-8")
        print(f"[merged] {final_path}, {len(final_df)} rows")
    else:
        print("[warning] no scenario generated, check GENERATION_CONFIG")

    print(f"=== Done in {time.time() - start_time:.2f} s ===")
    return final_path


def main() -> None:
    generate_experiment_data()


if __name__ == "__main__":
    main()
