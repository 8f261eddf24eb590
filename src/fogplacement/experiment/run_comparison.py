#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Parallel comparison of the placement algorithms on a generated data set.

Input CSV: rows written by ``fogplacement.tools.experiment_data_generator``
(scenario columns + ``*_json`` columns holding the matrices of the test case).

For every row:
1. ``build_test_data_from_row(row)`` rebuilds the ``ProblemModel`` test_case;
2. ``process_test_case`` runs every selected algorithm on its own copy of the
   problem and flattens the outcome with ``summarize_run``
   (``<algorithm>_cost``, ``<algorithm>_elapsed``, ...);
3. results are saved every ``--batch_size`` rows, together with a JSON
   checkpoint of the processed ``test_data_id`` values, so an interrupted run
   resumes where it stopped.

Example:
    python -m fogplacement.experiment.run_comparison \\
        --input data/test_data/experiment_all.csv \\
        --algorithms brute_force genetic pso --config config.json --plots
"""

import argparse
import concurrent.futures
import json
import logging
import math
import multiprocessing
import os
import sys
import time
import traceback
from typing import Any, Dict, List, Optional, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
from tqdm import tqdm  # noqa: E402

from ..algorithm import ALGORITHMS, create_algorithm  # noqa: E402
from ..config import AlgorithmConfig, load_config, setup_logging  # noqa: E402
from ..problem import ProblemModel  # noqa: E402
from ..trace import summarize_run  # noqa: E402


logger = logging.getLogger(__name__)

DEFAULT_ALGORITHMS = ["genetic", "pso", "random_search", "linear_programming"]

# scenario columns copied as they are into the result table
SCENARIO_COLUMNS = [
    "topology_name",
    "node_catalog",
    "application_name",
    "price_scale",
    "reoptimize",
    "node_count",
    "module_count",
]


# ------------------------------------------------------------
# CSV row -> test_case
# ------------------------------------------------------------

def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def build_test_data_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rebuild the test_case dict of one CSV row.

    ``<field>_json`` columns become ``<field>`` entries (``latency_json`` is the
    latency matrix); empty cells, as left by pandas for rows without a current
    placement, are dropped.
    """
    test_case: Dict[str, Any] = {}
    for key, value in row.items():
        if _is_missing(value):
            continue
        if key == "latency_json":
            test_case["latency_matrix"] = json.loads(value)
        elif key.endswith("_json"):
            test_case[key[: -len("_json")]] = json.loads(value)
        else:
            test_case[key] = value

    test_case["test_data_id"] = int(row.get("test_data_id", 0))
    test_case["node_count"] = int(test_case["node_count"])
    test_case["module_count"] = int(test_case["module_count"])
    return test_case


# ------------------------------------------------------------
# One row
# ------------------------------------------------------------

def process_test_case(
    row: Dict[str, Any],
    algorithm_names: Sequence[str],
    config_values: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Run ``algorithm_names`` on one CSV row.

    A failing algorithm records ``<algorithm>_error`` and does not stop the
    others. Iteration traces are kept as JSON in ``<algorithm>_trace``.
    """
    test_data = build_test_data_from_row(row)
    test_id = test_data["test_data_id"]
    config = AlgorithmConfig.from_dict(config_values) if config_values else AlgorithmConfig()

    result: Dict[str, Any] = {"test_data_id": test_id}
    for column in SCENARIO_COLUMNS:
        if column in test_data:
            result[column] = test_data[column]

    try:
        problem = ProblemModel(test_data)
    except ValueError as e:
        result["process_error"] = str(e)
        logger.error("ID %s: invalid test case: %s", test_id, e)
        return result

    for name in algorithm_names:
        try:
            algorithm = create_algorithm(name, problem.copy(), config)
            solution = algorithm.execute()
            result.update(summarize_run(algorithm, solution))
            result[f"{name}_trace"] = json.dumps(algorithm.trace.items())
        except Exception as e:
            result[f"{name}_error"] = str(e)
            logger.error("ID %s: %s failed: %s\n%s", test_id, name, e, traceback.format_exc())

    return result


# ------------------------------------------------------------
# Results & checkpoints
# ------------------------------------------------------------

def save_checkpoint(results: List[Dict[str, Any]], output_file: str, checkpoint_file: str) -> None:
    df = pd.DataFrame(results)
    df.to_csv(output_file, index=False)

    processed_ids = [int(x) for x in df["test_data_id"].tolist()] if "test_data_id" in df else []
    with open(checkpoint_file, "w", encoding="utf-8") as f:
        json.dump(processed_ids, f)

    logger.info("saved %d results to %s", len(results), output_file)


def load_checkpoint(checkpoint_file: str) -> List[int]:
    """IDs already processed, empty when there is no usable checkpoint."""
    if not os.path.exists(checkpoint_file):
        return []
    try:
        with open(checkpoint_file, "r", encoding="utf-8") as f:
            processed_ids = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("cannot read checkpoint %s: %s", checkpoint_file, e)
        return []
    print(f"Checkpoint loaded: {len(processed_ids)} rows already processed")
    return processed_ids


def plot_convergence(result: Dict[str, Any], algorithm_names: Sequence[str], filepath: str) -> bool:
    """Best cost per iteration of every algorithm of one result row."""
    plt.figure(figsize=(8, 5))
    plotted = False
    for name in algorithm_names:
        raw = result.get(f"{name}_trace")
        if not raw:
            continue
        trace = json.loads(raw)
        if not trace:
            continue
        iterations = [it for it, _ in trace]
        values = [value for _, value in trace]
        plt.step(iterations, values, where="post", label=name)
        plotted = True

    if plotted:
        plt.xlabel("iteration")
        plt.ylabel("best cost")
        plt.title(f"test_data_id {result.get('test_data_id')}")
        plt.legend()
        plt.tight_layout()
        plt.savefig(filepath, dpi=150)
    plt.close()
    return plotted


def print_summary(results: List[Dict[str, Any]], algorithm_names: Sequence[str]) -> None:
    df = pd.DataFrame(results)
    print("\n=== Summary ===")
    print(f"Rows: {len(df)}")
    for name in algorithm_names:
        cost_col, found_col, time_col = f"{name}_cost", f"{name}_found", f"{name}_elapsed"
        if cost_col not in df.columns:
            continue
        found = int(df[found_col].fillna(False).astype(bool).sum()) if found_col in df else 0
        print(
            f"{name:<20} found {found}/{len(df)}  "
            f"mean cost {df[cost_col].mean():.4f}  "
            f"mean time {df[time_col].mean():.3f} s"
        )


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare placement algorithms on a generated data set")
    parser.add_argument("--input", type=str, required=True, help="CSV written by the experiment data generator")
    parser.add_argument("--output_dir", type=str, default=os.path.join("data", "result", "table"),
                        help="directory of the result table, checkpoint and plots")
    parser.add_argument("--output", type=str, default="results_{input_name}.csv",
                        help="result file name, {input_name} is replaced by the input file name")
    parser.add_argument("--algorithms", nargs="+", default=DEFAULT_ALGORITHMS,
                        choices=sorted(ALGORITHMS), help="algorithms to run on every row")
    parser.add_argument("--config", type=str, default=None, help="JSON file of AlgorithmConfig values")
    parser.add_argument("--processes", type=int, default=None, help="worker processes (default: CPU count - 1)")
    parser.add_argument("--limit", type=int, default=None, help="process at most this many rows")
    parser.add_argument("--batch_size", type=int, default=50, help="rows between two result saves")
    parser.add_argument("--plots", action="store_true", help="save a convergence plot per row")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    config = load_config(args.config) if args.config else AlgorithmConfig()
    config_values = config.to_dict()
    num_processes = args.processes or max(1, multiprocessing.cpu_count() - 1)

    if not os.path.exists(args.input):
        print(f"Input file not found: {args.input}")
        return 1

    os.makedirs(args.output_dir, exist_ok=True)
    input_name = os.path.splitext(os.path.basename(args.input))[0]
    output_file = os.path.join(args.output_dir, args.output.replace("{input_name}", input_name))
    checkpoint_file = f"{output_file}.checkpoint"

    print("=== Placement algorithm comparison ===")
    print(f"Algorithms: {', '.join(args.algorithms)}")
    print(f"Processes: {num_processes}")

    df = pd.read_csv(args.input)
    if "test_data_id" not in df.columns:
        df.insert(0, "test_data_id", range(len(df)))
    print(f"{len(df)} rows in {args.input}")

    processed_ids = load_checkpoint(checkpoint_file)
    previous_results: List[Dict[str, Any]] = []
    if processed_ids and os.path.exists(output_file):
        previous_results = pd.read_csv(output_file).to_dict("records")

    df_filtered = df[~df["test_data_id"].isin(processed_ids)]
    if args.limit is not None:
        df_filtered = df_filtered.head(args.limit)
    records = df_filtered.to_dict("records")
    print(f"{len(records)} rows to process")

    all_results = list(previous_results)
    new_results: List[Dict[str, Any]] = []
    start_time = time.time()

    if records:
        with concurrent.futures.ProcessPoolExecutor(max_workers=num_processes) as executor:
            futures = {
                executor.submit(process_test_case, record, args.algorithms, config_values): record
                for record in records
            }
            since_save = 0
            for future in tqdm(concurrent.futures.as_completed(futures), total=len(futures), desc="test cases"):
                record = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.error("row %s failed: %s", record.get("test_data_id"), e)
                    continue
                all_results.append(result)
                new_results.append(result)
                since_save += 1
                if since_save >= args.batch_size:
                    save_checkpoint(all_results, output_file, checkpoint_file)
                    since_save = 0

        save_checkpoint(all_results, output_file, checkpoint_file)

    elapsed = time.time() - start_time
    print(f"\nProcessed {len(records)} rows in {elapsed:.2f} s")

    if args.plots:
        plot_dir = os.path.join(args.output_dir, "convergence")
        os.makedirs(plot_dir, exist_ok=True)
        for result in new_results:
            plot_convergence(result, args.algorithms,
                             os.path.join(plot_dir, f"convergence_{result['test_data_id']}.png"))
        print(f"Convergence plots saved to: {plot_dir}")

    print_summary(all_results, args.algorithms)
    return 0


if __name__ == "__main__":
    sys.exit(main())
