# -*- coding: utf-8 -*-
import json
import sys

import pandas as pd
import pytest

from fogplacement import ProblemModel
from fogplacement.experiment import run_comparison
from fogplacement.experiment.run_comparison import (
    build_test_data_from_row,
    load_checkpoint,
    main,
    plot_convergence,
    process_test_case,
    save_checkpoint,
)
from fogplacement.tools import experiment_data_generator
from fogplacement.tools.experiment_data_generator import (
    APPLICATION_CATALOG,
    case_to_row,
    generate_experiment_data,
    generate_rows,
)

SMALL_GENERATION = {
    "topology_names": ["tiers_1-2-4"],
    "node_catalog_names": ["cloud_fog_mobile"],
    "application_names": ["vr_game"],
    "price_scales": [1.0],
    "reoptimize": [False, True],
    "random_seed": 3,
}

SMALL_SEARCH = {
    "random_seed": 1,
    "max_iter_random": 300,
    "max_iter_convergence_random": 100,
}


@pytest.fixture
def experiment_csv(tmp_path):
    return generate_experiment_data(output_dir=str(tmp_path / "test_data"), config=SMALL_GENERATION)


def read_records(path):
    return pd.read_csv(path).to_dict("records")


def test_generate_rows():
    rows = generate_rows(SMALL_GENERATION)
    assert len(rows) == 2
    assert [row["test_data_id"] for row in rows] == [0, 1]
    assert [row["reoptimize"] for row in rows] == [False, True]
    assert "current_placement_json" not in rows[0]
    assert len(json.loads(rows[1]["current_placement_json"])) == 3
    assert rows[0]["node_count"] == 7
    assert rows[0]["module_count"] == len(APPLICATION_CATALOG["vr_game"]["modules"])


def test_client_is_pinned_to_the_edge_tier():
    row = generate_rows(SMALL_GENERATION)[0]
    deployment = json.loads(row["possible_deployment_json"])
    # nodes 3..6 are the edge tier, module 0 is the client
    assert [deployment[i][0] for i in range(7)] == [0, 0, 0, 1, 1, 1, 1]
    assert all(deployment[i][1] == 1 for i in range(7))


def test_case_to_row_writes_infinite_latency_as_null():
    row = case_to_row({"node_count": 2, "latency_matrix": [[0.0, float("inf")], [float("inf"), 0.0]]})
    assert row["node_count"] == 2
    assert json.loads(row["latency_json"]) == [[0.0, None], [None, 0.0]]


def test_csv_rows_rebuild_problems(experiment_csv):
    records = read_records(experiment_csv)
    assert len(records) == 2

    first = ProblemModel(build_test_data_from_row(records[0]))
    assert first.node_count == 7
    assert first.is_first_optimization

    second = ProblemModel(build_test_data_from_row(records[1]))
    assert not second.is_first_optimization
    # edge nodes are only linked to their fog node
    assert first.get_link_latency(3, 4) == float("inf")


def test_process_test_case(experiment_csv):
    record = read_records(experiment_csv)[1]
    result = process_test_case(record, ["random_search", "linear_programming"], SMALL_SEARCH)

    assert result["test_data_id"] == 1
    assert result["topology_name"] == "tiers_1-2-4"
    for name in ("random_search", "linear_programming"):
        assert f"{name}_error" not in result
        assert result[f"{name}_found"]
        assert result[f"{name}_cost"] > 0
        assert json.loads(result[f"{name}_trace"])


def test_failing_algorithm_does_not_stop_the_others(experiment_csv, monkeypatch):
    record = read_records(experiment_csv)[0]
    real_create = run_comparison.create_algorithm

    def create(name, problem, config=None, rng=None):
        if name == "pso":
            raise RuntimeError("solver crashed")
        return real_create(name, problem, config, rng)

    monkeypatch.setattr(run_comparison, "create_algorithm", create)
    result = process_test_case(record, ["pso", "random_search"], SMALL_SEARCH)

    assert result["pso_error"] == "solver crashed"
    assert result["random_search_found"]


def test_invalid_row_is_reported():
    row = {"test_data_id": 5, "node_count": 2, "module_count": 1}
    result = process_test_case(row, ["random_search"])
    assert "process_error" in result
    assert "random_search_cost" not in result


def test_checkpoint_round_trip(tmp_path):
    output_file = str(tmp_path / "results.csv")
    checkpoint_file = output_file + ".checkpoint"
    assert load_checkpoint(checkpoint_file) == []

    save_checkpoint([{"test_data_id": 3, "x": 1}, {"test_data_id": 8, "x": 2}], output_file, checkpoint_file)
    assert load_checkpoint(checkpoint_file) == [3, 8]
    assert pd.read_csv(output_file)["x"].tolist() == [1, 2]


def test_corrupt_checkpoint_is_ignored(tmp_path):
    path = tmp_path / "results.csv.checkpoint"
    path.write_text("[1, 2", encoding="utf-8")
    assert load_checkpoint(str(path)) == []


def test_plot_convergence(tmp_path):
    result = {"test_data_id": 1, "genetic_trace": json.dumps([[0, 5.0], [3, 2.0]]), "pso_trace": "[]"}
    path = tmp_path / "convergence.png"
    assert plot_convergence(result, ["genetic", "pso"], str(path))
    assert path.exists()
    assert not plot_convergence(result, ["pso"], str(tmp_path / "empty.png"))


def test_main_end_to_end(tmp_path, experiment_csv):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(SMALL_SEARCH), encoding="utf-8")
    output_dir = tmp_path / "results"
    argv = [
        "--input", experiment_csv,
        "--output_dir", str(output_dir),
        "--algorithms", "random_search",
        "--config", str(config_path),
        "--processes", "1",
        "--batch_size", "1",
        "--plots",
    ]

    assert main(argv) == 0
    results = pd.read_csv(output_dir / "results_experiment_all.csv")
    assert sorted(results["test_data_id"].tolist()) == [0, 1]
    assert results["random_search_found"].all()
    assert len(list((output_dir / "convergence").glob("*.png"))) == 2

    # a second run finds everything in the checkpoint
    assert main(argv) == 0
    assert len(pd.read_csv(output_dir / "results_experiment_all.csv")) == 2


def test_main_missing_input(tmp_path):
    assert main(["--input", str(tmp_path / "missing.csv"), "--output_dir", str(tmp_path)]) == 1


def test_generator_command_exits_cleanly(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(experiment_data_generator, "GENERATION_CONFIG", SMALL_GENERATION)

    with pytest.raises(SystemExit) as exit_info:
        sys.exit(experiment_data_generator.main())

    assert exit_info.value.code in (None, 0)
    merged = tmp_path / experiment_data_generator.OUTPUT_DIR / experiment_data_generator.FINAL_CSV_NAME
    assert len(pd.read_csv(merged)) == 2
