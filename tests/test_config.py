# -*- coding: utf-8 -*-
import json

import pytest

from fogplacement import AlgorithmConfig, ConfigurationError, load_config


def test_defaults():
    config = AlgorithmConfig()
    assert config.population_size_ga_placement == 12
    assert config.max_iter_convergence_random == 13000
    assert config.inertia == pytest.approx(0.729844)
    assert config.objective_weights == {
        "operational": 1.0, "power": 1.0, "processing": 1.0,
        "latency": 1.0, "bandwidth": 1.0, "migration": 1.0,
    }


def test_partial_weights_are_completed():
    config = AlgorithmConfig(objective_weights={"latency": 3})
    assert config.weight("latency") == 3.0
    assert config.weight("power") == 1.0


@pytest.mark.parametrize(
    "values",
    [
        {"objective_weights": {"carbon": 1.0}},
        {"population_size_pso": 0},
        {"elite_fraction": 1.5},
        {"parent_fraction": 0.0},
        {"crossover_probability": 0.6},
        {"convergence_error": -1.0},
        {"time_limit": 0},
    ],
)
def test_invalid_values(values):
    with pytest.raises(ConfigurationError):
        AlgorithmConfig(**values)


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigurationError, match="max_iter_gaa"):
        AlgorithmConfig.from_dict({"max_iter_gaa": 3})


def test_replace_returns_a_new_config():
    config = AlgorithmConfig(random_seed=1)
    changed = config.replace(max_iter_pso=10)
    assert changed.max_iter_pso == 10
    assert changed.random_seed == 1
    assert config.max_iter_pso == 3000


def test_load_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"max_iter_pso": 5, "objective_weights": {"power": 0}}), encoding="utf-8")
    config = load_config(str(path))
    assert config.max_iter_pso == 5
    assert config.weight("power") == 0.0


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_load_config_rejects_bad_files(tmp_path, content):
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(str(path))


def test_round_trip_through_dict():
    config = AlgorithmConfig(random_seed=3, time_limit=2.5)
    assert AlgorithmConfig.from_dict(config.to_dict()) == config
