# -*- coding: utf-8 -*-
"""
Shared constants and tuning parameters of the placement algorithms.

All algorithms read their knobs from one ``AlgorithmConfig`` instance; the
defaults reproduce the values the engine was calibrated with:

- GA: 12 placement individuals, 5 routing individuals per placement,
  convergence after 25 (placement) / 7 (routing) stable generations;
- random search: stop after 13000 iterations without improvement;
- PSO: 100 particles, 3000 iterations, Clerc constriction coefficients.

A config can be built from a plain dict (``AlgorithmConfig.from_dict``) or a
JSON file (``load_config``), which is how the experiment scripts pass them
around.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional

from .errors import ConfigurationError


# ================================================================
# Constants
# ================================================================

INF = float("inf")
EPSILON = 1e-9

# Penalty added per violated constraint, also the ceiling of every objective
REFERENCE_COST = 2147483647.0

OPERATIONAL_COST = "operational"
POWER_COST = "power"
PROCESSING_COST = "processing"
LATENCY_COST = "latency"
BANDWIDTH_COST = "bandwidth"
MIGRATION_COST = "migration"

# Order matters: it is the column order of objective vectors
OBJECTIVES = (
    OPERATIONAL_COST,
    POWER_COST,
    PROCESSING_COST,
    LATENCY_COST,
    BANDWIDTH_COST,
    MIGRATION_COST,
)


def _default_weights() -> Dict[str, float]:
    return {name: 1.0 for name in OBJECTIVES}


@dataclass
class AlgorithmConfig:
    # ---- common ----
    convergence_error: float = 1e-5
    reference_cost: float = REFERENCE_COST
    objective_weights: Dict[str, float] = field(default_factory=_default_weights)
    time_limit: Optional[float] = None      # seconds, checked between iterations
    random_seed: Optional[int] = None
    debug: bool = False

    # ---- brute force ----
    prune_infeasible_placements: bool = True
    brute_force_warn_size: int = 10_000_000

    # ---- genetic algorithm ----
    population_size_ga_placement: int = 12
    population_size_ga_routing: int = 5
    max_iter_placement_ga: int = 100000
    max_iter_routing_ga: int = 50
    max_iter_placement_convergence_ga: int = 25
    max_iter_routing_convergence_ga: int = 7
    elite_fraction: float = 0.1
    parent_fraction: float = 0.5
    crossover_probability: float = 0.45     # per parent, the rest is mutation

    # ---- random search ----
    max_iter_random: int = 1000000
    max_iter_convergence_random: int = 13000

    # ---- particle swarm ----
    population_size_pso: int = 100
    max_iter_pso: int = 3000
    inertia: float = 0.729844
    cognitive: float = 1.496180
    social: float = 1.496180

    # ---- NSGA-II ----
    population_size_nsga2: int = 100
    max_gen_nsga2: int = 250

    # ---- linear programming ----
    solver_time_limit: Optional[float] = None
    solver_verbose: bool = False

    def __post_init__(self) -> None:
        weights = _default_weights()
        for name, value in dict(self.objective_weights).items():
            if name not in weights:
                raise ConfigurationError(f"Unknown objective weight: {name}")
            weights[name] = float(value)
        self.objective_weights = weights

        for name in (
            "population_size_ga_placement",
            "population_size_ga_routing",
            "population_size_pso",
            "population_size_nsga2",
        ):
            if int(getattr(self, name)) < 1:
                raise ConfigurationError(f"{name} must be >= 1")

        if not 0.0 <= self.elite_fraction <= 1.0:
            raise ConfigurationError("elite_fraction must be within [0, 1]")
        if not 0.0 < self.parent_fraction <= 1.0:
            raise ConfigurationError("parent_fraction must be within (0, 1]")
        if not 0.0 <= 2 * self.crossover_probability <= 1.0:
            raise ConfigurationError("crossover_probability must be within [0, 0.5]")
        if self.convergence_error < 0:
            raise ConfigurationError("convergence_error must be >= 0")
        if self.time_limit is not None and self.time_limit <= 0:
            raise ConfigurationError("time_limit must be positive")

    def weight(self, objective: str) -> float:
        return self.objective_weights[objective]

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "AlgorithmConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {unknown}")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def replace(self, **changes: Any) -> "AlgorithmConfig":
        values = self.to_dict()
        values.update(changes)
        return AlgorithmConfig.from_dict(values)


def load_config(path: str) -> AlgorithmConfig:
    """Read an ``AlgorithmConfig`` from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            values = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e

    if not isinstance(values, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a JSON object")
    return AlgorithmConfig.from_dict(values)


def setup_logging(level: int = logging.INFO) -> None:
    """Configure a console handler for command-line entry points."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
