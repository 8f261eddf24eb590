# -*- coding: utf-8 -*-
"""Placement algorithms and a name -> class registry."""

from __future__ import annotations

import random
from typing import Dict, Optional, Type

from ..config import AlgorithmConfig
from ..errors import ConfigurationError
from ..problem import ProblemModel
from .base import PlacementAlgorithm
from .brute_force import BruteForce
from .genetic import GeneticAlgorithm
from .linear_programming import LinearProgramming
from .multi_objective import NSGA2Placement
from .pso import ParticleSwarm
from .random_search import RandomSearch


ALGORITHMS: Dict[str, Type[PlacementAlgorithm]] = {
    cls.name: cls
    for cls in (
        BruteForce,
        GeneticAlgorithm,
        ParticleSwarm,
        RandomSearch,
        NSGA2Placement,
        LinearProgramming,
    )
}


def create_algorithm(
    name: str,
    problem: ProblemModel,
    config: Optional[AlgorithmConfig] = None,
    rng: Optional[random.Random] = None,
) -> PlacementAlgorithm:
    try:
        cls = ALGORITHMS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown algorithm {name!r}, expected one of {sorted(ALGORITHMS)}"
        ) from None
    return cls(problem, config, rng)


__all__ = [
    "ALGORITHMS",
    "BruteForce",
    "GeneticAlgorithm",
    "LinearProgramming",
    "NSGA2Placement",
    "ParticleSwarm",
    "PlacementAlgorithm",
    "RandomSearch",
    "create_algorithm",
]
