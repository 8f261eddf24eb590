# -*- coding: utf-8 -*-
"""
fogplacement: placement of application modules on fog/edge nodes and routing
of their data dependencies across the node topology.

Typical use::

    from fogplacement import AlgorithmConfig, ProblemModel, create_algorithm

    problem = ProblemModel(test_case)
    algorithm = create_algorithm("genetic", problem, AlgorithmConfig(random_seed=1))
    solution = algorithm.execute()
"""

from .algorithm import ALGORITHMS, PlacementAlgorithm, create_algorithm
from .config import AlgorithmConfig, load_config, setup_logging
from .cost import CostEvaluator
from .errors import ConfigurationError, PlacementError, SolverError
from .problem import ProblemModel
from .solution import Solution, SolutionGenerator
from .trace import IterationTrace, summarize_run

__version__ = "0.1.0"

__all__ = [
    "ALGORITHMS",
    "AlgorithmConfig",
    "ConfigurationError",
    "CostEvaluator",
    "IterationTrace",
    "PlacementAlgorithm",
    "PlacementError",
    "ProblemModel",
    "Solution",
    "SolutionGenerator",
    "SolverError",
    "create_algorithm",
    "load_config",
    "setup_logging",
    "summarize_run",
]
