# -*- coding: utf-8 -*-
"""
Common interface of the placement algorithms.

Every algorithm is built from a ``ProblemModel`` and exposes ``execute()``,
which returns the best valid ``Solution`` found or ``None`` when no valid
solution was found. The run leaves behind ``trace`` (iteration -> best cost)
and ``elapsed_time`` (seconds).
"""

from __future__ import annotations

import logging
import random
import time
from abc import ABC, abstractmethod
from typing import Optional

from ..config import AlgorithmConfig
from ..cost import CostEvaluator
from ..problem import ProblemModel
from ..solution import Solution, SolutionGenerator
from ..trace import IterationTrace


logger = logging.getLogger(__name__)


class PlacementAlgorithm(ABC):
    name = "algorithm"

    def __init__(
        self,
        problem: ProblemModel,
        config: Optional[AlgorithmConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.problem = problem
        self.config = config if config is not None else AlgorithmConfig()
        self.rng = rng if rng is not None else random.Random(self.config.random_seed)
        self.evaluator = CostEvaluator(problem, self.config)
        self.generator = SolutionGenerator(problem, self.rng)

        self.trace = IterationTrace()
        self.elapsed_time: float = 0.0
        self._deadline: Optional[float] = None

    def execute(self) -> Optional[Solution]:
        self.trace.clear()
        start = time.perf_counter()
        if self.config.time_limit is not None:
            self._deadline = start + self.config.time_limit
        else:
            self._deadline = None

        logger.info("%s: start on %r", self.name, self.problem)
        best = self._run()
        self.elapsed_time = time.perf_counter() - start

        if best is not None and not best.valid:
            best = None
        if best is None:
            logger.info("%s: no valid solution found (%.3f s)", self.name, self.elapsed_time)
        else:
            logger.info("%s: best cost %.6f (%.3f s)", self.name, best.cost, self.elapsed_time)
        return best

    @abstractmethod
    def _run(self) -> Optional[Solution]:
        """Search body; may return an invalid solution, ``execute`` filters it."""

    # ================================================================
    # Helpers shared by the search loops
    # ================================================================
    def time_exceeded(self) -> bool:
        return self._deadline is not None and time.perf_counter() >= self._deadline

    def debug(self, msg: str, *args) -> None:
        if self.config.debug:
            logger.debug("%s: " + msg, self.name, *args)

    @staticmethod
    def better(candidate: Optional[Solution], best: Optional[Solution]) -> bool:
        """Strictly better, valid solutions always beating invalid ones."""
        if candidate is None:
            return False
        if best is None:
            return True
        if candidate.valid != best.valid:
            return candidate.valid
        return candidate.cost < best.cost
