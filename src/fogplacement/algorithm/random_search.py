# -*- coding: utf-8 -*-
"""
Random search baseline: sample complete random solutions and keep the best.

Stops after ``max_iter_random`` samples, or once the best cost has not
improved by more than ``convergence_error`` for
``max_iter_convergence_random`` samples in a row.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..solution import Solution
from .base import PlacementAlgorithm


logger = logging.getLogger(__name__)


class RandomSearch(PlacementAlgorithm):
    name = "random_search"

    def _run(self) -> Optional[Solution]:
        best: Optional[Solution] = None
        stall = 0

        for iteration in range(self.config.max_iter_random):
            if self.time_exceeded():
                logger.info("%s: time limit reached at iteration %d", self.name, iteration)
                break

            solution = self.generator.random_solution(self.evaluator)

            improved = self.better(solution, best)
            if improved:
                significant = (
                    best is None
                    or solution.valid != best.valid
                    or best.cost - solution.cost > self.config.convergence_error
                )
                best = solution
                if best.valid:
                    self.trace.record(iteration, best.cost)
                    self.debug("iteration %d new best %.6f", iteration, best.cost)
                stall = 0 if significant else stall + 1
            else:
                stall += 1

            if stall >= self.config.max_iter_convergence_random:
                self.debug("no improvement for %d iterations, stopping", stall)
                break

        return best
