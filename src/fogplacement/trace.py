# -*- coding: utf-8 -*-
"""
Iteration trace of a run and flat result rows for experiment tables.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Tuple

import pandas as pd

from .config import OBJECTIVES


class IterationTrace:
    """Best objective value known at a given iteration (append-only)."""

    def __init__(self) -> None:
        self._values: Dict[int, float] = {}

    def record(self, iteration: int, value: float) -> None:
        self._values[int(iteration)] = float(value)

    def clear(self) -> None:
        self._values.clear()

    def items(self) -> List[Tuple[int, float]]:
        return sorted(self._values.items())

    def as_dict(self) -> Dict[int, float]:
        return dict(self.items())

    @property
    def last_value(self) -> Optional[float]:
        items = self.items()
        return items[-1][1] if items else None

    def is_non_increasing(self, tolerance: float = 0.0) -> bool:
        values = [v for _, v in self.items()]
        return all(b <= a + tolerance for a, b in zip(values, values[1:]))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.items(), columns=["iteration", "best_value"])

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Tuple[int, float]]:
        return iter(self.items())

    def __contains__(self, iteration: object) -> bool:
        return iteration in self._values


def summarize_run(algorithm, solution) -> Dict[str, Any]:
    """One result-table row for ``algorithm`` after ``execute`` returned ``solution``."""
    prefix = algorithm.name
    row: Dict[str, Any] = {
        f"{prefix}_elapsed": algorithm.elapsed_time,
        f"{prefix}_improvements": len(algorithm.trace),
        f"{prefix}_found": solution is not None,
    }
    if solution is None:
        row[f"{prefix}_cost"] = None
        return row

    row[f"{prefix}_cost"] = solution.cost
    for name in OBJECTIVES:
        row[f"{prefix}_{name}"] = solution.detailed_cost.get(name, 0.0)
    row[f"{prefix}_nodes"] = len(set(solution.placement))
    row[f"{prefix}_placement"] = list(solution.placement)
    return row
