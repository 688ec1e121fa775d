"""Adaptive importance sampling of a single pixel cell."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .histogram import Bounds, Histogram
from .trajectory import EscapeResult, TrajectoryIterator

MIN_SAMPLES = 5


@dataclass
class SamplingBudget:
    """Trial bookkeeping for one cell; discarded when the cell is done."""

    required_trials: int
    max_path_seen: int = -1
    seen_escape: bool = False
    seen_bounded: bool = False
    results: list[EscapeResult] = field(default_factory=list)

    @property
    def trials_run(self) -> int:
        return len(self.results)

    @property
    def straddles_boundary(self) -> bool:
        return self.seen_escape and self.seen_bounded


def random_point(bounds: Bounds, rng: np.random.Generator) -> complex:
    """Draw a seed uniformly from ``bounds``."""

    u = rng.uniform(bounds.u_low, bounds.u_high)
    v = rng.uniform(bounds.v_low, bounds.v_high)
    return complex(u, v)


def importance(path_length: int, min_trials: int, max_trials: int) -> int:
    """Trial budget warranted by an escape path of ``path_length`` iterates."""

    return min(max_trials, min_trials + 2 * path_length * path_length)


class CellSampler:
    """Render one pixel cell, spending more trials near the set boundary.

    Every cell starts with ``min_trials`` trials. Each escape longer than any
    seen so far raises the budget quadratically in the path length, and a cell
    that produces both escaping and bounded seeds is given ``max_trials``.
    Escaped paths are deposited with weight ``1 / required_trials``.
    """

    def __init__(self, iterator: TrajectoryIterator, max_trials: int, min_trials: int = MIN_SAMPLES):
        if max_trials <= 0:
            raise ValueError("max_trials must be positive")
        if min_trials <= 0:
            raise ValueError("min_trials must be positive")
        self.iterator = iterator
        self.max_trials = max_trials
        self.min_trials = min(min_trials, max_trials)

    def _update(self, budget: SamplingBudget, result: EscapeResult) -> None:
        if result.escaped:
            budget.seen_escape = True
            if result.escape_time > budget.max_path_seen:
                budget.max_path_seen = result.escape_time
                budget.required_trials = max(
                    budget.required_trials,
                    importance(result.escape_time, self.min_trials, self.max_trials),
                )
        else:
            budget.seen_bounded = True
        if budget.straddles_boundary:
            budget.required_trials = self.max_trials

    def sample(self, bounds: Bounds, rng: np.random.Generator) -> SamplingBudget:
        """Run the adaptive trial loop without touching any histogram."""

        budget = SamplingBudget(required_trials=self.min_trials)
        while budget.trials_run < budget.required_trials:
            result = self.iterator(random_point(bounds, rng))
            budget.results.append(result)
            self._update(budget, result)
        return budget

    def render(self, bounds: Bounds, histogram: Histogram, rng: np.random.Generator) -> SamplingBudget:
        budget = self.sample(bounds, rng)
        escaped = [result.path for result in budget.results if result.escaped]
        if escaped:
            weight = 1.0 / budget.required_trials
            histogram.deposit(np.concatenate(escaped), weight)
        return budget
