"""Row-stride partitioning and the per-worker render loop."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from .histogram import Histogram, PlaneWindow, pixel_to_bounds
from .sampler import CellSampler


class RenderCancelled(RuntimeError):
    """Raised inside a worker when the render has been cancelled."""


RowCallback = Callable[[int, int], None]


def partition_rows(image_size: int, workers: int) -> list[range]:
    """Assign worker ``i`` of ``workers`` the rows ``i, i + workers, ...``.

    Workers beyond ``image_size`` receive an empty stripe.
    """

    if image_size <= 0:
        raise ValueError("image_size must be positive")
    if workers <= 0:
        raise ValueError("workers must be positive")
    return [range(index, image_size, workers) for index in range(workers)]


def make_random_source(index: int) -> np.random.Generator:
    """Random stream seeded from wall-clock time, worker index and OS entropy."""

    entropy = np.random.SeedSequence().entropy
    seed = np.random.SeedSequence([time.time_ns(), index, entropy])
    return np.random.default_rng(seed)


@dataclass
class WorkerStats:
    index: int
    rows: int = 0
    cells: int = 0
    trials: int = 0


class Worker:
    """Owns a private histogram and random source for one row stripe."""

    def __init__(
        self,
        index: int,
        rows: range,
        sampler: CellSampler,
        size: int,
        window: PlaneWindow,
        rng: Optional[np.random.Generator] = None,
    ):
        self.index = index
        self.rows = rows
        self.sampler = sampler
        self.window = window
        self.histogram = Histogram(size, window)
        self.rng = rng if rng is not None else make_random_source(index)
        self.stats = WorkerStats(index=index)

    def run(
        self,
        cancel: Optional[threading.Event] = None,
        on_row: Optional[RowCallback] = None,
    ) -> Histogram:
        size = self.histogram.size
        for row in self.rows:
            if cancel is not None and cancel.is_set():
                raise RenderCancelled(f"worker {self.index} cancelled before row {row}")
            for col in range(size):
                bounds = pixel_to_bounds(self.window, size, row, col)
                budget = self.sampler.render(bounds, self.histogram, self.rng)
                self.stats.cells += 1
                self.stats.trials += budget.trials_run
            self.stats.rows += 1
            if on_row is not None:
                on_row(self.index, row)
        return self.histogram
