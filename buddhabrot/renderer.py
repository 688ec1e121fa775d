"""Fork-join rendering of a full Buddhabrot image."""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .histogram import DEFAULT_WINDOW, PlaneWindow
from .merger import SAMPLE_DTYPES, merge_histograms, tone_map
from .sampler import MIN_SAMPLES, CellSampler
from .trajectory import ESCAPE_RADIUS2, TrajectoryIterator
from .worker import RenderCancelled, RowCallback, Worker, WorkerStats, partition_rows


@dataclass(frozen=True)
class RenderParameters:
    """Parameters that describe a single Buddhabrot render."""

    image_size: int
    iterations: int
    workers: int
    max_samples: int
    min_samples: int = MIN_SAMPLES
    escape_radius2: float = ESCAPE_RADIUS2
    mirror: bool = True
    bit_depth: int = 16
    window: PlaneWindow = DEFAULT_WINDOW

    def __post_init__(self) -> None:
        for name in ("image_size", "iterations", "workers", "max_samples", "min_samples"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if not self.escape_radius2 > 0:
            raise ValueError("escape_radius2 must be positive")
        if self.bit_depth not in SAMPLE_DTYPES:
            raise ValueError(f"bit_depth must be one of {sorted(SAMPLE_DTYPES)}")
        if self.mirror and not self.window.conjugate_symmetric:
            raise ValueError("mirror requires a window whose imaginary range is symmetric about 0")

    def output_filename(self, image_format: str = "png") -> str:
        return f"buddhabrot_{self.image_size}_{self.iterations}_{self.max_samples}.{image_format}"


@dataclass(frozen=True)
class RenderResult:
    """Container for the numerical results of a Buddhabrot render."""

    density: np.ndarray
    samples: np.ndarray
    stats: tuple[WorkerStats, ...]

    @property
    def trials(self) -> int:
        return sum(s.trials for s in self.stats)


def build_workers(params: RenderParameters, *, seed: Optional[int] = None) -> list[Worker]:
    """Create one worker per row stripe.

    Without ``seed`` every worker draws fresh entropy; with it the workers'
    streams are spawned from a single ``SeedSequence`` and are reproducible.
    """

    iterator = TrajectoryIterator(params.iterations, params.escape_radius2)
    sampler = CellSampler(iterator, params.max_samples, params.min_samples)
    stripes = partition_rows(params.image_size, params.workers)
    if seed is not None:
        rngs = [np.random.default_rng(s) for s in np.random.SeedSequence(seed).spawn(params.workers)]
    else:
        rngs = [None] * params.workers
    return [
        Worker(index, rows, sampler, params.image_size, params.window, rng=rng)
        for index, (rows, rng) in enumerate(zip(stripes, rngs))
    ]


def run_workers(
    workers: list[Worker],
    *,
    cancel: Optional[threading.Event] = None,
    on_row: Optional[RowCallback] = None,
) -> None:
    """Run all workers in parallel and wait for every one of them.

    The first worker failure cancels the others and is re-raised.
    """

    cancel = cancel if cancel is not None else threading.Event()
    with ThreadPoolExecutor(max_workers=len(workers), thread_name_prefix="buddhabrot") as pool:
        futures = [pool.submit(worker.run, cancel, on_row) for worker in workers]
        try:
            done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        except BaseException:
            cancel.set()
            raise
        failed = [f for f in done if f.exception() is not None]
        if failed:
            cancel.set()
            wait(futures)
            errors = [f.exception() for f in futures if f.exception() is not None]
            # Prefer the root cause over the cancellations it triggered.
            for error in errors:
                if not isinstance(error, RenderCancelled):
                    raise error
            raise errors[0]


def render_image(
    params: RenderParameters,
    *,
    device: Optional[str] = None,
    cancel: Optional[threading.Event] = None,
    on_row: Optional[RowCallback] = None,
    seed: Optional[int] = None,
) -> RenderResult:
    """Render, merge and tone map a full image."""

    workers = build_workers(params, seed=seed)
    run_workers(workers, cancel=cancel, on_row=on_row)

    density = merge_histograms([w.histogram for w in workers], mirror=params.mirror, device=device)
    samples = tone_map(density, params.bit_depth, device=device)
    return RenderResult(
        density=density,
        samples=samples,
        stats=tuple(w.stats for w in workers),
    )
