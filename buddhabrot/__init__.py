"""Public API for Buddhabrot rendering utilities."""

from .trajectory import ESCAPE_RADIUS2, EscapeResult, TrajectoryIterator
from .histogram import Bounds, Histogram, PlaneWindow, pixel_to_bounds, points_to_pixels
from .sampler import MIN_SAMPLES, CellSampler, SamplingBudget
from .worker import RenderCancelled, Worker, WorkerStats, make_random_source, partition_rows
from .merger import merge_histograms, tone_map
from .codec import CodecError, check_format, read_image, write_image
from .renderer import RenderParameters, RenderResult, build_workers, render_image, run_workers

__all__ = [
    "ESCAPE_RADIUS2",
    "MIN_SAMPLES",
    "Bounds",
    "CellSampler",
    "CodecError",
    "EscapeResult",
    "Histogram",
    "PlaneWindow",
    "RenderCancelled",
    "RenderParameters",
    "RenderResult",
    "SamplingBudget",
    "TrajectoryIterator",
    "Worker",
    "WorkerStats",
    "build_workers",
    "check_format",
    "make_random_source",
    "merge_histograms",
    "partition_rows",
    "pixel_to_bounds",
    "points_to_pixels",
    "read_image",
    "render_image",
    "run_workers",
    "tone_map",
    "write_image",
]
