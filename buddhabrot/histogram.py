"""Pixel grid storage and the plane/pixel projections."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class PlaneWindow:
    """Rectangle of the complex plane covered by the image.

    Rows follow the real axis (``u``) and columns the imaginary axis (``v``).
    """

    u_low: float = -2.0
    u_high: float = 2.0
    v_low: float = -2.0
    v_high: float = 2.0

    def __post_init__(self) -> None:
        if not (self.u_low < self.u_high and self.v_low < self.v_high):
            raise ValueError("window bounds must satisfy low < high on both axes")

    @property
    def u_span(self) -> float:
        return self.u_high - self.u_low

    @property
    def v_span(self) -> float:
        return self.v_high - self.v_low

    @property
    def conjugate_symmetric(self) -> bool:
        """Whether column ``size - 1 - col`` is the complex conjugate of column ``col``."""

        return self.v_low == -self.v_high


DEFAULT_WINDOW = PlaneWindow()


@dataclass(frozen=True)
class Bounds:
    """Half-open rectangle ``[u_low, u_high) x [v_low, v_high)`` of one pixel cell."""

    u_low: float
    u_high: float
    v_low: float
    v_high: float

    def __post_init__(self) -> None:
        if self.u_low > self.u_high or self.v_low > self.v_high:
            raise ValueError(f"invalid bounds {self!r}")


def pixel_to_bounds(window: PlaneWindow, size: int, row: int, col: int) -> Bounds:
    """Map pixel ``(row, col)`` to the rectangle of the plane it represents."""

    u_step = np.float64(window.u_span) / np.float64(size)
    v_step = np.float64(window.v_span) / np.float64(size)
    u_low = np.float64(window.u_low) + np.float64(row) * u_step
    v_low = np.float64(window.v_low) + np.float64(col) * v_step
    return Bounds(
        u_low=float(u_low),
        u_high=float(u_low + u_step),
        v_low=float(v_low),
        v_high=float(v_low + v_step),
    )


def points_to_pixels(window: PlaneWindow, size: int, points: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Project complex ``points`` to integer ``(rows, cols)``; may fall outside the grid."""

    points = np.asarray(points, dtype=np.complex128)
    rows = np.floor((points.real - window.u_low) * (size / window.u_span))
    cols = np.floor((points.imag - window.v_low) * (size / window.v_span))
    return rows.astype(np.int64), cols.astype(np.int64)


class Histogram:
    """Dense ``size x size`` grid of non-negative density accumulators."""

    def __init__(self, size: int, window: PlaneWindow = DEFAULT_WINDOW):
        if size <= 0:
            raise ValueError("histogram size must be positive")
        self.size = size
        self.window = window
        self.values = np.zeros((size, size), dtype=np.float64)

    @property
    def shape(self) -> tuple[int, int]:
        return self.values.shape

    def deposit(self, points: np.ndarray, weight: float) -> int:
        """Add ``weight`` at every in-bounds pixel hit by ``points``.

        Points that project outside the grid are dropped. Returns the number of
        points that landed on the grid.
        """

        if weight < 0:
            raise ValueError("weight must be non-negative")
        if len(points) == 0:
            return 0
        rows, cols = points_to_pixels(self.window, self.size, points)
        inside = (rows >= 0) & (rows < self.size) & (cols >= 0) & (cols < self.size)
        np.add.at(self.values, (rows[inside], cols[inside]), weight)
        return int(np.count_nonzero(inside))

    def total(self) -> float:
        return float(self.values.sum())
