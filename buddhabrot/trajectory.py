"""Escape-time iteration of the quadratic map z <- z**2 + c."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numba import njit

ESCAPE_RADIUS2 = 8.0


@njit(nogil=True)
def escape_orbit(c, iterations, escape_radius2, orbit):
    """Fill ``orbit`` with iterates; return the escape index or -1 if bounded."""

    z = 0j
    for i in range(iterations):
        z = z * z + c
        orbit[i] = z
        if z.real * z.real + z.imag * z.imag > escape_radius2:
            return i
    return -1


@dataclass(frozen=True)
class EscapeResult:
    """Outcome of iterating a single seed point.

    ``escape_time`` is the index of the first iterate whose squared magnitude
    exceeded the escape threshold and is only meaningful when ``escaped`` is
    true. ``trajectory`` holds the iterates ``[0, escape_time]``; the escaping
    iterate itself is the last element.
    """

    escaped: bool
    escape_time: int
    trajectory: np.ndarray

    @property
    def path(self) -> np.ndarray:
        """Iterates that contribute density, i.e. positions ``[0, escape_time)``."""

        if not self.escaped:
            return self.trajectory[:0]
        return self.trajectory[: self.escape_time]


_BOUNDED = EscapeResult(escaped=False, escape_time=0, trajectory=np.empty(0, dtype=np.complex128))


@dataclass(frozen=True)
class TrajectoryIterator:
    """Run the escape-time recurrence for a fixed iteration cap."""

    iterations: int
    escape_radius2: float = ESCAPE_RADIUS2

    def __post_init__(self) -> None:
        if self.iterations <= 0:
            raise ValueError("iterations must be positive")
        if not self.escape_radius2 > 0:
            raise ValueError("escape_radius2 must be positive")

    def __call__(self, seed: complex) -> EscapeResult:
        return self.run(seed)

    def run(self, seed: complex) -> EscapeResult:
        orbit = np.empty(self.iterations, dtype=np.complex128)
        escape_time = escape_orbit(complex(seed), int(self.iterations), float(self.escape_radius2), orbit)
        if escape_time < 0:
            return _BOUNDED
        return EscapeResult(escaped=True, escape_time=int(escape_time), trajectory=orbit[: escape_time + 1])
