"""Reduction of per-worker histograms and tone mapping to integer samples."""

from __future__ import annotations

from typing import Optional, Sequence, Union

import numpy as np
import tensorflow as tf

from .histogram import Histogram

SAMPLE_DTYPES = {8: np.uint8, 16: np.uint16}

GridLike = Union[Histogram, np.ndarray]


def _as_array(grid: GridLike) -> np.ndarray:
    values = grid.values if isinstance(grid, Histogram) else grid
    return np.asarray(values, dtype=np.float64)


def merge_histograms(
    histograms: Sequence[GridLike],
    *,
    mirror: bool = True,
    device: Optional[str] = None,
) -> np.ndarray:
    """Sum worker grids element-wise, optionally folding the column mirror.

    With ``mirror`` each pixel also receives the value at column
    ``size - 1 - col``, which is the complex-conjugate cell.
    """

    if not histograms:
        raise ValueError("at least one histogram is required")
    arrays = [_as_array(h) for h in histograms]
    shape = arrays[0].shape
    for array in arrays[1:]:
        if array.shape != shape:
            raise ValueError(f"histogram shapes differ: {shape} != {array.shape}")

    with tf.device(device if device is not None else "/CPU:0"):
        tensors = [tf.convert_to_tensor(array, dtype=tf.float64) for array in arrays]
        total = tf.add_n(tensors) if len(tensors) > 1 else tensors[0]
        if mirror:
            total = total + tf.reverse(total, axis=[1])
        return total.numpy()


@tf.function
def _tone_curve(grid: tf.Tensor, max_output: tf.Tensor) -> tf.Tensor:
    """Square-root tone curve over the grid's own [min, max] range."""

    lo = tf.reduce_min(grid)
    hi = tf.reduce_max(grid)
    span = hi - lo
    flat = tf.logical_not(span > 0)
    safe_span = tf.where(flat, tf.ones_like(span), span)
    unit = tf.clip_by_value((grid - lo) / safe_span, 0.0, 1.0)
    mapped = tf.round(max_output * tf.sqrt(unit))
    return tf.where(flat, tf.zeros_like(grid), mapped)


def tone_map(grid: np.ndarray, bit_depth: int = 16, *, device: Optional[str] = None) -> np.ndarray:
    """Map density values to ``bit_depth`` unsigned samples.

    A grid whose minimum equals its maximum maps to all zeros.
    """

    if bit_depth not in SAMPLE_DTYPES:
        raise ValueError(f"unsupported bit depth {bit_depth}; choose one of {sorted(SAMPLE_DTYPES)}")
    values = np.asarray(grid, dtype=np.float64)
    if values.size == 0:
        return np.zeros(values.shape, dtype=SAMPLE_DTYPES[bit_depth])
    if not np.all(np.isfinite(values)):
        raise ValueError("histogram contains non-finite values")

    max_output = float((1 << bit_depth) - 1)
    with tf.device(device if device is not None else "/CPU:0"):
        mapped = _tone_curve(
            tf.convert_to_tensor(values, dtype=tf.float64),
            tf.constant(max_output, dtype=tf.float64),
        )
        samples = mapped.numpy()
    return samples.astype(SAMPLE_DTYPES[bit_depth])
