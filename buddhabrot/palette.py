"""Cubehelix colouring of rendered grayscale images.

This is an offline post-processing step: it reads a 16-bit render, applies a
brightening curve followed by a sigmoid contrast curve, and stores the result
as an indexed image whose palette is the cubehelix scheme (start 0.5,
rotations -1.5, hue 1, gamma 1), which is matplotlib's ``cubehelix`` map.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import PIL.Image
from matplotlib import colormaps

from .codec import PathLike, read_image, save_image

PALETTE_SIZE = 256
DEFAULT_AMOUNT = 3.0


def get_colormap(name: str):
    return colormaps[name]


def sigmoid(x: np.ndarray, amount: float) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-(x - 0.5) * amount))


def brighten(x: np.ndarray, m: float = 2.0, k: float = 15.0) -> np.ndarray:
    """Soft-plus lift of dark values; maps 0 to 0 and saturates towards 1."""

    x0 = -np.log(np.expm1(k / m))
    return 1.0 - (m / k) * np.log1p(np.exp(-k * x - x0))


def palette_indices(samples: np.ndarray, amount: float = DEFAULT_AMOUNT, bit_depth: int = 16) -> np.ndarray:
    """Palette index for every sample of a ``bit_depth`` grayscale grid."""

    unit = np.asarray(samples, dtype=np.float64) / float(1 << bit_depth)
    curve = np.sqrt(sigmoid(brighten(unit), amount))
    indices = np.minimum(float(PALETTE_SIZE - 1), (PALETTE_SIZE - 1) * curve)
    return indices.astype(np.uint8)


def build_palette(name: str = "cubehelix") -> list[int]:
    """Flat ``[r, g, b, r, g, b, ...]`` list of ``PALETTE_SIZE`` entries."""

    cmap = get_colormap(name)
    rgba = cmap(np.linspace(0.0, 1.0, PALETTE_SIZE))
    rgb = np.uint8(np.clip(rgba[:, :3] * 255, 0, 255))
    return rgb.reshape(-1).tolist()


def colorize(samples: np.ndarray, amount: float = DEFAULT_AMOUNT, colormap: str = "cubehelix") -> PIL.Image.Image:
    """Indexed ("P" mode) image of ``samples`` using the named colormap."""

    image = PIL.Image.fromarray(palette_indices(samples, amount))
    image.putpalette(build_palette(colormap))
    return image


def output_path_for(input_path: PathLike) -> Path:
    source = Path(input_path)
    return source.with_name(f"cubehelix_{source.name}")


def colorize_file(input_path: PathLike, amount: float = DEFAULT_AMOUNT, colormap: str = "cubehelix") -> Path:
    """Colour ``input_path`` and write ``cubehelix_<name>`` beside it."""

    samples = read_image(input_path)
    image = colorize(samples, amount, colormap)
    return save_image(image, output_path_for(input_path), "PNG")
