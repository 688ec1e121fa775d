"""Persisting grayscale sample grids as image files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

import imageio.v2 as imageio
import numpy as np
import PIL.Image

PathLike = Union[str, Path]


class CodecError(RuntimeError):
    """Raised when an image cannot be written or read."""


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "TIF":
        return "TIFF"
    return upper


def check_format(image_format: str) -> str:
    """Pillow format name for ``image_format``; ``CodecError`` if it cannot be saved."""

    pil_format = _pil_format_name(image_format.lstrip("."))
    PIL.Image.init()
    if pil_format not in PIL.Image.SAVE:
        raise CodecError(f"unsupported image format '{image_format}'")
    return pil_format


def save_image(image: PIL.Image.Image, path: PathLike, pil_format: str) -> Path:
    """Save through a sibling temporary file so ``path`` is only ever replaced whole."""

    output_path = Path(path)
    partial = output_path.with_name(f".{output_path.name}.partial")
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        image.save(str(partial), format=pil_format)
        os.replace(partial, output_path)
    except (OSError, ValueError, KeyError) as exc:
        if partial.exists():
            partial.unlink()
        raise CodecError(f"could not write {output_path}: {exc}") from exc
    return output_path


def write_image(path: PathLike, grid: np.ndarray, image_format: str = "png") -> Path:
    """Write a 2-D array of 8- or 16-bit unsigned samples to ``path``.

    On failure ``CodecError`` is raised and any existing file at ``path`` is
    left untouched.
    """

    grid = np.asarray(grid)
    if grid.ndim != 2:
        raise CodecError(f"expected a 2-D sample grid, got shape {grid.shape}")
    if grid.dtype not in (np.uint8, np.uint16):
        raise CodecError(f"unsupported sample type {grid.dtype}")

    pil_format = check_format(image_format)
    try:
        image = PIL.Image.fromarray(np.ascontiguousarray(grid))
    except (TypeError, ValueError) as exc:
        raise CodecError(f"cannot encode grid: {exc}") from exc
    return save_image(image, path, pil_format)


def read_image(path: PathLike) -> np.ndarray:
    """Read a grayscale image back into a 2-D sample array."""

    try:
        data = imageio.imread(str(path))
    except (OSError, ValueError) as exc:
        raise CodecError(f"could not read {path}: {exc}") from exc
    array = np.asarray(data)
    if array.ndim != 2:
        raise CodecError(f"{path} is not a single-channel image (shape {array.shape})")
    return array
