"""Diff artifact generator — marks changed pixels between two captures."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from PIL import Image, ImageDraw

from .engine import to_rgb_array

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 100
HIGHLIGHT = (255, 0, 0)
# Opacity of the unchanged background, 0-1
_BACKGROUND_FADE = 0.35


def _pad_to(arr: np.ndarray, height: int, width: int) -> np.ndarray:
    """Place ``arr`` at the top-left of a white canvas of the given size."""
    if arr.shape[0] == height and arr.shape[1] == width:
        return arr
    canvas = np.full((height, width, 3), 255, dtype=np.uint8)
    canvas[: arr.shape[0], : arr.shape[1]] = arr
    return canvas


def difference_mask(old: np.ndarray, new: np.ndarray, tolerance: int = DEFAULT_TOLERANCE) -> np.ndarray:
    """Boolean ``(h, w)`` mask of pixels where any channel differs by more than ``tolerance``."""
    delta = np.abs(old.astype(np.int16) - new.astype(np.int16))
    return (delta > tolerance).any(axis=2)


def render_diff(
    old_image: Image.Image,
    new_image: Image.Image,
    output_path: str | Path,
    tolerance: int = DEFAULT_TOLERANCE,
    highlight: tuple[int, int, int] = HIGHLIGHT,
    fmt: str = "png",
) -> Path:
    """Write an overlay of ``new_image`` with changed pixels painted in ``highlight``.

    The output is as large as the larger input; inputs are aligned at the
    top-left corner. Unchanged pixels are shown as a faded greyscale copy of
    the new image so the marked regions stand out. Write errors propagate as
    ``OSError``.
    """
    old = to_rgb_array(old_image, "old")
    new = to_rgb_array(new_image, "new")
    height = max(old.shape[0], new.shape[0])
    width = max(old.shape[1], new.shape[1])
    old = _pad_to(old, height, width)
    new = _pad_to(new, height, width)

    mask = difference_mask(old, new, tolerance)

    grey = np.asarray(Image.fromarray(new).convert("L"), dtype=np.float64)
    faded = 255.0 - (255.0 - grey) * _BACKGROUND_FADE
    overlay = np.repeat(faded[:, :, None], 3, axis=2).astype(np.uint8)
    overlay[mask] = highlight

    result = Image.fromarray(overlay)
    changed = int(mask.sum())
    if changed:
        ys, xs = np.nonzero(mask)
        draw = ImageDraw.Draw(result)
        draw.rectangle(
            [int(xs.min()), int(ys.min()), int(xs.max()), int(ys.max())],
            outline=highlight,
        )

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    result.save(output_path, format="JPEG" if fmt == "jpeg" else "PNG")
    logger.debug(
        "Wrote diff %s (%dx%d, %d pixels over tolerance %d)",
        output_path, width, height, changed, tolerance,
    )
    return output_path
