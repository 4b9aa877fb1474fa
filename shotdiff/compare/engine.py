"""Comparison engine — dimension pre-check followed by an SSIM dissimilarity score."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError
from skimage.metrics import structural_similarity

from shotdiff.errors import DecodeError
from shotdiff.models.comparison import MAX_DISSIMILARITY, ComparisonResult, Verdict

logger = logging.getLogger(__name__)

SSIM_WINDOW = 7
# Smallest positive score: pixels differ even if SSIM rounds to 1.0
_MIN_NONZERO_SCORE = float(np.finfo(np.float64).eps)


def open_image(path: str | Path) -> Image.Image:
    """Open an image lazily (header only) or raise :class:`DecodeError`."""
    try:
        return Image.open(path)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise DecodeError(str(path), str(e)) from e


def to_rgb_array(image: Image.Image, label: str = "") -> np.ndarray:
    """Fully decode ``image`` into an ``(h, w, 3)`` uint8 array."""
    try:
        return np.asarray(image.convert("RGB"), dtype=np.uint8)
    except (Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
        raise DecodeError(label or getattr(image, "filename", "") or "<image>", str(e)) from e


def dissimilarity(a: np.ndarray, b: np.ndarray) -> float:
    """Structural dissimilarity of two equally sized RGB arrays.

    0.0 means the pixel data is identical. Otherwise the score is
    ``1 - SSIM`` (strictly positive, at most 2.0).
    """
    if a.shape != b.shape:
        raise ValueError(f"shape mismatch: {a.shape} vs {b.shape}")
    if np.array_equal(a, b):
        return 0.0

    height, width = a.shape[:2]
    win_size = min(SSIM_WINDOW, height, width)
    if win_size % 2 == 0:
        win_size -= 1

    if win_size < 3:
        # Too small for a windowed metric, use the normalised mean difference
        diff = np.abs(a.astype(np.float64) - b.astype(np.float64))
        score = float(diff.mean() / 255.0)
    else:
        ssim = structural_similarity(
            a, b, win_size=win_size, channel_axis=2, data_range=255
        )
        score = float(np.clip(1.0 - ssim, 0.0, 2.0))

    return max(score, _MIN_NONZERO_SCORE)


def compare(image_a: Image.Image, image_b: Image.Image, filename: str = "") -> ComparisonResult:
    """Compare two opened images.

    Images of different pixel size are reported as ``size_mismatch`` with
    the maximal score and never decoded.
    """
    size_a, size_b = image_a.size, image_b.size
    if size_a != size_b:
        logger.debug("%s: size mismatch %s vs %s", filename, size_a, size_b)
        return ComparisonResult(
            filename=filename,
            score=MAX_DISSIMILARITY,
            verdict=Verdict.SIZE_MISMATCH,
            old_size=size_a,
            new_size=size_b,
        )

    arr_a = to_rgb_array(image_a)
    arr_b = to_rgb_array(image_b)
    score = dissimilarity(arr_a, arr_b)
    verdict = Verdict.IDENTICAL if score == 0.0 else Verdict.CONTENT_MISMATCH
    logger.debug("%s: %s (score=%.6f)", filename, verdict.value, score)
    return ComparisonResult(
        filename=filename,
        score=score,
        verdict=verdict,
        old_size=size_a,
        new_size=size_b,
    )


def compare_images(old_path: str | Path, new_path: str | Path, filename: str | None = None) -> ComparisonResult:
    """Compare two image files on disk. Raises :class:`DecodeError` on bad input."""
    filename = filename or Path(new_path).name
    with open_image(old_path) as old_img, open_image(new_path) as new_img:
        try:
            return compare(old_img, new_img, filename=filename)
        except (OSError, SyntaxError) as e:
            raise DecodeError(filename, str(e)) from e
