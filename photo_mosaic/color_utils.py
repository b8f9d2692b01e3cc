"""Colour weighting, rank scores and the perceptual quality metric."""

from __future__ import annotations

import numpy as np
from skimage.color import deltaE_ciede2000, rgb2lab


def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert flat (N, 3) RGB in [0, 255] → (N, 3) float64 CIELAB."""
    rgb = np.clip(np.asarray(rgb, dtype=np.float64), 0.0, 255.0)
    return rgb2lab(rgb.reshape(1, -1, 3) / 255.0).reshape(-1, 3)


def rms_color(pixels: np.ndarray) -> np.ndarray:
    """Root-mean-square average of each channel.

    A plain mean darkens the result, so both cells and candidates are
    summarised as ``sqrt(mean(channel ** 2))``.

    Args:
        pixels: (..., 3) array of RGB values.

    Returns:
        (3,) float64.
    """
    flat = np.asarray(pixels, dtype=np.float64).reshape(-1, 3)
    if flat.size == 0:
        msg = "Cannot weigh an empty pixel region"
        raise ValueError(msg)
    return np.sqrt(np.mean(flat ** 2, axis=0))


def rms_block_colors(image: np.ndarray, rows: int, cols: int) -> np.ndarray:
    """RMS colour of each block when *image* is cut into ``rows x cols`` strides.

    Strides are ``height // rows`` and ``width // cols``; pixels left over at
    the right and bottom edges are ignored.

    Returns:
        (rows, cols, 3) float64.
    """
    h, w = image.shape[:2]
    sy, sx = h // rows, w // cols
    if sy == 0 or sx == 0:
        msg = f"Image {w}x{h} is too small for a {cols}x{rows} grid"
        raise ValueError(msg)
    block = image[: sy * rows, : sx * cols].astype(np.float64) ** 2
    block = block.reshape(rows, sy, cols, sx, 3)
    return np.sqrt(block.mean(axis=(1, 3)))


def compute_score_matrix(
    candidates: np.ndarray,
    cells: np.ndarray,
) -> np.ndarray:
    """Rank score between every cell and every candidate.

    The score is the absolute value of the summed signed channel
    differences, ``|(cR - tR) + (cG - tG) + (cB - tB)|``, not a Euclidean
    distance.

    Args:
        candidates: (M, 3) candidate average colours.
        cells:      (C, 3) cell target colours.

    Returns:
        (C, M) float64 score matrix.
    """
    diff = candidates[np.newaxis, :, :] - cells[:, np.newaxis, :]
    return np.abs(np.sum(diff, axis=2))


def mean_delta_e(targets: np.ndarray, colors: np.ndarray) -> float:
    """Mean CIEDE2000 difference between paired (N, 3) RGB colours."""
    if len(targets) == 0:
        return 0.0
    return float(np.mean(deltaE_ciede2000(rgb_to_lab(targets), rgb_to_lab(colors))))
