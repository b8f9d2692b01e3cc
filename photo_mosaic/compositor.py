"""Final compositing: paste every assigned tile into the canvas."""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from photo_mosaic.grid import MosaicCell, MosaicGrid
from photo_mosaic.image_io import load_region
from photo_mosaic.pool import CandidateImage, CandidatePool

logger = logging.getLogger(__name__)


def dominant_channel(color: tuple[float, float, float] | np.ndarray) -> int | None:
    """Index of the strictly largest channel, or None on a tie."""
    values = np.asarray(color, dtype=np.float64)
    top = int(np.argmax(values))
    if np.count_nonzero(values == values[top]) > 1:
        return None
    return top


def apply_color_filter(
    tile: np.ndarray,
    target_color: tuple[float, float, float],
    percent: float,
) -> np.ndarray:
    """Pull the cell's dominant channel of every pixel toward its target.

    Only the channel that is strictly largest in *target_color* moves, by
    *percent* of the remaining distance; the other channels pass through.

    Args:
        tile: (H, W, 3) uint8 tile pixels.
        target_color: The cell's RMS colour.
        percent: Blend fraction in [0, 1].

    Returns:
        (H, W, 3) uint8, a new array.
    """
    out = tile.copy()
    channel = dominant_channel(target_color)
    if channel is None or percent == 0:
        return out
    values = tile[..., channel].astype(np.float64)
    values += percent * (target_color[channel] - values)
    out[..., channel] = np.clip(values, 0, 255).astype(np.uint8)
    return out


def _paste_candidate(
    canvas: np.ndarray,
    grid: MosaicGrid,
    candidate: CandidateImage,
    cells: list[MosaicCell],
    color_filter: bool,
    filter_percent: float,
) -> None:
    tile = load_region(candidate.path, grid.cell_width, grid.cell_height)
    for cell in cells:
        pixels = (
            apply_color_filter(tile, cell.target_color, filter_percent)
            if color_filter else tile
        )
        x0, y0, x1, y1 = grid.cell_bounds(cell.row, cell.col)
        canvas[y0:y1, x0:x1] = pixels
        logger.debug("Placed candidate %d in cell %d", candidate.id, cell.index)


def composite(
    grid: MosaicGrid,
    cells: list[MosaicCell],
    pool: CandidatePool,
    color_filter: bool = True,
    filter_percent: float = 0.5,
    workers: int | None = None,
) -> np.ndarray:
    """Build the mosaic canvas from the fitted cells.

    Each candidate is decoded once and pasted into all of its cells. Cell
    regions are disjoint, so candidates are handled in parallel and write
    straight into the shared canvas.

    Returns:
        (canvas_height, canvas_width, 3) uint8.
    """
    unassigned = [c.index for c in cells if not c.assigned]
    if unassigned:
        msg = f"{len(unassigned)} cells have no candidate (first: {unassigned[0]})"
        raise ValueError(msg)

    by_candidate: dict[int, list[MosaicCell]] = defaultdict(list)
    for cell in cells:
        by_candidate[cell.assigned_candidate_id].append(cell)

    canvas = np.zeros((grid.canvas_height, grid.canvas_width, 3), dtype=np.uint8)

    logger.info(
        "Compositing %d cells from %d distinct candidates (filter=%s, %.2f) ...",
        len(cells), len(by_candidate), color_filter, filter_percent,
    )
    t0 = time.perf_counter()

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(
                _paste_candidate, canvas, grid, pool[cid], group,
                color_filter, filter_percent,
            )
            for cid, group in by_candidate.items()
        ]
        for future in futures:
            future.result()

    logger.info("Compositing done  (%.1f s)", time.perf_counter() - t0)
    return canvas


def render_targets(grid: MosaicGrid, cells: list[MosaicCell]) -> np.ndarray:
    """Canvas where every cell is flat-filled with its target colour."""
    canvas = np.zeros((grid.canvas_height, grid.canvas_width, 3), dtype=np.uint8)
    for cell in cells:
        x0, y0, x1, y1 = grid.cell_bounds(cell.row, cell.col)
        canvas[y0:y1, x0:x1] = np.clip(np.round(cell.target_color), 0, 255)
    return canvas
