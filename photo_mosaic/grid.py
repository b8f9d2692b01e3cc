"""Mosaic grid: cell pixel size, cell layout and per-cell target colours."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from photo_mosaic.color_utils import rms_block_colors
from photo_mosaic.errors import GridError

logger = logging.getLogger(__name__)

UNASSIGNED = -1


@dataclass(frozen=True)
class MosaicGrid:
    """Square grid of equally sized cells covering the output canvas."""

    rows: int
    cols: int
    cell_width: int
    cell_height: int

    @property
    def canvas_width(self) -> int:
        return self.cell_width * self.cols

    @property
    def canvas_height(self) -> int:
        return self.cell_height * self.rows

    @property
    def num_cells(self) -> int:
        return self.rows * self.cols

    def cell_bounds(self, row: int, col: int) -> tuple[int, int, int, int]:
        """Pixel box ``(x0, y0, x1, y1)`` of a cell, end-exclusive."""
        x0 = col * self.cell_width
        y0 = row * self.cell_height
        return x0, y0, x0 + self.cell_width, y0 + self.cell_height


@dataclass
class MosaicCell:
    """One grid cell; ``assigned_candidate_id`` may be written only once."""

    index: int
    row: int
    col: int
    start_x: int
    start_y: int
    target_color: tuple[float, float, float]
    assigned_candidate_id: int = UNASSIGNED

    @property
    def assigned(self) -> bool:
        return self.assigned_candidate_id != UNASSIGNED

    def assign(self, candidate_id: int) -> None:
        if self.assigned:
            msg = (
                f"Cell {self.index} already holds candidate "
                f"{self.assigned_candidate_id}"
            )
            raise RuntimeError(msg)
        self.assigned_candidate_id = candidate_id


def find_cell_size(
    ref_width: int,
    ref_height: int,
    min_width: int,
    min_height: int,
    tolerance: float,
    floor: int = 20,
) -> tuple[int, int]:
    """Largest cell that keeps the reference aspect ratio within *tolerance*.

    The candidate minimum size is the starting point; whichever side makes
    the candidate ratio differ from the reference is shrunk one pixel at a
    time until ``|ref_ratio - cell_ratio| <= tolerance``.

    Raises:
        GridError: A size at or below *floor* was tried without success.
    """
    ref_ratio = ref_width / ref_height
    cand_ratio = min_width / min_height

    if cand_ratio < ref_ratio:
        logger.info("Cropping cell height")
        for new_height in range(min_height, 0, -1):
            if abs(ref_ratio - min_width / new_height) <= tolerance:
                return min_width, new_height
            if new_height <= floor:
                break
        msg = (
            f"Cell height fell to {floor}px without matching aspect ratio "
            f"{ref_ratio:.4f} within {tolerance}; increase the tolerance"
        )
        raise GridError(msg)

    logger.info("Cropping cell width")
    for new_width in range(min_width, 0, -1):
        if abs(ref_ratio - new_width / min_height) <= tolerance:
            return new_width, min_height
        if new_width <= floor:
            break
    msg = (
        f"Cell width fell to {floor}px without matching aspect ratio "
        f"{ref_ratio:.4f} within {tolerance}; increase the tolerance"
    )
    raise GridError(msg)


def build_grid(
    reference: np.ndarray,
    min_width: int,
    min_height: int,
    grid_side: int,
    tolerance: float,
    floor: int = 20,
) -> tuple[MosaicGrid, list[MosaicCell]]:
    """Derive the grid and sample one target colour per cell.

    Args:
        reference: (H, W, 3) uint8 reference image.
        min_width, min_height: Smallest candidate dimensions.
        grid_side: Cells per row and column.
        tolerance: Aspect ratio tolerance.
        floor: Smallest cell side tried.

    Returns:
        The grid and its cells in row-major order, all unassigned.
    """
    ref_h, ref_w = reference.shape[:2]
    if ref_w < grid_side or ref_h < grid_side:
        msg = f"Reference {ref_w}x{ref_h} is smaller than a {grid_side}x{grid_side} grid"
        raise GridError(msg)

    cell_w, cell_h = find_cell_size(ref_w, ref_h, min_width, min_height, tolerance, floor)
    grid = MosaicGrid(rows=grid_side, cols=grid_side, cell_width=cell_w, cell_height=cell_h)

    targets = rms_block_colors(reference, grid.rows, grid.cols)
    cells = [
        MosaicCell(
            index=r * grid.cols + c,
            row=r,
            col=c,
            start_x=c * cell_w,
            start_y=r * cell_h,
            target_color=tuple(float(v) for v in targets[r, c]),
        )
        for r in range(grid.rows)
        for c in range(grid.cols)
    ]

    logger.info(
        "Grid %dx%d | canvas %dx%d | cell %dx%d",
        grid.rows, grid.cols, grid.canvas_width, grid.canvas_height, cell_w, cell_h,
    )
    return grid, cells


def cell_colors(cells: list[MosaicCell]) -> np.ndarray:
    """(C, 3) float64 target colours in cell-index order."""
    return np.array([c.target_color for c in cells], dtype=np.float64)
