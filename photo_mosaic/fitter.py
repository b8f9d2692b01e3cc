"""Greedy tile fitting under repeat-cap and spacing constraints.

Cells are visited in row-major order and each takes the best-ranked
candidate that

- has been placed fewer than ``repeat_cap`` times, and
- is not already used inside the square window of Chebyshev radius
  ``spacing`` around the cell (clipped to the grid).

Placement is final. When a ranking runs out without an admissible
candidate, the spacing rule is dropped first and then the repeat cap; the
relaxation that fired is recorded per cell.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum

import numpy as np

from photo_mosaic.errors import MosaicCancelled
from photo_mosaic.grid import UNASSIGNED, MosaicCell, MosaicGrid
from photo_mosaic.pool import CandidatePool
from photo_mosaic.ranker import Ranking

logger = logging.getLogger(__name__)


class Relaxation(str, Enum):
    NONE = "none"
    SPACING = "spacing"
    REPEAT_CAP = "repeat_cap"


@dataclass
class FitResult:
    """Outcome of the fitting stage.

    Attributes:
        assignments:   (rows, cols) candidate id per cell.
        placed_counts: (M,) placements per candidate.
        relaxations:   Relaxation used for each cell, in cell-index order.
    """

    assignments: np.ndarray
    placed_counts: np.ndarray
    relaxations: list[Relaxation]

    def relaxed_cells(self, kind: Relaxation) -> list[int]:
        return [i for i, r in enumerate(self.relaxations) if r is kind]

    def summary(self) -> dict[str, int]:
        return {kind.value: len(self.relaxed_cells(kind)) for kind in Relaxation}


class FitContext:
    """Mutable fitting state; only the fitting loop writes to it.

    Placement counts start from each candidate's ``placed_count``, so a pool
    that already holds placements keeps counting against its repeat cap.
    """

    def __init__(
        self,
        grid: MosaicGrid,
        pool: CandidatePool,
        repeat_cap: int,
        spacing: int,
    ) -> None:
        self.grid = grid
        self.repeat_cap = repeat_cap
        self.spacing = spacing
        self.assignments = np.full((grid.rows, grid.cols), UNASSIGNED, dtype=np.int64)
        self.pool = pool
        self.placed_counts = pool.placed_counts()

    def neighbour_ids(self, row: int, col: int) -> np.ndarray:
        """Candidate ids already placed inside the spacing window."""
        s = self.spacing
        window = self.assignments[
            max(0, row - s): row + s + 1,
            max(0, col - s): col + s + 1,
        ]
        return np.unique(window[window != UNASSIGNED])

    def choose(self, cell: MosaicCell, order: np.ndarray) -> tuple[int, Relaxation]:
        """Pick a candidate for *cell* from its ranked candidate ids."""
        under_cap = self.placed_counts[order] < self.repeat_cap
        spaced = ~np.isin(order, self.neighbour_ids(cell.row, cell.col))

        hits = np.flatnonzero(under_cap & spaced)
        if hits.size:
            return int(order[hits[0]]), Relaxation.NONE

        hits = np.flatnonzero(under_cap)
        if hits.size:
            return int(order[hits[0]]), Relaxation.SPACING

        return int(order[0]), Relaxation.REPEAT_CAP

    def place(self, cell: MosaicCell, candidate_id: int) -> None:
        cell.assign(candidate_id)
        self.assignments[cell.row, cell.col] = candidate_id
        self.placed_counts[candidate_id] += 1
        self.pool[candidate_id].placed_count += 1


def fit_cells(
    grid: MosaicGrid,
    cells: list[MosaicCell],
    pool: CandidatePool,
    ranking: Ranking,
    repeat_cap: int,
    spacing: int,
    cancel_event: threading.Event | None = None,
) -> FitResult:
    """Assign a candidate to every cell, in row-major order.

    Mutates ``cell.assigned_candidate_id`` and ``candidate.placed_count``.

    Raises:
        MosaicCancelled: *cancel_event* was set between two cells. Cells
            assigned so far keep their candidate.
    """
    if len(ranking) != len(cells):
        msg = f"Ranking covers {len(ranking)} cells, grid has {len(cells)}"
        raise ValueError(msg)

    ctx = FitContext(grid, pool, repeat_cap, spacing)
    relaxations: list[Relaxation] = []

    logger.info(
        "Fitting %d cells (repeat cap %d, spacing %d) ...",
        len(cells), repeat_cap, spacing,
    )
    t0 = time.perf_counter()

    for cell in sorted(cells, key=lambda c: c.index):
        if cancel_event is not None and cancel_event.is_set():
            msg = f"Fitting cancelled at cell {cell.index}"
            raise MosaicCancelled(msg)

        candidate_id, relaxation = ctx.choose(cell, ranking.order[cell.index])
        ctx.place(cell, candidate_id)
        relaxations.append(relaxation)

        if relaxation is not Relaxation.NONE:
            logger.debug(
                "Cell %d (%d, %d): relaxed %s, placed candidate %d",
                cell.index, cell.row, cell.col, relaxation.value, candidate_id,
            )

    result = FitResult(
        assignments=ctx.assignments,
        placed_counts=ctx.placed_counts,
        relaxations=relaxations,
    )
    summary = result.summary()
    if summary[Relaxation.SPACING.value] or summary[Relaxation.REPEAT_CAP.value]:
        logger.warning(
            "Relaxed constraints: spacing=%d cells, repeat cap=%d cells",
            summary[Relaxation.SPACING.value], summary[Relaxation.REPEAT_CAP.value],
        )
    logger.info("Fitting done  (%.1f s)", time.perf_counter() - t0)
    return result
