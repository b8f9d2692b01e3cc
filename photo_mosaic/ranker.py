"""Per-cell ranking of every candidate by colour score."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import numpy as np

from photo_mosaic.color_utils import compute_score_matrix
from photo_mosaic.errors import EmptyPoolError, MosaicCancelled
from photo_mosaic.grid import MosaicCell, cell_colors
from photo_mosaic.pool import CandidatePool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankEntry:
    candidate_id: int
    score: float


@dataclass(frozen=True)
class Ranking:
    """Candidate order for every cell, best score first.

    Attributes:
        order:  (C, M) int candidate ids; row ``i`` belongs to cell ``i``.
        scores: (C, M) float64 scores aligned with *order*.
    """

    order: np.ndarray
    scores: np.ndarray

    def __len__(self) -> int:
        return len(self.order)

    def entries(self, cell_index: int) -> list[RankEntry]:
        return [
            RankEntry(int(k), float(s))
            for k, s in zip(self.order[cell_index], self.scores[cell_index], strict=True)
        ]


def rank_cells(
    cells: list[MosaicCell],
    pool: CandidatePool,
    chunk_size: int = 256,
    workers: int | None = None,
    cancel_event: threading.Event | None = None,
) -> Ranking:
    """Sort all candidates for each cell by ascending score.

    Ties keep ascending candidate id (stable sort), so the ranking is
    deterministic. Chunks of cells are scored on a thread pool; each chunk
    writes its own rows of the result.

    Args:
        cells: Grid cells with target colours set.
        pool: Weighed candidates.
        chunk_size: Cells scored per batch (controls peak RAM).
        workers: Thread count (None = executor default).
        cancel_event: Checked before each chunk; raises
            :class:`MosaicCancelled` once set.
    """
    if not len(pool):
        msg = "Cannot rank against an empty candidate pool"
        raise EmptyPoolError(msg)

    cand = pool.colors()
    targets = cell_colors(cells)
    n_cells, n_cand = len(targets), len(cand)

    logger.info("Ranking %d candidates for %d cells ...", n_cand, n_cells)
    t0 = time.perf_counter()

    index_dtype = np.int32 if n_cand < 2**31 else np.int64
    order = np.empty((n_cells, n_cand), dtype=index_dtype)
    scores = np.empty((n_cells, n_cand), dtype=np.float64)

    def _rank_chunk(start: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            msg = "Ranking cancelled"
            raise MosaicCancelled(msg)
        stop = min(start + chunk_size, n_cells)
        chunk = compute_score_matrix(cand, targets[start:stop])
        idx = np.argsort(chunk, axis=1, kind="stable")
        order[start:stop] = idx
        scores[start:stop] = np.take_along_axis(chunk, idx, axis=1)
        logger.debug("Ranked cells %d-%d", start, stop - 1)

    with ThreadPoolExecutor(max_workers=workers) as executor:
        # list() re-raises the first worker exception
        list(executor.map(_rank_chunk, range(0, n_cells, chunk_size)))

    logger.info("Ranking ready  (%.1f s)", time.perf_counter() - t0)
    return Ranking(order=order, scores=scores)
