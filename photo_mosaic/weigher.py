"""Candidate weighing: the RMS colour of each tile's cell-sized crop."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor

from photo_mosaic.color_utils import rms_color
from photo_mosaic.errors import EmptyPoolError
from photo_mosaic.image_io import load_region
from photo_mosaic.pool import CandidateImage, CandidatePool

logger = logging.getLogger(__name__)


def weigh_candidate(
    candidate: CandidateImage,
    cell_width: int,
    cell_height: int,
) -> tuple[float, float, float]:
    """RMS colour of the top-left ``cell_width x cell_height`` region."""
    region = load_region(candidate.path, cell_width, cell_height)
    r, g, b = rms_color(region)
    logger.debug("Weighed %s -> (%.1f, %.1f, %.1f)", candidate.path, r, g, b)
    return float(r), float(g), float(b)


def weigh_candidates(
    pool: CandidatePool,
    cell_width: int,
    cell_height: int,
    workers: int | None = None,
) -> None:
    """Set ``average_color`` on every candidate in *pool*.

    Each task reads its own file and writes only its own candidate, so the
    work is spread over a thread pool without locking.
    """
    if not len(pool):
        msg = "Cannot weigh an empty candidate pool"
        raise EmptyPoolError(msg)

    t0 = time.perf_counter()
    with ThreadPoolExecutor(max_workers=workers) as executor:
        colors = list(executor.map(
            lambda c: weigh_candidate(c, cell_width, cell_height), pool,
        ))

    for candidate, color in zip(pool, colors, strict=True):
        candidate.average_color = color

    logger.info(
        "Weighed %d candidates at %dx%d  (%.1f s)",
        len(pool), cell_width, cell_height, time.perf_counter() - t0,
    )
