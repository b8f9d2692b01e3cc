"""End-to-end mosaic pipeline.

``LOAD -> GRID -> WEIGH -> RANK -> FIT -> COMPOSITE -> DONE``

Stages run strictly in sequence and none is retried. A failure in any
stage raises a :class:`~photo_mosaic.errors.MosaicError` stamped with the
stage name, and nothing is written to the output path.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import numpy as np

from photo_mosaic.color_utils import mean_delta_e
from photo_mosaic.compositor import composite, render_targets
from photo_mosaic.config import MosaicConfig
from photo_mosaic.errors import MosaicError
from photo_mosaic.fitter import FitResult, fit_cells
from photo_mosaic.grid import MosaicCell, MosaicGrid, build_grid, cell_colors
from photo_mosaic.image_io import load_image, make_comparison_grid, save_image
from photo_mosaic.pool import CandidatePool, scan_candidate_pool
from photo_mosaic.ranker import rank_cells
from photo_mosaic.weigher import weigh_candidates

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    LOAD = "load"
    GRID = "grid"
    WEIGH = "weigh"
    RANK = "rank"
    FIT = "fit"
    COMPOSITE = "composite"
    DONE = "done"


StageCallback = Callable[[Stage], None]


@dataclass
class MosaicResult:
    """Everything a finished run produced."""

    grid: MosaicGrid
    cells: list[MosaicCell]
    pool: CandidatePool
    fit: FitResult
    canvas: np.ndarray
    reference: np.ndarray
    timings: dict[Stage, float] = field(default_factory=dict)

    def delta_e(self) -> float:
        """Mean CIEDE2000 error between cell targets and placed tile colours."""
        placed = self.pool.colors()[[c.assigned_candidate_id for c in self.cells]]
        return mean_delta_e(cell_colors(self.cells), placed)


@contextmanager
def _stage(
    stage: Stage,
    timings: dict[Stage, float],
    on_stage: StageCallback | None,
) -> Iterator[None]:
    logger.info("Starting %s", stage.value)
    if on_stage is not None:
        on_stage(stage)
    t0 = time.perf_counter()
    try:
        yield
    except MosaicError as exc:
        if exc.stage is None:
            exc.stage = stage.value
        raise
    timings[stage] = time.perf_counter() - t0
    logger.info("Done %s  (%.2f s)", stage.value, timings[stage])


def _load_and_grid(
    cfg: MosaicConfig,
    timings: dict[Stage, float],
    on_stage: StageCallback | None,
) -> tuple[CandidatePool, np.ndarray, MosaicGrid, list[MosaicCell]]:
    with _stage(Stage.LOAD, timings, on_stage):
        pool = scan_candidate_pool(
            cfg.candidate_dir, cfg.SUPPORTED_EXTENSIONS, cfg.skip_unreadable,
        )

    with _stage(Stage.GRID, timings, on_stage):
        reference = load_image(cfg.reference_path)
        grid, cells = build_grid(
            reference,
            pool.min_width,
            pool.min_height,
            cfg.grid_side,
            cfg.aspect_tolerance,
            cfg.min_cell_side,
        )
    return pool, reference, grid, cells


def build_mosaic(
    cfg: MosaicConfig,
    cancel_event: threading.Event | None = None,
    on_stage: StageCallback | None = None,
) -> MosaicResult:
    """Run every stage and return the composited canvas (nothing is saved).

    Args:
        cfg: Run configuration.
        cancel_event: Checked between ranking chunks and between fitted
            cells; setting it aborts with ``MosaicCancelled``.
        on_stage: Called with each stage as it starts.
    """
    timings: dict[Stage, float] = {}
    pool, reference, grid, cells = _load_and_grid(cfg, timings, on_stage)

    with _stage(Stage.WEIGH, timings, on_stage):
        weigh_candidates(pool, grid.cell_width, grid.cell_height, cfg.workers)

    with _stage(Stage.RANK, timings, on_stage):
        ranking = rank_cells(
            cells, pool, cfg.rank_chunk_size, cfg.workers, cancel_event,
        )

    with _stage(Stage.FIT, timings, on_stage):
        fit = fit_cells(
            grid, cells, pool, ranking, cfg.repeat_cap, cfg.spacing, cancel_event,
        )

    with _stage(Stage.COMPOSITE, timings, on_stage):
        canvas = composite(
            grid, cells, pool, cfg.color_filter, cfg.filter_percent, cfg.workers,
        )

    if on_stage is not None:
        on_stage(Stage.DONE)
    return MosaicResult(
        grid=grid,
        cells=cells,
        pool=pool,
        fit=fit,
        canvas=canvas,
        reference=reference,
        timings=timings,
    )


def run(
    cfg: MosaicConfig,
    cancel_event: threading.Event | None = None,
    on_stage: StageCallback | None = None,
) -> MosaicResult:
    """Build the mosaic and write it (plus the optional comparison) to disk.

    Either both files are written or neither is: a failed comparison
    removes the mosaic saved just before it.
    """
    result = build_mosaic(cfg, cancel_event, on_stage)
    try:
        save_image(result.canvas, cfg.output_path)
        if cfg.save_comparison:
            make_comparison_grid(
                result.reference,
                render_targets(result.grid, result.cells),
                result.canvas,
                comparison_path(cfg.output_path),
            )
    except MosaicError as exc:
        Path(cfg.output_path).unlink(missing_ok=True)
        exc.stage = exc.stage or Stage.COMPOSITE.value
        raise
    return result


def preview_targets(
    cfg: MosaicConfig,
    on_stage: StageCallback | None = None,
) -> tuple[MosaicGrid, np.ndarray]:
    """Run LOAD and GRID only and render each cell's target colour.

    Useful to check the grid and the sampled colours before paying for
    weighing, ranking and fitting.
    """
    timings: dict[Stage, float] = {}
    _, _, grid, cells = _load_and_grid(cfg, timings, on_stage)
    return grid, render_targets(grid, cells)


def comparison_path(output_path: Path) -> Path:
    output_path = Path(output_path)
    return output_path.with_name(f"{output_path.stem}_comparison{output_path.suffix}")
