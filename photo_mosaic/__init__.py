"""
Photo Mosaic Builder
====================

Rebuild a reference image as a square grid of tile images. Each cell
takes the tile whose RMS colour best matches it, subject to a cap on
how often a tile repeats and how close repeats may sit.

Pipeline: load -> grid -> weigh -> rank -> fit -> composite.
"""

__version__ = "1.0.0"

from photo_mosaic.compositor import apply_color_filter, composite, render_targets
from photo_mosaic.config import MosaicConfig
from photo_mosaic.errors import (
    EmptyPoolError,
    GridError,
    LoadError,
    MosaicCancelled,
    MosaicError,
    OutputError,
)
from photo_mosaic.fitter import FitResult, Relaxation, fit_cells
from photo_mosaic.grid import MosaicCell, MosaicGrid, build_grid, find_cell_size
from photo_mosaic.pipeline import MosaicResult, Stage, build_mosaic, preview_targets, run
from photo_mosaic.pool import CandidateImage, CandidatePool, load_candidate_pool
from photo_mosaic.ranker import RankEntry, Ranking, rank_cells
from photo_mosaic.weigher import weigh_candidates

__all__ = [
    "CandidateImage",
    "CandidatePool",
    "EmptyPoolError",
    "FitResult",
    "GridError",
    "LoadError",
    "MosaicCancelled",
    "MosaicCell",
    "MosaicConfig",
    "MosaicError",
    "MosaicGrid",
    "MosaicResult",
    "OutputError",
    "RankEntry",
    "Ranking",
    "Relaxation",
    "Stage",
    "apply_color_filter",
    "build_grid",
    "build_mosaic",
    "composite",
    "fit_cells",
    "find_cell_size",
    "load_candidate_pool",
    "preview_targets",
    "rank_cells",
    "render_targets",
    "run",
    "weigh_candidates",
]
