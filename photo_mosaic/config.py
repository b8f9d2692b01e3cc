"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class MosaicConfig:
    """All tuneable parameters for a mosaic run.

    Attributes:
        reference_path:   Image the mosaic reconstructs.
        output_path:      Where the finished mosaic is written.
        candidate_dir:    Folder scanned for tile images.
        grid_side:        Cells per row and per column (the grid is square).
        repeat_cap:       Max placements of a single tile across the mosaic.
        spacing:          Chebyshev radius (in cells) inside which a tile may not repeat.
        aspect_tolerance: Allowed deviation between reference and cell aspect ratios.
        min_cell_side:    Smallest cell side tried before giving up on the aspect search.
        color_filter:     Blend each tile's dominant channel toward its cell colour.
        filter_percent:   Blend strength in [0, 1].
        skip_unreadable:  Warn and skip unreadable tiles instead of aborting.
        workers:          Thread count for weighing, ranking and compositing
                          (None = executor default).
        rank_chunk_size:  Cells ranked per batch (controls peak RAM).
        save_comparison:  Generate a side-by-side comparison image.
    """

    # Paths
    reference_path: Path = field(default_factory=lambda: Path("reference.png"))
    output_path: Path = field(default_factory=lambda: Path("output/mosaic.png"))
    candidate_dir: Path = field(default_factory=lambda: Path("tiles"))

    # Grid
    grid_side: int = 40
    aspect_tolerance: float = 0.01
    min_cell_side: int = 20

    # Fitting
    repeat_cap: int = 5
    spacing: int = 10

    # Post-processing
    color_filter: bool = True
    filter_percent: float = 0.5

    # Loading / performance
    skip_unreadable: bool = False
    workers: int | None = None
    rank_chunk_size: int = 256

    # Output
    save_comparison: bool = False

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif"}
    )

    def __post_init__(self) -> None:
        if self.grid_side < 1:
            msg = f"grid_side must be >= 1, got {self.grid_side}"
            raise ValueError(msg)
        if self.repeat_cap < 1:
            msg = f"repeat_cap must be >= 1, got {self.repeat_cap}"
            raise ValueError(msg)
        if self.spacing < 0:
            msg = f"spacing must be >= 0, got {self.spacing}"
            raise ValueError(msg)
        if self.aspect_tolerance < 0:
            msg = f"aspect_tolerance must be >= 0, got {self.aspect_tolerance}"
            raise ValueError(msg)
        if self.min_cell_side < 1:
            msg = f"min_cell_side must be >= 1, got {self.min_cell_side}"
            raise ValueError(msg)
        if not 0.0 <= self.filter_percent <= 1.0:
            msg = f"filter_percent must be in [0, 1], got {self.filter_percent}"
            raise ValueError(msg)
        if self.workers is not None and self.workers < 1:
            msg = f"workers must be >= 1 or None, got {self.workers}"
            raise ValueError(msg)
        if self.rank_chunk_size < 1:
            msg = f"rank_chunk_size must be >= 1, got {self.rank_chunk_size}"
            raise ValueError(msg)
