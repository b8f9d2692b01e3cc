"""Candidate pool: the tile images available for placement."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from photo_mosaic.errors import EmptyPoolError, LoadError
from photo_mosaic.image_io import list_candidate_files, read_size

logger = logging.getLogger(__name__)


@dataclass
class CandidateImage:
    """One tile image.

    ``average_color`` is filled in once by the weigher; ``placed_count``
    is only ever increased, by the fitter.
    """

    id: int
    path: Path
    width: int
    height: int
    average_color: tuple[float, float, float] | None = None
    placed_count: int = 0


@dataclass(frozen=True)
class CandidatePool:
    """Candidates in load order plus the smallest width/height in the set."""

    candidates: list[CandidateImage] = field(default_factory=list)
    min_width: int = 0
    min_height: int = 0

    def __len__(self) -> int:
        return len(self.candidates)

    def __iter__(self) -> Iterator[CandidateImage]:
        return iter(self.candidates)

    def __getitem__(self, candidate_id: int) -> CandidateImage:
        return self.candidates[candidate_id]

    def colors(self) -> np.ndarray:
        """(N, 3) float64 average colours, indexed by candidate id."""
        missing = [c.id for c in self.candidates if c.average_color is None]
        if missing:
            msg = f"{len(missing)} candidates have not been weighed (first id {missing[0]})"
            raise ValueError(msg)
        return np.array([c.average_color for c in self.candidates], dtype=np.float64)

    def placed_counts(self) -> np.ndarray:
        return np.array([c.placed_count for c in self.candidates], dtype=np.int64)


def load_candidate_pool(
    paths: Iterable[str | Path],
    skip_unreadable: bool = False,
) -> CandidatePool:
    """Record the size of every candidate and the pool-wide minimums.

    Args:
        paths: Tile image paths in the order ids should be assigned.
        skip_unreadable: Log and skip files Pillow cannot open instead of
            aborting with :class:`LoadError`.

    Raises:
        EmptyPoolError: No usable image was found.
    """
    candidates: list[CandidateImage] = []
    min_w = min_h = None

    for path in paths:
        path = Path(path)
        try:
            w, h = read_size(path)
        except LoadError:
            if not skip_unreadable:
                raise
            logger.warning("Skipping unreadable candidate %s", path)
            continue

        logger.debug("Loaded candidate %s (%dx%d)", path, w, h)
        candidates.append(CandidateImage(id=len(candidates), path=path, width=w, height=h))
        min_w = w if min_w is None else min(min_w, w)
        min_h = h if min_h is None else min(min_h, h)

    if not candidates:
        msg = "No usable candidate images found"
        raise EmptyPoolError(msg)

    logger.info(
        "Loaded %d candidate images (min %dx%d)", len(candidates), min_w, min_h,
    )
    return CandidatePool(candidates=candidates, min_width=min_w, min_height=min_h)


def scan_candidate_pool(
    folder: str | Path,
    extensions: Iterable[str],
    skip_unreadable: bool = False,
) -> CandidatePool:
    """List *folder* and load every supported image in name order."""
    paths = list_candidate_files(folder, extensions)
    if not paths:
        msg = f"No candidate images found in {folder}"
        raise EmptyPoolError(msg)
    return load_candidate_pool(paths, skip_unreadable=skip_unreadable)
