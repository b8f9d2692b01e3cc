"""Exception hierarchy for the mosaic pipeline.

Every failure the pipeline can report derives from :class:`MosaicError`.
The pipeline stamps the stage that was running onto the exception so the
CLI can tell the user where things went wrong.
"""

from __future__ import annotations


class MosaicError(Exception):
    """Base class for fatal pipeline errors."""

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


class EmptyPoolError(MosaicError):
    """No usable candidate images were found."""


class LoadError(MosaicError):
    """The reference image or a candidate image could not be read."""


class GridError(MosaicError):
    """No cell size satisfies the aspect-ratio tolerance above the size floor."""


class OutputError(MosaicError):
    """The finished mosaic could not be written."""


class MosaicCancelled(MosaicError):
    """A caller set the cancellation token while a stage was running."""
