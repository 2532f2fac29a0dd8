"""Exceptions raised by the grid analysis and tiling code.

Every failure aborts the whole grid operation; there is no partial result.
Bad user parameters (grid bounds, thresholds, modes) raise ``ValueError``.
"""


class PixelGridError(Exception):
    """Base class for all pixelgrid failures."""


class DecodeError(PixelGridError):
    """The source image could not be read or decoded."""


class DegenerateGridError(PixelGridError):
    """The grid would produce a cell with zero width or height."""

    def __init__(self, message: str, width: int = 0, height: int = 0, cols: int = 0, rows: int = 0):
        super().__init__(message)
        self.width = width
        self.height = height
        self.cols = cols
        self.rows = rows


class CanvasUnavailableError(PixelGridError):
    """No usable pixel surface (bad buffer shape, encoder failure)."""


class MapDataError(PixelGridError):
    """Map JSON for the grid-walk demo is malformed or has the wrong size."""
