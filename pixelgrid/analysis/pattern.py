"""Pattern grid: per-cell dark/light symbols serialized as ``{"grid": [[...]]}``.

The JSON carries no width/height header; the grid-walk demo and other
consumers read ``grid[row][col]`` directly, with 0 meaning walkable.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

import cv2
import numpy as np

from pixelgrid.analysis.classify import SYMBOLS, Symbol, SymbolMode, classify_grid
from pixelgrid.analysis.sampler import sample_grid
from pixelgrid.config import (
    ALPHA_CUTOFF,
    PATTERN_MAX_CELLS,
    PATTERN_THRESHOLD,
    SILHOUETTE_COLS,
    SILHOUETTE_ROWS,
    SILHOUETTE_THRESHOLD,
)
from pixelgrid.raster import RasterImage
from pixelgrid.tiling.grid import GridSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatternGrid:
    cells: List[List[Symbol]]

    @property
    def rows(self) -> int:
        return len(self.cells)

    @property
    def cols(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    def to_dict(self) -> dict:
        return {"grid": [list(row) for row in self.cells]}

    def to_json(self) -> str:
        # Same layout as JSON.stringify(value, null, 2)
        return json.dumps(self.to_dict(), indent=2)

    def dark_mask(self) -> np.ndarray:
        """(R, C) bool: True where the cell is the dark symbol (1 / "black")."""
        dark = {SYMBOLS["binary"][0], SYMBOLS["label"][0]}
        return np.array([[v in dark for v in row] for row in self.cells], dtype=bool)

    @classmethod
    def from_json(cls, text: str) -> "PatternGrid":
        data = json.loads(text)
        grid = data.get("grid") if isinstance(data, dict) else None
        if not isinstance(grid, list) or not all(isinstance(row, list) for row in grid):
            raise ValueError('Pattern JSON must be an object with a "grid" list of rows')
        if grid and len({len(row) for row in grid}) != 1:
            raise ValueError("Pattern rows have different lengths")
        return cls(cells=grid)


def compute_pattern(
    raster: RasterImage,
    spec: GridSpec,
    mode: SymbolMode = "binary",
    alpha_cutoff: int = ALPHA_CUTOFF,
    max_cells: int = PATTERN_MAX_CELLS,
) -> PatternGrid:
    """
    Pure function of (raster, spec, mode): identical inputs always give an
    identical grid, so callers can recompute freely on every input change.
    """
    spec.validate(max_cells)
    threshold = PATTERN_THRESHOLD if spec.threshold is None else spec.threshold
    avg_luma, counts = sample_grid(raster, spec, alpha_cutoff=alpha_cutoff)
    cells = classify_grid(avg_luma, threshold, mode)
    logger.debug(
        "Pattern %dx%d threshold=%s mode=%s: %d dark cells, %d empty cells",
        spec.cols, spec.rows, threshold, mode,
        int((avg_luma < threshold).sum()), int((counts == 0).sum()),
    )
    return PatternGrid(cells=cells)


def silhouette_pattern(raster: RasterImage) -> PatternGrid:
    """Fixed 160x90 black/white export used for generated silhouettes."""
    spec = GridSpec(cols=SILHOUETTE_COLS, rows=SILHOUETTE_ROWS, threshold=SILHOUETTE_THRESHOLD)
    return compute_pattern(raster, spec, mode="label")


def render_pattern(pattern: PatternGrid, width: int, height: int, cell_px: Optional[int] = None) -> np.ndarray:
    """
    Paint the pattern as an (H, W, 3) uint8 black/white image for previews.
    If cell_px is given the output is (rows*cell_px, cols*cell_px) instead.
    """
    if pattern.rows == 0 or pattern.cols == 0:
        raise ValueError("Cannot render an empty pattern")
    small = np.where(pattern.dark_mask(), 0, 255).astype(np.uint8)
    if cell_px is not None:
        width, height = pattern.cols * cell_px, pattern.rows * cell_px
    gray = cv2.resize(small, (int(width), int(height)), interpolation=cv2.INTER_NEAREST)
    return np.repeat(gray[..., None], 3, axis=2)
