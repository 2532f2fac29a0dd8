# pixelgrid/tiling/grid.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, List, Optional
import logging
import math
import numpy as np
import cv2

from pixelgrid.config import PATTERN_MAX_CELLS
from pixelgrid.errors import DegenerateGridError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridSpec:
    cols: int
    rows: int
    threshold: Optional[int] = None

    def validate(self, max_cells: int = PATTERN_MAX_CELLS) -> "GridSpec":
        """Check UI bounds. The per-axis maximum is caller policy (500 for analysis, 10 for splitting)."""
        for name, value in (("cols", self.cols), ("rows", self.rows)):
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if not 1 <= value <= max_cells:
                raise ValueError(f"{name} must be between 1 and {max_cells}, got {value}")
        if self.threshold is not None and not 0 <= self.threshold <= 255:
            raise ValueError(f"threshold must be between 0 and 255, got {self.threshold}")
        return self


@dataclass(frozen=True)
class CellRect:
    row: int
    col: int
    sx: int
    sy: int
    sw: int
    sh: int

    @property
    def is_empty(self) -> bool:
        return self.sw <= 0 or self.sh <= 0


def cell_size(width: int, height: int, spec: GridSpec) -> tuple[float, float]:
    """Fractional cell size (W / cols, H / rows)."""
    return width / spec.cols, height / spec.rows


def check_degenerate(width: int, height: int, spec: GridSpec) -> None:
    """
    A grid with more columns than pixels (or rows than pixels) has cells
    narrower than one pixel; reject it before any sampling or cropping.
    """
    if spec.cols < 1 or spec.rows < 1:
        raise ValueError(f"Grid needs at least one column and one row, got {spec.cols}x{spec.rows}")
    cell_w, cell_h = cell_size(width, height, spec)
    if int(cell_w) == 0 or int(cell_h) == 0:
        raise DegenerateGridError(
            f"Calculated cell size {cell_w:.3f}x{cell_h:.3f} rounds to zero for a "
            f"{width}x{height} image split into {spec.cols} cols x {spec.rows} rows. "
            "Check the image size and the row/column count.",
            width=width, height=height, cols=spec.cols, rows=spec.rows,
        )


def iter_cells(width: int, height: int, spec: GridSpec) -> Iterator[CellRect]:
    """
    Yield every cell rect row-major (row outer, col inner).

    Start is floored and size is ceiled, so the cells cover the whole image and
    neighbours may share one pixel row/column. Consumers of the pattern JSON
    depend on exactly this geometry.
    """
    check_degenerate(width, height, spec)
    cell_w, cell_h = cell_size(width, height, spec)
    sw = math.ceil(cell_w)
    sh = math.ceil(cell_h)
    for row in range(spec.rows):
        sy = math.floor(row * cell_h)
        for col in range(spec.cols):
            yield CellRect(row=row, col=col, sx=math.floor(col * cell_w), sy=sy, sw=sw, sh=sh)


def partition(width: int, height: int, spec: GridSpec) -> List[CellRect]:
    rects = list(iter_cells(width, height, spec))
    logger.debug(
        "Partitioned %dx%d into %d cells (%dx%d), cell=%dx%d",
        width, height, len(rects), spec.cols, spec.rows, rects[0].sw, rects[0].sh,
    )
    return rects


def coverage_count(width: int, height: int, rects: List[CellRect]) -> np.ndarray:
    """(H, W) int array: how many cells cover each source pixel."""
    counts = np.zeros((height, width), dtype=np.int32)
    for r in rects:
        counts[r.sy : r.sy + r.sh, r.sx : r.sx + r.sw] += 1
    return counts


def draw_grid_overlay(img_rgb: np.ndarray, spec: GridSpec, color=(0, 255, 0), thickness: int = 1) -> np.ndarray:
    """
    Draw thin grid lines at each cell's start to visualize the partition (for UI).
    """
    h, w = img_rgb.shape[:2]
    out_bgr = cv2.cvtColor(np.ascontiguousarray(img_rgb[..., :3]), cv2.COLOR_RGB2BGR).copy()
    bgr = (int(color[2]), int(color[1]), int(color[0]))
    cell_w, cell_h = cell_size(w, h, spec)
    for row in range(1, spec.rows):
        y = math.floor(row * cell_h)
        cv2.line(out_bgr, (0, y), (w, y), bgr, thickness)
    for col in range(1, spec.cols):
        x = math.floor(col * cell_w)
        cv2.line(out_bgr, (x, 0), (x, h), bgr, thickness)
    return cv2.cvtColor(out_bgr, cv2.COLOR_BGR2RGB)
