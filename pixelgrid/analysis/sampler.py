# pixelgrid/analysis/sampler.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple
import numpy as np

from pixelgrid.config import ALPHA_CUTOFF, EMPTY_CELL_LUMA
from pixelgrid.raster import RasterImage
from pixelgrid.tiling.grid import CellRect, GridSpec, partition

# BT.601 weights scaled by 1000 so per-pixel luma is an exact integer.
# Sums stay exact in int64; only the final average is a float.
_LUMA_WEIGHTS = np.array([299, 587, 114], dtype=np.int64)
_LUMA_SCALE = 1000.0


@dataclass(frozen=True)
class CellSample:
    avg_luminance: float
    pixel_count: int


def luma_milli(rgba: np.ndarray) -> np.ndarray:
    """Per-pixel 1000 * (0.299 R + 0.587 G + 0.114 B) as int64, shape (...,)."""
    return rgba[..., :3].astype(np.int64) @ _LUMA_WEIGHTS


def opaque_mask(rgba: np.ndarray, alpha_cutoff: int = ALPHA_CUTOFF) -> np.ndarray:
    return rgba[..., 3] > alpha_cutoff


def sample_cell(raster: RasterImage, rect: CellRect, alpha_cutoff: int = ALPHA_CUTOFF) -> CellSample:
    """
    Average luma over the cell's pixels with alpha > alpha_cutoff. Mostly
    transparent pixels are skipped, not counted as black or white. A cell with
    no qualifying pixels reports EMPTY_CELL_LUMA.
    """
    region = raster.region(rect)
    mask = opaque_mask(region, alpha_cutoff)
    count = int(mask.sum())
    if count == 0:
        return CellSample(avg_luminance=float(EMPTY_CELL_LUMA), pixel_count=0)
    total = int(luma_milli(region)[mask].sum())
    return CellSample(avg_luminance=total / _LUMA_SCALE / count, pixel_count=count)


def _summed_area(values: np.ndarray) -> np.ndarray:
    sat = np.zeros((values.shape[0] + 1, values.shape[1] + 1), dtype=np.int64)
    sat[1:, 1:] = values.cumsum(axis=0).cumsum(axis=1)
    return sat


def sample_grid(
    raster: RasterImage,
    spec: GridSpec,
    alpha_cutoff: int = ALPHA_CUTOFF,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorized sampling of every cell at once via summed-area tables.
    Returns (avg_luma[R, C] float64, pixel_count[R, C] int64). Same numbers as
    calling sample_cell on each rect from partition().
    """
    rects = partition(raster.width, raster.height, spec)
    mask = opaque_mask(raster.pixels, alpha_cutoff)
    luma_sat = _summed_area(np.where(mask, luma_milli(raster.pixels), 0))
    count_sat = _summed_area(mask.astype(np.int64))

    sx = np.array([r.sx for r in rects], dtype=np.int64)
    sy = np.array([r.sy for r in rects], dtype=np.int64)
    x1 = np.minimum(sx + rects[0].sw, raster.width)
    y1 = np.minimum(sy + rects[0].sh, raster.height)

    def box(sat: np.ndarray) -> np.ndarray:
        return sat[y1, x1] - sat[sy, x1] - sat[y1, sx] + sat[sy, sx]

    totals = box(luma_sat)
    counts = box(count_sat)
    avg = np.full(totals.shape, float(EMPTY_CELL_LUMA), dtype=np.float64)
    nz = counts > 0
    avg[nz] = totals[nz] / _LUMA_SCALE / counts[nz]
    shape = (spec.rows, spec.cols)
    return avg.reshape(shape), counts.reshape(shape)
