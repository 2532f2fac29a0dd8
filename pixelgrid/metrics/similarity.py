# pixelgrid/metrics/similarity.py
from __future__ import annotations
from typing import Dict
import numpy as np
from skimage.metrics import structural_similarity as ssim

from pixelgrid.analysis.pattern import PatternGrid, render_pattern
from pixelgrid.analysis.sampler import luma_milli, opaque_mask
from pixelgrid.raster import RasterImage


def mse(a: np.ndarray, b: np.ndarray) -> float:
    a32 = a.astype(np.float32)
    b32 = b.astype(np.float32)
    return float(np.mean((a32 - b32) ** 2))


def ssim_gray(a: np.ndarray, b: np.ndarray) -> float:
    a_f = (a.astype(np.float32) / 255.0).clip(0, 1)
    b_f = (b.astype(np.float32) / 255.0).clip(0, 1)
    # win_size must be odd and fit inside the image
    win = min(7, a_f.shape[0], a_f.shape[1])
    if win % 2 == 0:
        win -= 1
    if win < 3:
        return 1.0 if np.array_equal(a_f, b_f) else 0.0
    val = ssim(a_f, b_f, data_range=1.0, win_size=win, gaussian_weights=False, use_sample_covariance=False)
    return float(val)


def source_luma(raster: RasterImage) -> np.ndarray:
    """(H, W) uint8 luma of the source; transparent pixels read as white."""
    luma = luma_milli(raster.pixels) / 1000.0
    luma = np.where(opaque_mask(raster.pixels), luma, 255.0)
    return np.clip(np.rint(luma), 0, 255).astype(np.uint8)


def pattern_fidelity(raster: RasterImage, pattern: PatternGrid) -> Dict[str, float]:
    """How closely the black/white pattern, scaled back up, matches the source brightness."""
    src = source_luma(raster)
    rendered = render_pattern(pattern, raster.width, raster.height)[..., 0]
    return {
        "mse": mse(src, rendered),
        "ssim": ssim_gray(src, rendered),
        "black_ratio": float(pattern.dark_mask().mean()),
    }
