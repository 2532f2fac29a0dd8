import numpy as np
import pytest
from pixelgrid.analysis.pattern import compute_pattern
from pixelgrid.metrics.similarity import mse, pattern_fidelity, source_luma, ssim_gray
from pixelgrid.raster import RasterImage
from pixelgrid.tiling.grid import GridSpec


def test_identical_images():
    a = (np.random.rand(32, 32) * 255).astype("uint8")
    assert mse(a, a) == 0.0
    assert ssim_gray(a, a) == pytest.approx(1.0)


def test_transparent_reads_white():
    raster = RasterImage(np.zeros((4, 4, 4), dtype=np.uint8))
    assert (source_luma(raster) == 255).all()


def test_two_tone_image_is_reproduced_exactly():
    px = np.full((40, 40, 4), 255, dtype=np.uint8)
    px[:, :20, :3] = 0
    raster = RasterImage(px)
    pattern = compute_pattern(raster, GridSpec(cols=2, rows=1, threshold=128))
    score = pattern_fidelity(raster, pattern)
    assert score["mse"] == 0.0
    assert score["ssim"] == pytest.approx(1.0)
    assert score["black_ratio"] == 0.5
