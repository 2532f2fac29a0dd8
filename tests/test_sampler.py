import numpy as np
import pytest
from pixelgrid.analysis.classify import classify, classify_grid
from pixelgrid.analysis.sampler import sample_cell, sample_grid
from pixelgrid.raster import RasterImage
from pixelgrid.tiling.grid import CellRect, GridSpec, partition


def _solid(w, h, rgba):
    return RasterImage(np.tile(np.array(rgba, dtype=np.uint8), (h, w, 1)))


def test_black_cell():
    s = sample_cell(_solid(8, 8, (0, 0, 0, 255)), CellRect(0, 0, 0, 0, 4, 4))
    assert s.avg_luminance == 0.0
    assert s.pixel_count == 16


def test_gray_cell_is_exact():
    s = sample_cell(_solid(8, 8, (100, 100, 100, 255)), CellRect(0, 0, 0, 0, 8, 8))
    assert s.avg_luminance == 100.0


def test_bt601_weights():
    s = sample_cell(_solid(2, 2, (255, 0, 0, 255)), CellRect(0, 0, 0, 0, 2, 2))
    assert s.avg_luminance == pytest.approx(0.299 * 255)


def test_transparent_pixels_are_skipped():
    px = np.zeros((4, 4, 4), dtype=np.uint8)
    px[:, :2] = (255, 255, 255, 0)     # transparent white, ignored
    px[:, 2:] = (0, 0, 0, 255)         # opaque black
    s = sample_cell(RasterImage(px), CellRect(0, 0, 0, 0, 4, 4))
    assert s.pixel_count == 8
    assert s.avg_luminance == 0.0


def test_alpha_cutoff_is_strict():
    px = np.zeros((1, 2, 4), dtype=np.uint8)
    px[0, 0] = (0, 0, 0, 128)
    px[0, 1] = (0, 0, 0, 129)
    s = sample_cell(RasterImage(px), CellRect(0, 0, 0, 0, 2, 1))
    assert s.pixel_count == 1


def test_fully_transparent_cell_reads_white():
    s = sample_cell(_solid(4, 4, (0, 0, 0, 0)), CellRect(0, 0, 0, 0, 4, 4))
    assert s.pixel_count == 0
    assert s.avg_luminance == 255.0


def test_grid_sampling_matches_per_cell_sampling():
    rng = np.random.default_rng(0)
    px = rng.integers(0, 256, size=(53, 71, 4), dtype=np.uint8)
    raster = RasterImage(px)
    spec = GridSpec(cols=9, rows=7)
    avg, counts = sample_grid(raster, spec)
    assert avg.shape == (7, 9) and counts.shape == (7, 9)
    for rect in partition(raster.width, raster.height, spec):
        s = sample_cell(raster, rect)
        assert counts[rect.row, rect.col] == s.pixel_count
        assert avg[rect.row, rect.col] == pytest.approx(s.avg_luminance, abs=1e-9)


def test_threshold_boundary_is_light():
    assert classify(128.0, 128) == 0
    assert classify(128.0, 128, mode="label") == "white"
    assert classify(127.999, 128) == 1
    assert classify(127.999, 128, mode="label") == "black"


def test_empty_cell_is_light_for_any_threshold():
    for t in (0, 128, 255):
        assert classify(255.0, t) == 0


def test_classify_grid_returns_plain_python_values():
    out = classify_grid(np.array([[0.0, 200.0], [255.0, 10.0]]), 128)
    assert out == [[1, 0], [0, 1]]
    assert all(type(v) is int for row in out for v in row)


def test_unknown_mode():
    with pytest.raises(ValueError):
        classify(0.0, 128, mode="ternary")
