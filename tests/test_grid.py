import numpy as np
import pytest
from pixelgrid.errors import DegenerateGridError
from pixelgrid.tiling.grid import GridSpec, coverage_count, draw_grid_overlay, partition


def test_two_by_two_on_100px():
    rects = partition(100, 100, GridSpec(cols=2, rows=2))
    assert len(rects) == 4
    assert [(r.row, r.col) for r in rects] == [(0, 0), (0, 1), (1, 0), (1, 1)]
    assert [(r.sx, r.sy) for r in rects] == [(0, 0), (50, 0), (0, 50), (50, 50)]
    assert all(r.sw == 50 and r.sh == 50 for r in rects)


@pytest.mark.parametrize("w,h,cols,rows", [
    (1600, 900, 160, 90),
    (37, 23, 5, 7),
    (10, 10, 3, 3),
    (101, 67, 10, 9),
    (7, 7, 7, 7),
])
def test_cells_cover_whole_image(w, h, cols, rows):
    rects = partition(w, h, GridSpec(cols=cols, rows=rows))
    assert len(rects) == rows * cols
    for r in rects:
        assert r.sx + r.sw <= w and r.sy + r.sh <= h
    assert coverage_count(w, h, rects).min() >= 1


def test_fractional_cells_overlap_by_one_pixel():
    rects = partition(10, 1, GridSpec(cols=3, rows=1))
    assert [r.sx for r in rects] == [0, 3, 6]
    assert all(r.sw == 4 for r in rects)
    counts = coverage_count(10, 1, rects)
    assert counts[0, 3] == 2


def test_more_cols_than_pixels_is_degenerate():
    with pytest.raises(DegenerateGridError):
        partition(10, 10, GridSpec(cols=500, rows=1))
    with pytest.raises(DegenerateGridError):
        partition(10, 10, GridSpec(cols=11, rows=1))
    with pytest.raises(DegenerateGridError):
        partition(10, 4, GridSpec(cols=2, rows=5))
    assert len(partition(10, 10, GridSpec(cols=10, rows=10))) == 100


@pytest.mark.parametrize("spec", [
    GridSpec(cols=0, rows=1),
    GridSpec(cols=1, rows=501),
    GridSpec(cols=2, rows=2, threshold=256),
    GridSpec(cols=2, rows=2, threshold=-1),
    GridSpec(cols=2.5, rows=2),
])
def test_spec_bounds(spec):
    with pytest.raises(ValueError):
        spec.validate()


def test_split_bound_is_caller_policy():
    GridSpec(cols=11, rows=1).validate()
    with pytest.raises(ValueError):
        GridSpec(cols=11, rows=1).validate(max_cells=10)


def test_overlay_draws_lines_at_cell_starts():
    img = np.zeros((100, 100, 4), dtype=np.uint8)
    out = draw_grid_overlay(img, GridSpec(cols=2, rows=2))
    assert out.shape == (100, 100, 3)
    assert tuple(out[10, 50]) == (0, 255, 0)
    assert tuple(out[50, 10]) == (0, 255, 0)
    assert tuple(out[10, 10]) == (0, 0, 0)
