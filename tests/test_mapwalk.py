import json
import numpy as np
import pytest
from pixelgrid.analysis.pattern import compute_pattern
from pixelgrid.config import MAPS_DIR
from pixelgrid.errors import MapDataError
from pixelgrid.mapwalk import WalkMap, Walker, load_map, parse_map
from pixelgrid.raster import RasterImage
from pixelgrid.tiling.grid import GridSpec

GRID = [
    [0, 0, 0],
    [0, 1, 0],
    [0, 0, 0],
]


def test_walkable_cells():
    m = WalkMap(GRID)
    assert m.width == 3 and m.height == 3
    assert m.is_walkable(0, 0)
    assert not m.is_walkable(1, 1)
    assert not m.is_walkable(-1, 0)
    assert not m.is_walkable(3, 0)
    assert not m.is_walkable(0, 3)


def test_walker_blocks_and_moves():
    w = Walker(WalkMap(GRID), start=(0, 1))
    assert not w.move(1, 0)
    assert w.position == (0, 1)
    assert w.press("ArrowUp")
    assert w.press("d")
    assert w.position == (1, 0)
    assert not w.press("s")
    assert not w.press("q")
    w.reset()
    assert w.position == (0, 1)


def test_load_map(tmp_path):
    grid = [[0] * 16 for _ in range(9)]
    p = tmp_path / "m.json"
    p.write_text(json.dumps({"grid": grid}))
    assert load_map(p).width == 16

    p.write_text(json.dumps({"grid": grid[:8]}))
    with pytest.raises(MapDataError):
        load_map(p)
    p.write_text(json.dumps({"rows": grid}))
    with pytest.raises(MapDataError):
        load_map(p)
    p.write_text("{")
    with pytest.raises(MapDataError):
        load_map(p)


def test_bundled_map():
    m = load_map(MAPS_DIR / "map1" / "map1.json")
    assert Walker(m).position == (1, 1)
    assert m.is_walkable(1, 1)


def test_pattern_output_drives_walk_map():
    px = np.full((9, 16, 4), 255, dtype=np.uint8)
    px[:, 8:, :3] = 0
    pattern = compute_pattern(RasterImage(px), GridSpec(cols=16, rows=9, threshold=128))
    w = Walker(parse_map(json.loads(pattern.to_json())), start=(7, 4))
    assert not w.press("ArrowRight")
    assert w.press("ArrowLeft")


def test_ragged_or_empty_rows_rejected():
    with pytest.raises(MapDataError):
        parse_map({"grid": [[0, 0], [0]]}, width=None, height=None)
    with pytest.raises(MapDataError):
        parse_map({"grid": [[]]}, width=None, height=None)
