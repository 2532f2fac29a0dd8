"""Tile-based movement over a pattern grid: 0 is walkable, anything else blocks."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from pixelgrid.config import MAP_HEIGHT, MAP_START, MAP_WIDTH
from pixelgrid.errors import MapDataError

logger = logging.getLogger(__name__)

KEY_MOVES = {
    "ArrowUp": (0, -1),
    "w": (0, -1),
    "ArrowDown": (0, 1),
    "s": (0, 1),
    "ArrowLeft": (-1, 0),
    "a": (-1, 0),
    "ArrowRight": (1, 0),
    "d": (1, 0),
}


class WalkMap:
    def __init__(self, grid: Sequence[Sequence[object]]):
        self.grid: List[List[object]] = [list(row) for row in grid]

    @property
    def height(self) -> int:
        return len(self.grid)

    @property
    def width(self) -> int:
        return len(self.grid[0]) if self.grid else 0

    def is_walkable(self, x: int, y: int) -> bool:
        if y < 0 or y >= self.height or x < 0 or x >= len(self.grid[y]):
            return False
        return self.grid[y][x] == 0


def parse_map(data: object, width: Optional[int] = MAP_WIDTH, height: Optional[int] = MAP_HEIGHT) -> WalkMap:
    """Validate a decoded ``{"grid": [...]}`` document; None skips a dimension check."""
    grid = data.get("grid") if isinstance(data, dict) else None
    if not isinstance(grid, list) or not grid or not all(isinstance(row, list) for row in grid):
        raise MapDataError('Map data has no "grid" rows.')
    if len({len(row) for row in grid}) != 1 or not grid[0]:
        raise MapDataError("Map rows must be non-empty and all the same length.")
    if (height is not None and len(grid) != height) or (width is not None and len(grid[0]) != width):
        raise MapDataError(
            f"Map data has incorrect dimensions: got {len(grid[0])}x{len(grid)}, expected {width}x{height}."
        )
    return WalkMap(grid)


def load_map(path: Union[str, Path], width: Optional[int] = MAP_WIDTH, height: Optional[int] = MAP_HEIGHT) -> WalkMap:
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise MapDataError(f"Failed to load map data from {path}: {e}") from e
    return parse_map(data, width=width, height=height)


class Walker:
    """A character on a WalkMap. Moves onto walkable cells only."""

    def __init__(self, walk_map: WalkMap, start: Tuple[int, int] = MAP_START):
        self.map = walk_map
        self.start = tuple(start)
        self.x, self.y = self.start

    @property
    def position(self) -> Tuple[int, int]:
        return self.x, self.y

    def move(self, dx: int, dy: int) -> bool:
        nx, ny = self.x + dx, self.y + dy
        if not self.map.is_walkable(nx, ny):
            return False
        self.x, self.y = nx, ny
        return True

    def press(self, key: str) -> bool:
        step = KEY_MOVES.get(key)
        if step is None:
            return False
        return self.move(*step)

    def reset(self) -> None:
        self.x, self.y = self.start
