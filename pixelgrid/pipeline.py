"""Single grid operation from source image to pattern JSON or tile archive.

    IDLE -> SOURCE_LOADED -> GRID_CONFIGURED -> SAMPLING -> CLASSIFYING -> EMITTED
                                             `-> CROPPING -> PACKAGED
    any failure -> FAILED

There is no retry or resume: a failed job must be reset and started over.
"""
from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import Callable, List, Optional, TypeVar, Union

import numpy as np

from pixelgrid.analysis.classify import SYMBOLS, SymbolMode, classify_grid
from pixelgrid.analysis.pattern import PatternGrid
from pixelgrid.analysis.sampler import sample_grid
from pixelgrid.config import DEFAULT_BASENAME, PATTERN_MAX_CELLS, PATTERN_THRESHOLD, SPLIT_MAX_CELLS, TILE_EXT
from pixelgrid.errors import PixelGridError
from pixelgrid.io_utils import basename_for, decode_data_uri, decode_raster, load_raster
from pixelgrid.raster import RasterImage
from pixelgrid.tiling.crop import TileResult, crop_tiles, package_tiles
from pixelgrid.tiling.grid import GridSpec, check_degenerate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Stage(enum.Enum):
    IDLE = "idle"
    SOURCE_LOADED = "source_loaded"
    GRID_CONFIGURED = "grid_configured"
    SAMPLING = "sampling"
    CLASSIFYING = "classifying"
    EMITTED = "emitted"
    CROPPING = "cropping"
    PACKAGED = "packaged"
    FAILED = "failed"


class GridJob:
    def __init__(self) -> None:
        self.stage = Stage.IDLE
        self.raster: Optional[RasterImage] = None
        self.basename = DEFAULT_BASENAME
        self.spec: Optional[GridSpec] = None
        self.pattern: Optional[PatternGrid] = None
        self.tiles: List[TileResult] = []
        self.error: Optional[BaseException] = None

    # ---------------- Internal helpers -----------------
    def _require(self, *stages: Stage) -> None:
        if self.stage not in stages:
            allowed = ", ".join(s.value for s in stages)
            raise RuntimeError(f"Operation not allowed in stage {self.stage.value} (needs {allowed})")

    def _guard(self, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except PixelGridError as e:
            self.stage = Stage.FAILED
            self.error = e
            logger.warning("Grid job failed: %s", e)
            raise

    # ---------------- Operations -----------------
    def load(
        self,
        source: Union[str, Path, bytes, np.ndarray, RasterImage],
        filename: Optional[str] = None,
    ) -> RasterImage:
        """Accepts a path, encoded bytes, a data URI string, an array or a RasterImage."""
        self._require(Stage.IDLE, Stage.SOURCE_LOADED, Stage.GRID_CONFIGURED, Stage.EMITTED, Stage.PACKAGED)

        def _load() -> RasterImage:
            if isinstance(source, RasterImage):
                return source
            if isinstance(source, np.ndarray):
                return RasterImage.from_array(source)
            if isinstance(source, bytes):
                return decode_raster(source)
            if isinstance(source, str) and source.startswith("data:"):
                return decode_data_uri(source)
            return load_raster(source)

        self.raster = self._guard(_load)
        if filename is None and isinstance(source, (str, Path)) and not str(source).startswith("data:"):
            filename = Path(source).name
        self.basename = basename_for(filename) if filename else DEFAULT_BASENAME
        self.spec = None
        self.pattern = None
        self.tiles = []
        self.stage = Stage.SOURCE_LOADED
        logger.debug("Loaded %s (%dx%d)", self.basename, self.raster.width, self.raster.height)
        return self.raster

    def configure(self, spec: GridSpec, max_cells: int = PATTERN_MAX_CELLS) -> GridSpec:
        self._require(Stage.SOURCE_LOADED, Stage.GRID_CONFIGURED, Stage.EMITTED, Stage.PACKAGED)
        spec.validate(max_cells)
        assert self.raster is not None
        self._guard(lambda: check_degenerate(self.raster.width, self.raster.height, spec))
        self.spec = spec
        self.stage = Stage.GRID_CONFIGURED
        return spec

    def analyze(self, mode: SymbolMode = "binary") -> PatternGrid:
        self._require(Stage.GRID_CONFIGURED)
        if mode not in SYMBOLS:
            raise ValueError(f"Unknown symbol mode: {mode!r}")
        assert self.raster is not None and self.spec is not None
        spec = self.spec
        threshold = PATTERN_THRESHOLD if spec.threshold is None else spec.threshold

        def _run() -> PatternGrid:
            self.stage = Stage.SAMPLING
            avg_luma, _ = sample_grid(self.raster, spec)
            self.stage = Stage.CLASSIFYING
            return PatternGrid(cells=classify_grid(avg_luma, threshold, mode))

        self.pattern = self._guard(_run)
        self.stage = Stage.EMITTED
        logger.info("Emitted %dx%d pattern for %s", spec.cols, spec.rows, self.basename)
        return self.pattern

    def split(self, ext: str = TILE_EXT, max_cells: int = SPLIT_MAX_CELLS) -> List[TileResult]:
        self._require(Stage.GRID_CONFIGURED)
        assert self.raster is not None and self.spec is not None

        def _run() -> List[TileResult]:
            self.stage = Stage.CROPPING
            return crop_tiles(self.raster, self.spec, basename=self.basename, ext=ext, max_cells=max_cells)

        try:
            self.tiles = self._guard(_run)
        except ValueError:
            self.stage = Stage.GRID_CONFIGURED
            raise
        return self.tiles

    def package(self, target: Optional[Union[str, Path]] = None) -> Union[Path, bytes]:
        self._require(Stage.CROPPING)
        archive = package_tiles(self.tiles, target)
        self.stage = Stage.PACKAGED
        return archive

    def reset(self) -> None:
        self.__init__()
