# pixelgrid/tiling/crop.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union
import io
import logging
import zipfile
import numpy as np

from pixelgrid.config import ARCHIVE_SUFFIX, DEFAULT_BASENAME, SPLIT_MAX_CELLS, TILE_EXT
from pixelgrid.errors import DegenerateGridError
from pixelgrid.io_utils import MIME_TYPES, encode_image, to_data_uri
from pixelgrid.raster import RasterImage
from pixelgrid.tiling.grid import GridSpec, partition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileResult:
    row: int
    col: int
    filename: str
    pixels: np.ndarray = field(repr=False)  # (sh, sw, 4) uint8, copied from the source
    data: bytes = field(repr=False)         # encoded image

    @property
    def mime(self) -> str:
        return MIME_TYPES[Path(self.filename).suffix.lstrip(".").lower()]

    def data_uri(self) -> str:
        return to_data_uri(self.data, self.mime)


def tile_filename(basename: str, row: int, col: int, ext: str = TILE_EXT) -> str:
    return f"{basename}_{row:02d}_{col:02d}.{ext.lstrip('.')}"


def archive_name(basename: str) -> str:
    return f"{basename}{ARCHIVE_SUFFIX}"


def crop_tiles(
    raster: RasterImage,
    spec: GridSpec,
    basename: str = DEFAULT_BASENAME,
    ext: str = TILE_EXT,
    max_cells: int = SPLIT_MAX_CELLS,
) -> List[TileResult]:
    """
    Cut the image into rows x cols tiles using the same cell rects as the
    pattern sampler. Pixels are copied 1:1 (no resampling). An empty crop
    aborts the whole batch.
    """
    spec.validate(max_cells)
    ext = ext.lower().lstrip(".")
    if ext not in MIME_TYPES:
        raise ValueError(f"Unsupported tile format: {ext}")

    tiles: List[TileResult] = []
    for rect in partition(raster.width, raster.height, spec):
        region = raster.region(rect)
        if rect.is_empty or region.shape[0] == 0 or region.shape[1] == 0:
            raise DegenerateGridError(
                f"Tile ({rect.row}, {rect.col}) is empty; aborting split",
                width=raster.width, height=raster.height, cols=spec.cols, rows=spec.rows,
            )
        pixels = np.array(region, copy=True)
        tiles.append(TileResult(
            row=rect.row,
            col=rect.col,
            filename=tile_filename(basename, rect.row, rect.col, ext),
            pixels=pixels,
            data=encode_image(pixels, ext=ext),
        ))
    logger.info("Split %dx%d image into %d tiles (%s)", raster.width, raster.height, len(tiles), basename)
    return tiles


def package_tiles(
    tiles: Sequence[TileResult],
    target: Optional[Union[str, Path]] = None,
) -> Union[Path, bytes]:
    """
    Write all tiles into a zip archive. With a target path the archive is written
    there and the path returned; otherwise the archive bytes are returned.
    """
    if not tiles:
        raise ValueError("No tiles to package")
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for t in tiles:
            zf.writestr(t.filename, t.data)
    logger.info("Packaged %d tiles (%d bytes)", len(tiles), buf.tell())
    if target is None:
        return buf.getvalue()
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(buf.getvalue())
    return target
