# pixelgrid/raster.py
from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple
import numpy as np

from pixelgrid.errors import CanvasUnavailableError, DecodeError

if TYPE_CHECKING:
    from pixelgrid.tiling.grid import CellRect

RGBA = Tuple[int, int, int, int]


@dataclass(frozen=True)
class RasterImage:
    """
    Decoded source image: (H, W, 4) uint8 RGBA, read-only once built.
    Every grid operation reads pixels through this instead of a drawing surface.
    """
    pixels: np.ndarray

    def __post_init__(self):
        px = self.pixels
        if px.ndim != 3 or px.shape[2] != 4 or px.dtype != np.uint8:
            raise CanvasUnavailableError(
                f"Expected (H, W, 4) uint8 RGBA pixels, got shape={px.shape} dtype={px.dtype}"
            )
        if px.shape[0] == 0 or px.shape[1] == 0:
            raise DecodeError(f"Decoded image is empty ({px.shape[1]}x{px.shape[0]})")
        # Own a private copy; the caller keeps a writable array of its own.
        px = np.array(px, copy=True, order="C")
        px.setflags(write=False)
        object.__setattr__(self, "pixels", px)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def get_pixel(self, x: int, y: int) -> RGBA:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} image")
        r, g, b, a = self.pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def region(self, rect: "CellRect") -> np.ndarray:
        """(sh, sw, 4) view of a cell; clipped at the image edge."""
        return self.pixels[rect.sy : rect.sy + rect.sh, rect.sx : rect.sx + rect.sw]

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "RasterImage":
        """
        Build from gray (H, W), RGB (H, W, 3) or RGBA (H, W, 4) arrays.
        Missing alpha becomes fully opaque.
        """
        arr = np.asarray(arr)
        if arr.dtype != np.uint8:
            if np.issubdtype(arr.dtype, np.floating) and arr.size and float(arr.max()) <= 1.0:
                arr = arr * 255.0
            arr = np.clip(np.rint(arr), 0, 255).astype(np.uint8)
        if arr.ndim == 2:
            arr = np.repeat(arr[..., None], 3, axis=2)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise CanvasUnavailableError(f"Unsupported pixel array shape: {arr.shape}")
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=2)
        return cls(arr)
