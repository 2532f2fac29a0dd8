import base64
import binascii
import io
import re
from pathlib import Path
from typing import Union
import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from pixelgrid.config import DEFAULT_BASENAME, DEFAULT_JPEG_QUALITY
from pixelgrid.errors import CanvasUnavailableError, DecodeError
from pixelgrid.raster import RasterImage

_DATA_URI = re.compile(r"^data:(?P<mime>[^;,]*)(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)

MIME_TYPES = {"png": "image/png", "jpg": "image/jpeg", "jpeg": "image/jpeg"}


def _to_raster(pil: Image.Image) -> RasterImage:
    # Pillow handles palette transparency and LA/P/CMYK modes; normalize to RGBA.
    rgba = np.array(pil.convert("RGBA"), dtype=np.uint8)
    return RasterImage(rgba)


def load_raster(path: Union[str, Path]) -> RasterImage:
    path = Path(path)
    if not path.is_file():
        raise DecodeError(f"Could not read image: {path}")
    try:
        with Image.open(path) as pil:
            return _to_raster(pil)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise DecodeError(f"Could not decode image {path}: {e}") from e


def decode_raster(data: bytes) -> RasterImage:
    if not data:
        raise DecodeError("Image data is empty")
    try:
        with Image.open(io.BytesIO(data)) as pil:
            return _to_raster(pil)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise DecodeError(f"Could not decode image bytes: {e}") from e


def decode_data_uri(uri: str) -> RasterImage:
    """Decode a ``data:image/...;base64,...`` URI (the shape generated images arrive in)."""
    m = _DATA_URI.match(uri.strip())
    if m is None or not m.group("b64"):
        raise DecodeError("Not a base64 data URI")
    try:
        payload = base64.b64decode(m.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 payload in data URI: {e}") from e
    return decode_raster(payload)


def encode_image(rgba: np.ndarray, ext: str = "png", quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """
    Encode an RGBA array. PNG keeps alpha; JPEG drops it.
    cv2 works in BGR(A), so convert on the way out.
    """
    ext = ext.lower().lstrip(".")
    if ext == "png":
        ok, buf = cv2.imencode(".png", cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA))
    elif ext in ("jpg", "jpeg"):
        bgr = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR)
        ok, buf = cv2.imencode(".jpg", bgr, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    else:
        raise ValueError(f"Unsupported image format: {ext}")
    if not ok or buf is None:
        raise CanvasUnavailableError(f"Encoder returned no buffer for .{ext}")
    return buf.tobytes()


def to_data_uri(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def save_image_rgba(path: Union[str, Path], rgba: np.ndarray, quality: int = DEFAULT_JPEG_QUALITY) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    ext = path.suffix.lower().lstrip(".")
    if ext not in MIME_TYPES:
        # fallback to PNG
        path = path.with_suffix(".png")
        ext = "png"
    path.write_bytes(encode_image(rgba, ext=ext, quality=quality))
    return path


def basename_for(filename: str) -> str:
    """'photo.final.png' -> 'photo.final'; empty names fall back to the default."""
    stem = re.sub(r"\.[^/.]+$", "", Path(filename).name)
    return stem or DEFAULT_BASENAME


def list_images(folder: Union[str, Path]) -> list[Path]:
    folder = Path(folder)
    exts = (".jpg", ".jpeg", ".png", ".bmp", ".webp", ".gif")
    return sorted([p for p in folder.iterdir() if p.suffix.lower() in exts])
