# pixelgrid/analysis/classify.py
from __future__ import annotations
from typing import List, Literal, Union
import numpy as np

SymbolMode = Literal["binary", "label"]
Symbol = Union[int, str]

# (dark, light) per output vocabulary
SYMBOLS = {
    "binary": (1, 0),
    "label": ("black", "white"),
}


def _symbols(mode: str):
    try:
        return SYMBOLS[mode]
    except KeyError:
        raise ValueError(f"Unknown symbol mode: {mode!r} (expected one of {sorted(SYMBOLS)})") from None


def classify(avg_luminance: float, threshold: float, mode: SymbolMode = "binary") -> Symbol:
    """Dark symbol when avg_luminance < threshold, light otherwise (strict <)."""
    dark, light = _symbols(mode)
    return dark if avg_luminance < threshold else light


def classify_grid(avg_luma: np.ndarray, threshold: float, mode: SymbolMode = "binary") -> List[List[Symbol]]:
    """(R, C) luma -> nested row-major lists of plain Python symbols (JSON-ready)."""
    dark, light = _symbols(mode)
    is_dark = np.asarray(avg_luma) < threshold
    return [[dark if v else light for v in row] for row in is_dark.tolist()]
