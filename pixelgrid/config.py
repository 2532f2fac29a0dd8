import os
from pathlib import Path

# Project roots
ROOT = Path(__file__).resolve().parents[1]
EXAMPLES_DIR = ROOT / "app" / "examples"
OUTPUTS_DIR = ROOT / "data" / "outputs"
PATTERNS_DIR = OUTPUTS_DIR / "patterns"
TILES_DIR = OUTPUTS_DIR / "tiles"
MAPS_DIR = ROOT / "data" / "maps"

# Pattern analysis defaults (Image to Pattern form)
PATTERN_COLS = 160
PATTERN_ROWS = 90
PATTERN_THRESHOLD = 128
# Upper bound per axis for the analysis grid. Policy, not geometry.
PATTERN_MAX_CELLS = 500
PATTERN_FILENAME = "pattern.json"

# Cell sampler
# Pixels with alpha <= ALPHA_CUTOFF are left out of the cell average.
ALPHA_CUTOFF = 128
# Luma reported for a cell with no opaque pixels ("white").
EMPTY_CELL_LUMA = 255.0

# Silhouette export always runs at a fixed grid
SILHOUETTE_COLS = 160
SILHOUETTE_ROWS = 90
SILHOUETTE_THRESHOLD = 128

# Grid split defaults
SPLIT_ROWS = 2
SPLIT_COLS = 2
SPLIT_MAX_CELLS = 10
DEFAULT_BASENAME = "image"
TILE_EXT = "png"
ARCHIVE_SUFFIX = "-split-images.zip"

# JPEG/PNG default save params
DEFAULT_JPEG_QUALITY = 92

# Map movement test
MAP_WIDTH = 16
MAP_HEIGHT = 9
MAP_TILE_PX = 48
MAP_START = (1, 1)

LOG_LEVEL = os.environ.get("PIXELGRID_LOG_LEVEL", "INFO").upper()

# Ensure dirs exist at import time (safe/no-op if present)
for _d in [OUTPUTS_DIR, PATTERNS_DIR, TILES_DIR]:
    _d.mkdir(parents=True, exist_ok=True)
