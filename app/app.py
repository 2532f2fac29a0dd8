# app/app.py
import sys
from pathlib import Path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

import logging
import tempfile
import time
from typing import Optional
import numpy as np
import gradio as gr
import cv2

from pixelgrid.analysis.pattern import PatternGrid, compute_pattern, render_pattern, silhouette_pattern
from pixelgrid.config import (
    MAP_START, MAP_TILE_PX, MAPS_DIR, PATTERN_COLS, PATTERN_FILENAME, PATTERN_MAX_CELLS, PATTERN_ROWS,
    PATTERN_THRESHOLD, PATTERNS_DIR, SPLIT_COLS, SPLIT_MAX_CELLS, SPLIT_ROWS, TILES_DIR,
)
from pixelgrid.errors import PixelGridError
from pixelgrid.io_utils import load_raster
from pixelgrid.logger import configure_logging, log_error
from pixelgrid.mapwalk import Walker, load_map, parse_map
from pixelgrid.metrics.similarity import pattern_fidelity
from pixelgrid.pipeline import GridJob
from pixelgrid.preview import PreviewSessions
from pixelgrid.tiling.crop import archive_name
from pixelgrid.tiling.grid import GridSpec, draw_grid_overlay

configure_logging()
logger = logging.getLogger("pixelgrid.app")

DEFAULT_MAP = MAPS_DIR / "map1" / "map1.json"

# Live preview recomputes on every slider change; per session, only the newest request may publish.
_previews = PreviewSessions()


def _spec(cols, rows, threshold=None) -> GridSpec:
    return GridSpec(cols=int(cols), rows=int(rows), threshold=None if threshold is None else int(threshold))


def _session_key(request) -> str:
    return getattr(request, "session_hash", None) or "-"


def _export_path(filename: str = PATTERN_FILENAME, root: Optional[Path] = None) -> Path:
    """Fresh directory per export so concurrent sessions never share a download."""
    return Path(tempfile.mkdtemp(prefix="export_", dir=root or PATTERNS_DIR)) / filename


# --------- core handlers ----------
def _build_preview(image_path: str, cols: int, rows: int, threshold: int):
    raster = load_raster(image_path)
    t0 = time.perf_counter()
    pattern = compute_pattern(raster, _spec(cols, rows, threshold))
    runtime_ms = (time.perf_counter() - t0) * 1000.0
    overlay = draw_grid_overlay(raster.pixels, _spec(cols, rows))
    rendered = render_pattern(pattern, raster.width, raster.height)
    metrics = {
        "cols": int(cols),
        "rows": int(rows),
        "threshold": int(threshold),
        **pattern_fidelity(raster, pattern),
        "runtime_ms": round(runtime_ms, 2),
    }
    return overlay, rendered, metrics


def _preview_error(e: Exception):
    log_error(e, context="preview_pattern")
    return None, None, {"error": str(e)}


def preview_pattern(image_path: str, cols: int, rows: int, threshold: int, request: gr.Request = None):
    if not image_path:
        return None, None, {"error": "Upload an image first."}
    latest = _previews.for_session(_session_key(request))
    accepted, result = latest.run(
        lambda: _build_preview(image_path, cols, rows, threshold),
        on_error=_preview_error,
        errors=(PixelGridError, ValueError),
    )
    if not accepted:
        # A newer request from this session superseded this one; keep its result on screen.
        return gr.update(), gr.update(), gr.update()
    return result


def forget_session(request: gr.Request = None):
    _previews.discard(_session_key(request))


def export_pattern(image_path: str, cols: int, rows: int, threshold: int):
    if not image_path:
        raise gr.Error("Please upload an image to analyze.")
    job = GridJob()
    try:
        job.load(image_path)
        job.configure(_spec(cols, rows, threshold), max_cells=PATTERN_MAX_CELLS)
        pattern = job.analyze(mode="binary")
    except (PixelGridError, ValueError) as e:
        log_error(e, context="export_pattern")
        raise gr.Error(f"Analysis failed: {e}")
    out = _export_path()
    out.write_text(pattern.to_json(), encoding="utf-8")
    return str(out), "The image pattern has been written to pattern.json", str(out)


def export_silhouette(image_path: str):
    if not image_path:
        raise gr.Error("Please supply a silhouette image.")
    try:
        raster = load_raster(image_path)
        pattern = silhouette_pattern(raster)
    except (PixelGridError, ValueError) as e:
        log_error(e, context="export_silhouette")
        raise gr.Error(f"Analysis failed: {e}")
    out = _export_path()
    out.write_text(pattern.to_json(), encoding="utf-8")
    return str(out), render_pattern(pattern, raster.width, raster.height)


def split_image(image_path: str, rows: int, cols: int):
    if not image_path:
        raise gr.Error("Please upload an image to split.")
    job = GridJob()
    try:
        job.load(image_path)
        job.configure(_spec(cols, rows), max_cells=SPLIT_MAX_CELLS)
        tiles = job.split()
        archive = job.package(_export_path(archive_name(job.basename), root=TILES_DIR))
    except (PixelGridError, ValueError) as e:
        log_error(e, context="split_image")
        raise gr.Error(f"Processing failed: {e}")
    gallery = [(t.pixels, t.filename) for t in tiles]
    return gallery, str(archive), f"Image split into {len(tiles)} tiles."


# --------- map test ----------
def _draw_map(walker: Walker) -> np.ndarray:
    grid = walker.map.grid
    blocked = np.array([[0 if v == 0 else 1 for v in row] for row in grid], dtype=np.uint8)
    img = np.where(blocked[..., None] == 1, 60, 200).astype(np.uint8).repeat(3, axis=2)
    img = cv2.resize(img, (walker.map.width * MAP_TILE_PX, walker.map.height * MAP_TILE_PX),
                     interpolation=cv2.INTER_NEAREST)
    x, y = walker.position
    center = (x * MAP_TILE_PX + MAP_TILE_PX // 2, y * MAP_TILE_PX + MAP_TILE_PX // 2)
    cv2.circle(img, center, MAP_TILE_PX // 3, (220, 40, 40), -1)
    return img


def _map_status(walker: Walker) -> str:
    return f"Use the arrows to move. Current Position: ({walker.position[0]}, {walker.position[1]})"


def load_walk_map(map_file: str):
    try:
        if map_file:
            walk_map = load_map(map_file, width=None, height=None)
        else:
            walk_map = load_map(DEFAULT_MAP)
    except PixelGridError as e:
        log_error(e, context="load_walk_map")
        return None, None, f"Error: {e}"
    walker = Walker(walk_map, start=MAP_START)
    return walker, _draw_map(walker), _map_status(walker)


def step_walker(walker: Walker, key: str):
    if walker is None:
        return walker, None, "No map data loaded."
    if key == "reset":
        walker.reset()
    else:
        walker.press(key)
    return walker, _draw_map(walker), _map_status(walker)


def pattern_to_map(pattern_json: str):
    try:
        pattern = PatternGrid.from_json(pattern_json)
        walker = Walker(parse_map(pattern.to_dict(), width=None, height=None), start=MAP_START)
    except (PixelGridError, ValueError) as e:
        log_error(e, context="pattern_to_map")
        return None, None, f"Error: {e}"
    return walker, _draw_map(walker), _map_status(walker)


def load_last_pattern(last_export: str):
    path = Path(last_export) if last_export else None
    if path is None or not path.exists():
        return None, None, "Export a pattern first."
    return pattern_to_map(path.read_text(encoding="utf-8"))


# --------- UI ----------
with gr.Blocks(title="Pixel Grid Studio") as demo:
    gr.Markdown("## Pixel Grid Studio\nTurn images into pattern grids, split them into tiles, and walk the result.")
    last_export = gr.State(None)

    with gr.Tabs():
        with gr.Tab("Image to Pattern"):
            with gr.Row():
                with gr.Column(scale=1, min_width=320):
                    in_img = gr.Image(type="filepath", image_mode="RGBA", label="Source image")
                    cols = gr.Slider(1, PATTERN_MAX_CELLS, value=PATTERN_COLS, step=1, label="Grid columns")
                    rows = gr.Slider(1, PATTERN_MAX_CELLS, value=PATTERN_ROWS, step=1, label="Grid rows")
                    threshold = gr.Slider(0, 255, value=PATTERN_THRESHOLD, step=1, label="Brightness threshold",
                                          info="Cells darker than this become 1, the rest 0")
                    export_btn = gr.Button("Analyze & Download JSON", variant="primary")
                    pattern_file = gr.File(label="pattern.json")
                    export_status = gr.Markdown()
                with gr.Column(scale=2):
                    with gr.Row():
                        overlay_out = gr.Image(type="numpy", label="Grid Overlay")
                        pattern_out = gr.Image(type="numpy", label="Pattern Preview")
                    metrics_json = gr.JSON(label="Fidelity (MSE, SSIM, black ratio, runtime)")

            for ctrl in (in_img, cols, rows, threshold):
                ctrl.change(
                    fn=preview_pattern,
                    inputs=[in_img, cols, rows, threshold],
                    outputs=[overlay_out, pattern_out, metrics_json],
                    trigger_mode="always_last",
                )
            export_btn.click(
                fn=export_pattern,
                inputs=[in_img, cols, rows, threshold],
                outputs=[pattern_file, export_status, last_export],
            )

        with gr.Tab("Silhouette Pattern"):
            gr.Markdown("Export a generated silhouette as a 160x90 grid of `black` / `white` labels.")
            with gr.Row():
                with gr.Column(scale=1, min_width=320):
                    sil_img = gr.Image(type="filepath", image_mode="RGBA", label="Silhouette image")
                    sil_btn = gr.Button("Analyze & Download JSON", variant="primary")
                    sil_file = gr.File(label="pattern.json")
                with gr.Column(scale=2):
                    sil_preview = gr.Image(type="numpy", label="Pattern Preview")
            sil_btn.click(fn=export_silhouette, inputs=[sil_img], outputs=[sil_file, sil_preview])

        with gr.Tab("Image Grid Split"):
            with gr.Row():
                with gr.Column(scale=1, min_width=320):
                    split_img = gr.Image(type="filepath", image_mode="RGBA", label="Source image")
                    with gr.Row():
                        split_rows = gr.Slider(1, SPLIT_MAX_CELLS, value=SPLIT_ROWS, step=1, label="Rows")
                        split_cols = gr.Slider(1, SPLIT_MAX_CELLS, value=SPLIT_COLS, step=1, label="Columns")
                    split_btn = gr.Button("Split Image", variant="primary")
                    split_zip = gr.File(label="Download All as ZIP")
                    split_status = gr.Markdown()
                with gr.Column(scale=2):
                    split_gallery = gr.Gallery(label="Tiles", columns=SPLIT_COLS)
            split_btn.click(
                fn=split_image,
                inputs=[split_img, split_rows, split_cols],
                outputs=[split_gallery, split_zip, split_status],
            )
            split_cols.change(fn=lambda c: gr.update(columns=int(c)), inputs=[split_cols], outputs=[split_gallery])

        with gr.Tab("Map Test"):
            gr.Markdown("Test character movement on a grid-based map using JSON collision data.")
            walker_state = gr.State(None)
            with gr.Row():
                with gr.Column(scale=2):
                    map_img = gr.Image(type="numpy", label="Map")
                with gr.Column(scale=1, min_width=260):
                    map_file = gr.File(label="Map JSON (defaults to maps/map1)", file_types=[".json"])
                    load_btn = gr.Button("Load Map")
                    use_pattern_btn = gr.Button("Use Last Exported Pattern")
                    with gr.Row():
                        up_btn = gr.Button("↑")
                    with gr.Row():
                        left_btn = gr.Button("←")
                        down_btn = gr.Button("↓")
                        right_btn = gr.Button("→")
                    reset_btn = gr.Button("Reset Position", size="sm")
                    map_status = gr.Markdown()

            load_btn.click(fn=load_walk_map, inputs=[map_file], outputs=[walker_state, map_img, map_status])
            use_pattern_btn.click(
                fn=load_last_pattern,
                inputs=[last_export],
                outputs=[walker_state, map_img, map_status],
            )
            for btn, key in ((up_btn, "ArrowUp"), (down_btn, "ArrowDown"), (left_btn, "ArrowLeft"),
                             (right_btn, "ArrowRight"), (reset_btn, "reset")):
                btn.click(
                    fn=lambda w, k=key: step_walker(w, k),
                    inputs=[walker_state],
                    outputs=[walker_state, map_img, map_status],
                )
    demo.unload(forget_session)

if __name__ == "__main__":
    demo.launch(server_name="0.0.0.0", server_port=7860)
