import json
from types import SimpleNamespace
import numpy as np
import pytest
from PIL import Image

gr = pytest.importorskip("gradio")
from app import app as studio  # noqa: E402


def _session(key):
    return SimpleNamespace(session_hash=key)


@pytest.fixture
def image_path(tmp_path):
    arr = np.zeros((20, 40, 3), dtype=np.uint8)
    arr[:, 20:] = 255
    path = tmp_path / "half.png"
    Image.fromarray(arr).save(path)
    return str(path)


@pytest.fixture(autouse=True)
def export_dir(tmp_path, monkeypatch):
    out = tmp_path / "patterns"
    out.mkdir()
    monkeypatch.setattr(studio, "PATTERNS_DIR", out)
    return out


def test_preview_returns_overlay_and_metrics(image_path):
    overlay, rendered, metrics = studio.preview_pattern(image_path, 2, 1, 128, request=_session("a"))
    assert overlay.shape[:2] == (20, 40)
    assert rendered is not None
    assert metrics["cols"] == 2 and metrics["rows"] == 1


def test_preview_error_is_shown_when_current(image_path, monkeypatch):
    def failing(raster, spec):
        raise ValueError("boom")

    monkeypatch.setattr(studio, "compute_pattern", failing)
    overlay, rendered, metrics = studio.preview_pattern(image_path, 2, 1, 128, request=_session("a"))
    assert overlay is None and rendered is None
    assert metrics == {"error": "boom"}


def test_superseded_failing_preview_keeps_newer_result(image_path, monkeypatch):
    def superseded_then_fails(raster, spec):
        studio._previews.for_session("a").begin()
        raise ValueError("boom")

    monkeypatch.setattr(studio, "compute_pattern", superseded_then_fails)
    result = studio.preview_pattern(image_path, 2, 1, 128, request=_session("a"))
    assert result == (gr.update(), gr.update(), gr.update())


def test_other_sessions_do_not_supersede_preview(image_path, monkeypatch):
    real = studio.compute_pattern

    def busy_neighbour(raster, spec):
        studio._previews.for_session("b").begin()
        return real(raster, spec)

    monkeypatch.setattr(studio, "compute_pattern", busy_neighbour)
    overlay, rendered, metrics = studio.preview_pattern(image_path, 2, 1, 128, request=_session("a"))
    assert metrics["cols"] == 2
    studio.forget_session(request=_session("b"))


def test_exports_do_not_share_a_file(image_path, export_dir):
    first, _, last_a = studio.export_pattern(image_path, 2, 1, 128)
    second, _, last_b = studio.export_pattern(image_path, 4, 1, 128)
    assert first != second
    assert first == last_a and second == last_b
    assert json.loads(open(first).read())["grid"] == [[1, 0]]
    assert json.loads(open(second).read())["grid"] == [[1, 1, 0, 0]]
    assert all(export_dir in p.parents for p in map(studio.Path, (first, second)))


def test_last_pattern_is_per_session(image_path):
    assert studio.load_last_pattern(None)[2] == "Export a pattern first."
    _, _, last = studio.export_pattern(image_path, 4, 2, 128)
    walker, frame, status = studio.load_last_pattern(last)
    assert walker is not None
    assert walker.map.width == 4 and walker.map.height == 2
    assert walker.map.grid == [[1, 1, 0, 0], [1, 1, 0, 0]]


def test_ragged_map_upload_is_reported(tmp_path):
    path = tmp_path / "ragged.json"
    path.write_text(json.dumps({"grid": [[0, 0], [0]]}))
    walker, frame, status = studio.load_walk_map(str(path))
    assert walker is None and frame is None
    assert status.startswith("Error:")
