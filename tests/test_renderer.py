from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image

from conftest import DeferredExecutor, ImmediateExecutor, RecordingLogger, grid_png, write_png
from spritegif.config import FALLBACK_CANVAS_SIZE
from spritegif.core.types import AtlasConfig, Frame, Mode
from spritegif.processing.assets import AssetCache
from spritegif.processing.renderer import Renderer


def pixel(image: Image.Image, x: int, y: int) -> list[int]:
    return np.asarray(image)[y, x].tolist()


def test_ready_frame_is_drawn_immediately(cache, tmp_path: Path):
    p = write_png(tmp_path / "a.png", (5, 3), (0, 255, 0, 255))
    frames = [cache.make_frame(p)]
    drawn = []
    renderer = Renderer(cache, on_draw=drawn.append)

    assert renderer.render(Mode.ORDERED_SEQUENCE, frames, AtlasConfig(), 0) is True
    assert renderer.surface.size == (5, 3)
    assert pixel(renderer.surface, 4, 2) == [0, 255, 0, 255]
    assert renderer.draw_count == 1
    assert len(drawn) == 1


def test_draw_is_deferred_until_decoded(tmp_path: Path):
    p = write_png(tmp_path / "a.png", (4, 4), (0, 0, 255, 255))
    executor = DeferredExecutor()
    cache = AssetCache(executor=executor)
    renderer = Renderer(cache)
    frames = [Frame(p, 4, 4)]

    assert renderer.render(Mode.ORDERED_SEQUENCE, frames, AtlasConfig(), 0) is False
    assert renderer.surface.size == (4, 4)
    assert pixel(renderer.surface, 0, 0) == [0, 0, 0, 0]
    assert renderer.draw_count == 0

    executor.run_all()
    assert renderer.draw_count == 1
    assert pixel(renderer.surface, 0, 0) == [0, 0, 255, 255]


def test_late_decode_never_overwrites_newer_frame(tmp_path: Path):
    a = write_png(tmp_path / "a.png", (2, 2), (255, 0, 0, 255))
    b = write_png(tmp_path / "b.png", (2, 2), (0, 0, 255, 255))
    executor = DeferredExecutor()
    renderer = Renderer(AssetCache(executor=executor))
    frames = [Frame(a, 2, 2), Frame(b, 2, 2)]

    renderer.render(Mode.ORDERED_SEQUENCE, frames, AtlasConfig(), 0)
    renderer.render(Mode.ORDERED_SEQUENCE, frames, AtlasConfig(), 1)
    executor.run_all()

    assert renderer.draw_count == 1
    assert pixel(renderer.surface, 1, 1) == [0, 0, 255, 255]


def test_atlas_cell_is_cropped(cache, tmp_path: Path):
    p = grid_png(tmp_path / "sheet.png", rows=2, cols=2, cell=(4, 4))
    atlas = AtlasConfig()
    atlas.replace_image(cache.make_frame(p))
    atlas.set_grid(2, 2)
    atlas.set_total_frames(4)
    renderer = Renderer(cache)

    renderer.render(Mode.GRID_ATLAS, [], atlas, 3)
    assert renderer.surface.size == (4, 4)
    assert pixel(renderer.surface, 0, 0) == [40, 40, 200, 255]
    renderer.render(Mode.GRID_ATLAS, [], atlas, 2)
    assert pixel(renderer.surface, 3, 3) == [40, 0, 200, 255]


def test_present_scales_with_nearest_neighbor(cache, tmp_path: Path):
    p = tmp_path / "two.png"
    image = Image.new("RGBA", (2, 1))
    image.putpixel((0, 0), (255, 0, 0, 255))
    image.putpixel((1, 0), (0, 0, 255, 255))
    image.save(p)
    renderer = Renderer(cache)

    renderer.render(Mode.ORDERED_SEQUENCE, [cache.make_frame(p)], AtlasConfig(), 0, scale=3.0)
    shown = renderer.present()
    assert shown.size == (6, 3)
    assert renderer.display_size == (6, 3)
    assert pixel(shown, 2, 2) == [255, 0, 0, 255]
    assert pixel(shown, 3, 0) == [0, 0, 255, 255]


def test_transparent_pixels_show_background(cache, tmp_path: Path):
    p = write_png(tmp_path / "clear.png", (3, 3), (0, 0, 0, 0))
    renderer = Renderer(cache)
    renderer.render(Mode.ORDERED_SEQUENCE, [cache.make_frame(p)], AtlasConfig(), 0, background="#ff00ff")
    assert pixel(renderer.present(), 1, 1) == [255, 0, 255, 255]


def test_nothing_to_draw_uses_fallback_canvas(cache):
    renderer = Renderer(cache)
    assert renderer.render(Mode.GRID_ATLAS, [], AtlasConfig(), 0) is False
    assert not renderer.has_content
    shown = renderer.present()
    assert shown.size == FALLBACK_CANVAS_SIZE
    assert pixel(shown, 0, 0) == [0x2D, 0x37, 0x48, 255]


def test_decode_failure_leaves_surface_clear(cache, tmp_path: Path):
    renderer = Renderer(cache)
    frames = [Frame(tmp_path / "missing.png", 3, 3)]
    assert renderer.render(Mode.ORDERED_SEQUENCE, frames, AtlasConfig(), 0) is False
    assert renderer.draw_count == 0
    assert pixel(renderer.surface, 0, 0) == [0, 0, 0, 0]


def test_failed_decode_is_reported_once(tmp_path: Path):
    logger = RecordingLogger()
    renderer = Renderer(AssetCache(executor=ImmediateExecutor()), logger=logger)
    renderer.render(Mode.ORDERED_SEQUENCE, [Frame(tmp_path / "missing.png", 3, 3)], AtlasConfig(), 0)
    warnings = logger.messages("WARNING")
    assert len(warnings) == 1
    assert "missing.png" in warnings[0]
