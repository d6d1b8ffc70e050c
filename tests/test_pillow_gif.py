from __future__ import annotations

import io

import pytest
from PIL import Image

from spritegif.core.errors import EncoderError
from spritegif.encoders.pillow_gif import PillowGifEncoder


def test_render_reports_progress_and_durations():
    enc = PillowGifEncoder(4, 4)
    for color, delay in [((255, 0, 0), 100), ((0, 255, 0), 200), ((0, 0, 255), 300)]:
        enc.add_frame(Image.new("RGB", (4, 4), color), delay)
    seen = []
    data = enc.render(seen.append)

    assert seen == pytest.approx([0.25, 0.5, 0.75, 1.0])
    with Image.open(io.BytesIO(data)) as gif:
        assert gif.n_frames == 3
        durations = []
        for i in range(gif.n_frames):
            gif.seek(i)
            durations.append(gif.info["duration"])
    assert durations == [100, 200, 300]


def test_added_frames_are_copied():
    enc = PillowGifEncoder(2, 2)
    canvas = Image.new("RGB", (2, 2), (255, 0, 0))
    enc.add_frame(canvas, 50)
    canvas.paste((0, 0, 255), (0, 0, 2, 2))
    assert enc.frames[0].getpixel((0, 0)) == (255, 0, 0)


def test_size_mismatch_and_empty_render():
    enc = PillowGifEncoder(4, 4)
    with pytest.raises(EncoderError):
        enc.add_frame(Image.new("RGB", (3, 4)), 100)
    with pytest.raises(EncoderError):
        enc.render()


def test_close_discards_frames():
    enc = PillowGifEncoder(1, 1)
    enc.add_frame(Image.new("RGB", (1, 1)), 10)
    enc.close()
    assert enc.frames == [] and enc.durations == []
