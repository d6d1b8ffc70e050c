from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from spritegif.core.errors import EncoderError
from spritegif.encoders.ffmpeg import FFmpegCommandBuilder, FFmpegGifEncoder, parse_progress_frame
from spritegif.tools.check import check_tools
from spritegif.utils.subprocess import write_ffconcat_file


def test_build_gif_cmd():
    cmd = FFmpegCommandBuilder.build_gif_cmd(Path("/tmp/x/input.ffconcat"), Path("/tmp/x/out.gif"), 12, loop=0)
    assert cmd[0] == "ffmpeg"
    assert cmd[cmd.index("-f") + 1] == "concat"
    assert cmd[cmd.index("-i") + 1] == str(Path("/tmp/x/input.ffconcat"))
    assert cmd[cmd.index("-frames:v") + 1] == "12"
    assert cmd[cmd.index("-loop") + 1] == "0"
    assert cmd[cmd.index("-progress") + 1] == "pipe:1"
    assert "palettegen" in cmd[cmd.index("-filter_complex") + 1]
    assert cmd[-1] == str(Path("/tmp/x/out.gif"))


@pytest.mark.parametrize(
    "line, expected",
    [("frame=12", 12), ("frame= 3 ", 3), ("fps=30.0", None), ("frame=N/A", None), ("progress=end", None), ("", None)],
)
def test_parse_progress_frame(line, expected):
    assert parse_progress_frame(line) == expected


def test_ffconcat_lists_durations_and_repeats_last(tmp_path: Path):
    paths = [tmp_path / "f0.png", tmp_path / "f1.png"]
    out = write_ffconcat_file(paths, [125, 40], tmp_path)
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "ffconcat version 1.0"
    assert lines[1] == f"file '{paths[0].resolve().as_posix()}'"
    assert lines[2] == "duration 0.125"
    assert lines[4] == "duration 0.040"
    assert lines[5] == lines[3]


def test_ffconcat_rejects_length_mismatch(tmp_path: Path):
    with pytest.raises(ValueError):
        write_ffconcat_file([tmp_path / "a.png"], [], tmp_path)


def test_encoder_writes_frames_to_workdir(tmp_path: Path):
    enc = FFmpegGifEncoder(3, 2, tmp_path)
    enc.add_frame(Image.new("RGB", (3, 2)), 125)
    enc.add_frame(Image.new("RGB", (3, 2)), 125)
    assert [p.name for p in enc.frame_paths] == ["frame_00000.png", "frame_00001.png"]
    assert all(p.exists() for p in enc.frame_paths)
    with pytest.raises(EncoderError):
        enc.add_frame(Image.new("RGB", (2, 2)), 125)
    paths = list(enc.frame_paths)
    enc.close()
    assert not any(p.exists() for p in paths)


def test_check_tools_only_requires_ffmpeg_for_ffmpeg(monkeypatch):
    monkeypatch.setattr("spritegif.tools.check.which", lambda name: None)
    assert check_tools("pillow") == (True, [])
    ok, problems = check_tools("ffmpeg")
    assert not ok
    assert problems == ["ffmpeg not found in PATH"]
