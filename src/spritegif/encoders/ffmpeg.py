"""
FFmpeg-backed GIF encoding for spritegif.

Frames are written as PNGs into the export's temporary directory, listed in
an ffconcat file with per-frame durations, and encoded in one ffmpeg run
using a generated palette.
"""

from __future__ import annotations

from pathlib import Path

from PIL import Image

from ..config import app_config
from ..core.errors import EncoderError
from ..utils.subprocess import stream_subprocess, write_ffconcat_file
from .base import ProgressCallback


class FFmpegCommandBuilder:
    """Builder class for constructing FFmpeg commands."""

    @staticmethod
    def build_gif_cmd(list_file: Path, out_path: Path, frame_count: int, loop: int = 0) -> list[str]:
        """Create ffmpeg command encoding an ffconcat frame list to a palette-optimized GIF."""
        return [
            "ffmpeg",
            "-hide_banner",
            "-loglevel", "error",
            "-nostdin",
            "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", str(list_file),
            "-an",
            "-vsync", "0",
            "-filter_complex", "[0:v]split[a][b];[a]palettegen=stats_mode=diff[p];[b][p]paletteuse",
            "-frames:v", str(frame_count),
            "-loop", str(loop),
            "-progress", "pipe:1",
            "-nostats",
            str(out_path),
        ]


def parse_progress_frame(line: str) -> int | None:
    """Return N from an ffmpeg `-progress` line of the form `frame=N`."""
    key, sep, value = line.partition("=")
    if not sep or key.strip() != "frame":
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


class FFmpegGifEncoder:
    """Encoder that hands the frame sequence to an external ffmpeg process.

    Args:
        width, height: Canvas size every frame must match.
        workdir: Export-scoped temporary directory; the caller removes it.
        loop: GIF loop count, 0 loops forever.
    """

    def __init__(self, width: int, height: int, workdir: Path, loop: int = 0) -> None:
        self.width = width
        self.height = height
        self.workdir = workdir
        self.loop = loop
        self.frame_paths: list[Path] = []
        self.durations: list[int] = []

    def add_frame(self, image: Image.Image, delay_ms: int) -> None:
        if image.size != (self.width, self.height):
            raise EncoderError(
                f"Frame size {image.size} does not match canvas {(self.width, self.height)}"
            )
        path = self.workdir / f"frame_{len(self.frame_paths):05d}.png"
        image.convert("RGB").save(path, format="PNG")
        self.frame_paths.append(path)
        self.durations.append(int(delay_ms))

    def render(self, on_progress: ProgressCallback | None = None) -> bytes:
        if not self.frame_paths:
            raise EncoderError("No frames were added")

        total = len(self.frame_paths)
        list_file = write_ffconcat_file(self.frame_paths, self.durations, self.workdir)
        out_path = self.workdir / "out.gif"
        cmd = FFmpegCommandBuilder.build_gif_cmd(list_file, out_path, total, self.loop)

        def on_line(line: str) -> None:
            done = parse_progress_frame(line)
            if done is not None and on_progress is not None:
                on_progress(min(1.0, done / total))

        code, stderr = stream_subprocess(cmd, on_line, timeout=app_config.export.timeout_sec)
        if code != 0:
            raise EncoderError(f"ffmpeg failed ({code}): {stderr.strip()}")
        if not out_path.exists():
            raise EncoderError("ffmpeg reported success but wrote no output")

        if on_progress is not None:
            on_progress(1.0)
        return out_path.read_bytes()

    def close(self) -> None:
        for path in self.frame_paths:
            path.unlink(missing_ok=True)
        self.frame_paths.clear()
        self.durations.clear()
