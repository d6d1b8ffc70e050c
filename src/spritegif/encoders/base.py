"""
Encoder interface for spritegif.

An encoder accumulates composited frames and turns them into one animated
bitstream. Progress is reported through a callback instead of events.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from PIL import Image

from ..core.errors import EncoderError
from ..core.types import ExportOptions

ProgressCallback = Callable[[float], None]


class Encoder(Protocol):
    def add_frame(self, image: Image.Image, delay_ms: int) -> None: ...

    def render(self, on_progress: ProgressCallback | None = None) -> bytes: ...

    def close(self) -> None: ...


# (width, height, options, workdir) -> Encoder
EncoderFactory = Callable[[int, int, ExportOptions, Path], Encoder]


def create_encoder(width: int, height: int, options: ExportOptions, workdir: Path) -> Encoder:
    """Build the encoder named by `options.encoder`."""
    if options.encoder == "pillow":
        from .pillow_gif import PillowGifEncoder

        return PillowGifEncoder(width, height, loop=options.loop)
    if options.encoder == "ffmpeg":
        from .ffmpeg import FFmpegGifEncoder

        return FFmpegGifEncoder(width, height, workdir, loop=options.loop)
    raise EncoderError(f"Unknown encoder: {options.encoder}")
