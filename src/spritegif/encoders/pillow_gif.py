"""In-process GIF encoder built on Pillow."""

from __future__ import annotations

import io

from PIL import Image

from ..core.constants import GIF_FORMAT
from ..core.errors import EncoderError
from .base import ProgressCallback

GIF_COLORS = 256


class PillowGifEncoder:
    """Accumulates RGB frames and writes a looping GIF.

    Each frame is quantized to its own adaptive palette; progress advances
    once per quantized frame and reaches 1.0 after the file is written.
    """

    def __init__(self, width: int, height: int, loop: int = 0) -> None:
        self.width = width
        self.height = height
        self.loop = loop
        self.frames: list[Image.Image] = []
        self.durations: list[int] = []

    def add_frame(self, image: Image.Image, delay_ms: int) -> None:
        if image.size != (self.width, self.height):
            raise EncoderError(
                f"Frame size {image.size} does not match canvas {(self.width, self.height)}"
            )
        # Copy: callers reuse their canvas between frames.
        self.frames.append(image.convert("RGB"))
        self.durations.append(int(delay_ms))

    def render(self, on_progress: ProgressCallback | None = None) -> bytes:
        if not self.frames:
            raise EncoderError("No frames were added")

        total = len(self.frames) + 1
        quantized: list[Image.Image] = []
        for i, frame in enumerate(self.frames, 1):
            quantized.append(frame.quantize(colors=GIF_COLORS))
            if on_progress is not None:
                on_progress(i / total)

        buf = io.BytesIO()
        try:
            quantized[0].save(
                buf,
                format=GIF_FORMAT,
                save_all=True,
                append_images=quantized[1:],
                duration=self.durations,
                loop=self.loop,
                disposal=1,
            )
        except (OSError, ValueError) as ex:
            raise EncoderError(f"GIF write failed: {type(ex).__name__}: {ex}") from ex

        if on_progress is not None:
            on_progress(1.0)
        return buf.getvalue()

    def close(self) -> None:
        self.frames.clear()
        self.durations.clear()
