"""
Export pipeline for spritegif.

Composites every playable frame onto a fixed-size, background-filled
canvas and feeds the result to an encoder, forwarding its progress.
"""

from __future__ import annotations

import tempfile
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from PIL import Image, ImageColor
from pydantic import ValidationError

from ..config import TEMP_PREFIX, app_config
from ..core.constants import MS_PER_SECOND
from ..core.errors import DecodeFailure, EmptyInput, EncoderError, ExportError
from ..core.types import AtlasConfig, ExportJob, ExportOptions, Frame, Mode
from ..encoders.base import Encoder, EncoderFactory, create_encoder
from ..output.logger import SimpleLogger
from .assets import AssetCache, cache_key
from .geometry import FrameGeometryResolver, cell_rect, playable_count


def frame_delay_ms(fps: int) -> int:
    """Display time of one frame, rounded half up to whole milliseconds."""
    return int(MS_PER_SECOND / fps + 0.5)


def centered_offset(canvas_size: tuple[int, int], image_size: tuple[int, int]) -> tuple[int, int]:
    """Top-left position that centers `image_size` inside `canvas_size`."""
    return (canvas_size[0] - image_size[0]) // 2, (canvas_size[1] - image_size[1]) // 2


class Exporter:
    """Batch renderer that turns the playable frames into one animation.

    Args:
        cache: Shared decoded-image cache.
        encoder: Encoder name passed through ExportOptions ("pillow" or "ffmpeg").
        encoder_factory: Builds the encoder; defaults to `create_encoder`.
        logger: Receives export start/finish/failure messages.
    """

    def __init__(
        self,
        cache: AssetCache,
        encoder: str | None = None,
        encoder_factory: EncoderFactory | None = None,
        logger: SimpleLogger | None = None,
    ) -> None:
        self.cache = cache
        self.encoder_name = encoder or app_config.export.default_encoder
        self.encoder_factory = encoder_factory or create_encoder
        self.logger = logger or SimpleLogger(quiet=True)
        self.job = ExportJob()

    @property
    def running(self) -> bool:
        return self.job.running

    def export(
        self,
        mode: Mode,
        frames: Sequence[Frame],
        atlas: AtlasConfig,
        fps: int,
        background: str,
        on_progress: Callable[[float], None] | None = None,
    ) -> bytes:
        """Render all playable frames and return the encoded animation.

        Raises:
            ExportError: Nothing to export, invalid options, or any decode/encode failure.
        """
        total = playable_count(mode, frames, atlas)
        if total == 0:
            raise ExportError("Nothing to export") from EmptyInput("no playable frames")
        if self.job.running:
            raise ExportError("An export is already running")

        try:
            options = ExportOptions(
                fps=fps, background=background, encoder=self.encoder_name, loop=app_config.export.loop
            )
        except ValidationError as ex:
            raise ExportError(f"Invalid export options: {ex}") from ex

        width, height = FrameGeometryResolver.export_canvas_size(mode, frames, atlas)
        if width <= 0 or height <= 0:
            raise ExportError(f"Export canvas would be empty ({width}x{height})")

        self.job.start(total)
        t0 = time.time()
        self.logger.info(f"Exporting {total} frames at {width}x{height}, {options.fps} fps ({options.encoder})")
        try:
            with tempfile.TemporaryDirectory(prefix=TEMP_PREFIX) as workdir:
                images = self._decode_sources(mode, frames, atlas)
                encoder = self.encoder_factory(width, height, options, Path(workdir))
                try:
                    self._add_frames(encoder, mode, frames, atlas, images, total, (width, height), options)

                    def forward(fraction: float) -> None:
                        progress = self.job.report(fraction)
                        if on_progress is not None:
                            on_progress(progress)

                    data = encoder.render(forward)
                finally:
                    encoder.close()
        except (DecodeFailure, EncoderError, OSError) as ex:
            self.logger.error(f"Export failed: {ex}")
            raise ExportError(str(ex)) from ex
        finally:
            self.job.finish()

        self.logger.success(f"Exported {total} frames ({len(data):,} bytes) in {time.time() - t0:.1f}s")
        return data

    def _decode_sources(
        self, mode: Mode, frames: Sequence[Frame], atlas: AtlasConfig
    ) -> dict[object, Image.Image]:
        """Decode each distinct source once, failing on the first that cannot be decoded."""
        if mode is Mode.ORDERED_SEQUENCE:
            sources = [f.source for f in frames]
        else:
            sources = [atlas.image.source]
        images: dict[object, Image.Image] = {}
        for source in sources:
            key = cache_key(source)
            if key not in images:
                images[key] = self.cache.load(source)
        return images

    def _add_frames(
        self,
        encoder: Encoder,
        mode: Mode,
        frames: Sequence[Frame],
        atlas: AtlasConfig,
        images: dict[object, Image.Image],
        total: int,
        canvas_size: tuple[int, int],
        options: ExportOptions,
    ) -> None:
        fill = ImageColor.getrgb(options.background)[:3]
        delay = frame_delay_ms(options.fps)
        for i in range(total):
            canvas = Image.new("RGB", canvas_size, fill)
            if mode is Mode.ORDERED_SEQUENCE:
                image = images[cache_key(frames[i].source)]
                canvas.paste(image, centered_offset(canvas_size, image.size), image)
            else:
                image = images[cache_key(atlas.image.source)]
                cell = image.crop(cell_rect(atlas, i).box)
                canvas.paste(cell, (0, 0), cell)
            encoder.add_frame(canvas, delay)
