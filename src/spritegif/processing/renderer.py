"""
Single-frame preview renderer for spritegif.

Draws the resolved frame onto an RGBA surface at native resolution and
presents it magnified with nearest-neighbor sampling so pixel art stays
crisp.
"""

from __future__ import annotations

import concurrent.futures as futures
import threading
from collections.abc import Callable, Sequence

from PIL import Image, ImageColor

from ..config import DEFAULT_BACKGROUND, DEFAULT_SCALE, app_config
from ..core.constants import SURFACE_MODE, TRANSPARENT
from ..core.errors import describe_source
from ..core.types import AtlasConfig, Frame, FrameGeometry, Mode
from ..output.logger import SimpleLogger
from .assets import AssetCache
from .geometry import FrameGeometryResolver, empty_geometry


class Renderer:
    """Draws one frame at a time onto `surface`.

    A draw whose image is still decoding is deferred until the decode
    completes; only the most recently requested frame is ever drawn, so a
    slow decode can never overwrite a newer frame.

    Args:
        cache: Shared decoded-image cache.
        logger: Receives decode failure warnings.
        on_draw: Called with the surface after every completed draw.
    """

    def __init__(
        self,
        cache: AssetCache,
        logger: SimpleLogger | None = None,
        on_draw: Callable[[Image.Image], None] | None = None,
    ) -> None:
        self.cache = cache
        self.logger = logger or SimpleLogger(quiet=True)
        self.on_draw = on_draw
        self.geometry: FrameGeometry = empty_geometry()
        self.scale = DEFAULT_SCALE
        self.background = DEFAULT_BACKGROUND
        self.surface = Image.new(SURFACE_MODE, self.geometry.canvas_size, TRANSPARENT)
        self.draw_count = 0
        self._token = 0
        self._lock = threading.Lock()

    @property
    def has_content(self) -> bool:
        return self.geometry.has_content

    @property
    def display_size(self) -> tuple[int, int]:
        """Logical (magnified) size of the preview."""
        width, height = self.geometry.canvas_size
        return max(1, round(width * self.scale)), max(1, round(height * self.scale))

    def render(
        self,
        mode: Mode,
        frames: Sequence[Frame],
        atlas: AtlasConfig,
        index: int,
        scale: float = DEFAULT_SCALE,
        background: str = DEFAULT_BACKGROUND,
    ) -> bool:
        """Clear the surface and draw frame `index`.

        Returns:
            bool: True if the frame was drawn immediately; False if there is
            nothing to draw or the draw was deferred until decode completes.
        """
        geometry = FrameGeometryResolver.resolve(mode, frames, atlas, index)
        with self._lock:
            self._token += 1
            token = self._token
            self.geometry = geometry
            self.scale = app_config.clamp_scale(scale)
            self.background = background
            self.surface = Image.new(SURFACE_MODE, geometry.canvas_size, TRANSPARENT)

        if not geometry.has_content:
            return False

        fut = self.cache.request(geometry.source)
        if fut.done():
            return self._draw(token, geometry, fut)
        fut.add_done_callback(lambda f: self._draw(token, geometry, f))
        return False

    def present(self) -> Image.Image:
        """Return the preview at display size over the background color."""
        with self._lock:
            surface = self.surface
            size = self.display_size
            background = self.background
        shown = Image.new(SURFACE_MODE, size, ImageColor.getrgb(background))
        if not self.has_content:
            return shown
        scaled = surface.resize(size, Image.Resampling.NEAREST)
        shown.alpha_composite(scaled)
        return shown

    def _draw(self, token: int, geometry: FrameGeometry, fut: futures.Future) -> bool:
        if fut.cancelled():
            return False
        exc = fut.exception()
        if exc is not None:
            self.logger.warning(f"preview deferred, {describe_source(geometry.source)} did not decode: {exc}")
            return False

        source = fut.result()
        # Compose off-screen, then swap, so a half-drawn frame is never visible.
        drawn = Image.new(SURFACE_MODE, geometry.canvas_size, TRANSPARENT)
        cell = source.crop(geometry.source_rect.box)
        drawn.alpha_composite(cell)

        with self._lock:
            if token != self._token:
                return False
            self.surface = drawn
            self.draw_count += 1
        if self.on_draw is not None:
            self.on_draw(drawn)
        return True
