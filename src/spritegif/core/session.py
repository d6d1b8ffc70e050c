"""
Animation session for spritegif.

Owns the mode, the two data sets, the playback clock, the preview renderer
and the exporter. Every state transition ends with an explicit call to
`recompute()`, which re-applies the playback invariant and redraws the
preview.

The clock ticks on its own thread. All reads and writes of the mode, the
frame list and the atlas happen under the session lock, so a tick never
sees a half-applied edit.
"""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Callable, Iterable

from PIL import ImageColor

from ..config import AppConfig, app_config
from ..output.logger import SimpleLogger
from ..processing.assets import AssetCache, cache_key
from ..processing.clock import PlaybackClock, Scheduler
from ..processing.exporter import Exporter
from ..processing.geometry import FrameGeometryResolver, playable_count
from ..processing.renderer import Renderer
from ..processing.sheet import export_sprite_sheet
from .types import AtlasConfig, Frame, FrameGeometry, Mode, PlaybackState, SourceId


class AnimationSession:
    """Application state for one previewed/exported animation.

    Args:
        cache: Shared decoded-image cache. Created if omitted.
        scheduler: Timer source for the playback clock.
        encoder: Encoder name used for exports.
        logger: Shared logger; components stay quiet without one.
        config: Settings providing defaults.
    """

    def __init__(
        self,
        cache: AssetCache | None = None,
        scheduler: Scheduler | None = None,
        encoder: str | None = None,
        logger: SimpleLogger | None = None,
        config: AppConfig = app_config,
    ) -> None:
        self.config = config
        self.logger = logger or SimpleLogger(quiet=True)
        self.mode = Mode.ORDERED_SEQUENCE
        self.frames: list[Frame] = []
        self.atlas = AtlasConfig()
        self.scale = config.view.default_scale
        self.background = config.view.default_background
        # Reentrant: mutators hold it while the clock notifies back into _redraw.
        self._lock = threading.RLock()

        self.cache = cache or AssetCache()
        self.clock = PlaybackClock(self.total_playable, scheduler, config.playback.default_fps, self.logger)
        self.renderer = Renderer(self.cache, logger=self.logger)
        self.exporter = Exporter(self.cache, encoder=encoder, logger=self.logger)
        self.clock.subscribe(self._on_clock)

    # ---------------
    # Derived state
    # ---------------
    def total_playable(self) -> int:
        # Called by the clock under its own lock; must not take the session lock.
        return playable_count(self.mode, self.frames, self.atlas)

    @property
    def state(self) -> PlaybackState:
        return self.clock.state

    @property
    def geometry(self) -> FrameGeometry:
        with self._lock:
            return FrameGeometryResolver.resolve(self.mode, self.frames, self.atlas, self.clock.index)

    def recompute(self) -> FrameGeometry:
        """Re-apply the index invariant and redraw the preview."""
        with self._lock:
            self.clock.sync()
            self._redraw()
            return self.renderer.geometry

    # ---------------
    # Mode and data
    # ---------------
    def set_mode(self, mode: Mode) -> None:
        mode = Mode(mode)
        with self._lock:
            if mode is self.mode:
                return
            self.mode = mode
            self.clock.reset()
            self.recompute()

    def add_frames(self, sources: Iterable[SourceId | Frame]) -> list[Frame]:
        """Append frames in order; plain sources are decoded to learn their size."""
        added = [s if isinstance(s, Frame) else self.cache.make_frame(s) for s in sources]
        if not added:
            return added
        with self._lock:
            self.frames = self.frames + added
            self.clock.reset()
            self.recompute()
        return added

    def remove_frame(self, index: int) -> Frame:
        with self._lock:
            frames = list(self.frames)
            removed = frames.pop(index)
            self.frames = frames
            self._evict_if_unused(removed.source)
            self.clock.reset()
            self.recompute()
        return removed

    def clear_frames(self) -> None:
        with self._lock:
            if not self.frames:
                return
            removed, self.frames = self.frames, []
            for frame in removed:
                self._evict_if_unused(frame.source)
            self.clock.reset()
            self.recompute()

    def set_atlas_image(self, source: SourceId | Frame | None) -> Frame | None:
        """Replace the atlas image; the grid resets to a single cell."""
        frame = source if source is None or isinstance(source, Frame) else self.cache.make_frame(source)
        with self._lock:
            previous = self.atlas.image
            self.atlas = dataclasses.replace(self.atlas)
            self.atlas.replace_image(frame)
            if previous is not None:
                self._evict_if_unused(previous.source)
            self.clock.reset()
            self.recompute()
        return frame

    def set_rows(self, rows: int) -> None:
        self._edit_atlas(lambda atlas: atlas.set_rows(rows))

    def set_cols(self, cols: int) -> None:
        self._edit_atlas(lambda atlas: atlas.set_cols(cols))

    def set_grid(self, rows: int, cols: int) -> None:
        self._edit_atlas(lambda atlas: atlas.set_grid(rows, cols))

    def set_total_frames(self, total: int) -> None:
        self._edit_atlas(lambda atlas: atlas.set_total_frames(total))

    # ---------------
    # View
    # ---------------
    def set_scale(self, scale: float) -> float:
        with self._lock:
            self.scale = self.config.clamp_scale(scale)
            self.recompute()
            return self.scale

    def zoom_in(self) -> float:
        with self._lock:
            return self.set_scale(self.scale + self.config.view.scale_step)

    def zoom_out(self) -> float:
        with self._lock:
            return self.set_scale(self.scale - self.config.view.scale_step)

    def set_background(self, color: str) -> None:
        ImageColor.getrgb(color)
        with self._lock:
            self.background = color
            self.recompute()

    # ---------------
    # Playback
    # ---------------
    def play(self) -> bool:
        return self.clock.play()

    def pause(self) -> None:
        self.clock.pause()

    def toggle(self) -> bool:
        return self.clock.toggle()

    def step(self) -> None:
        self.clock.step()

    def seek(self, index: int) -> None:
        self.clock.seek(index)

    def set_fps(self, fps: int) -> None:
        self.clock.set_fps(fps)

    # ---------------
    # Export
    # ---------------
    def export(self, on_progress: Callable[[float], None] | None = None) -> bytes | None:
        """Export the animation; returns None when there is nothing to export."""
        with self._lock:
            if self.total_playable() == 0:
                self.logger.warning("Nothing to export")
                return None
            self.clock.pause()
            mode, frames, atlas = self.mode, list(self.frames), dataclasses.replace(self.atlas)
            background = self.background
        return self.exporter.export(mode, frames, atlas, self.clock.fps, background, on_progress)

    def export_sheet(self) -> bytes | None:
        """PNG sprite sheet for the active mode, or None when there is nothing to pack."""
        with self._lock:
            if self.total_playable() == 0:
                return None
            mode, frames, atlas = self.mode, list(self.frames), dataclasses.replace(self.atlas)
        return export_sprite_sheet(mode, frames, atlas, self.cache)

    def close(self) -> None:
        self.clock.close()
        self.cache.close()

    # ---------------
    # Helpers
    # ---------------
    def _edit_atlas(self, edit: Callable[[AtlasConfig], None]) -> None:
        # Edit a copy and swap it in, so readers never see rows and cols out of step.
        with self._lock:
            atlas = dataclasses.replace(self.atlas)
            edit(atlas)
            self.atlas = atlas
            self.recompute()

    def _evict_if_unused(self, source: SourceId) -> None:
        key = cache_key(source)
        in_use = [f.source for f in self.frames]
        if self.atlas.image is not None:
            in_use.append(self.atlas.image.source)
        if all(cache_key(s) != key for s in in_use):
            self.cache.evict(source)

    def _on_clock(self, state: PlaybackState) -> None:
        self._redraw()

    def _redraw(self) -> None:
        with self._lock:
            self.renderer.render(
                self.mode, self.frames, self.atlas, self.clock.index, self.scale, self.background
            )
