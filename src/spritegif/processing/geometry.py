"""
Frame geometry resolution for spritegif.

Maps a mode plus its data set and a frame index to a source rectangle and
a canvas size. Everything here is pure: no decoding, no state.
"""

from __future__ import annotations

from collections.abc import Sequence

from ..config import FALLBACK_CANVAS_SIZE
from ..core.types import AtlasConfig, Frame, FrameGeometry, Mode, Rect


def cell_size(atlas: AtlasConfig) -> tuple[int, int]:
    """Return (frame_width, frame_height) of one grid cell, or (0, 0) without an image."""
    if atlas.image is None:
        return 0, 0
    return atlas.image.width // atlas.cols, atlas.image.height // atlas.rows


def cell_rect(atlas: AtlasConfig, index: int) -> Rect:
    """Row-major rectangle of cell `index`.

    The index is not bounded by total_frames; cells past it are still real
    cells of the grid.
    """
    frame_w, frame_h = cell_size(atlas)
    col = index % atlas.cols
    row = index // atlas.cols
    return Rect(col * frame_w, row * frame_h, frame_w, frame_h)


def playable_count(mode: Mode, frames: Sequence[Frame], atlas: AtlasConfig) -> int:
    """Number of frames playback and export iterate over."""
    if mode is Mode.ORDERED_SEQUENCE:
        return len(frames)
    if atlas.image is None:
        return 0
    return atlas.total_frames


def empty_geometry() -> FrameGeometry:
    """Fallback canvas with nothing to draw."""
    width, height = FALLBACK_CANVAS_SIZE
    return FrameGeometry(source=None, source_rect=None, canvas_width=width, canvas_height=height)


class FrameGeometryResolver:
    """Resolve per-frame geometry for either mode."""

    @staticmethod
    def resolve(mode: Mode, frames: Sequence[Frame], atlas: AtlasConfig, index: int) -> FrameGeometry:
        """
        Args:
            mode: Which data set is authoritative.
            frames: Ordered frame list (ordered-sequence mode).
            atlas: Grid configuration (grid-atlas mode).
            index: 0-based frame index.

        Returns:
            FrameGeometry; `has_content` is False when there is nothing to draw.
        """
        if mode is Mode.ORDERED_SEQUENCE:
            if not frames:
                return empty_geometry()
            frame = frames[index % len(frames)]
            return FrameGeometry(
                source=frame.source,
                source_rect=Rect(0, 0, frame.width, frame.height),
                canvas_width=frame.width,
                canvas_height=frame.height,
            )

        if atlas.image is None:
            return empty_geometry()
        rect = cell_rect(atlas, index)
        return FrameGeometry(
            source=atlas.image.source,
            source_rect=rect,
            canvas_width=rect.width,
            canvas_height=rect.height,
        )

    @staticmethod
    def export_canvas_size(mode: Mode, frames: Sequence[Frame], atlas: AtlasConfig) -> tuple[int, int]:
        """Fixed canvas size of an export: first frame's size, or one atlas cell."""
        if mode is Mode.ORDERED_SEQUENCE:
            if not frames:
                return 0, 0
            return frames[0].size
        return cell_size(atlas)
