"""
Sprite-sheet packing for spritegif.

Packs an ordered frame list into one PNG atlas, or re-emits the atlas image
in grid-atlas mode.
"""

from __future__ import annotations

import io
import math
from collections.abc import Sequence

from PIL import Image

from ..core.constants import SHEET_FORMAT, SURFACE_MODE, TRANSPARENT
from ..core.types import AtlasConfig, Frame, Mode
from .assets import AssetCache
from .exporter import centered_offset


def sheet_grid(count: int, cols: int | None = None) -> tuple[int, int]:
    """Return (rows, cols) for packing `count` frames; cols defaults to ceil(sqrt(count))."""
    if count <= 0:
        return 0, 0
    cols = max(1, cols or math.ceil(math.sqrt(count)))
    return math.ceil(count / cols), cols


def build_sprite_sheet(frames: Sequence[Frame], cache: AssetCache, cols: int | None = None) -> Image.Image | None:
    """Pack frames row-major into equal cells sized to the largest frame.

    Each frame is centered in its cell on a transparent canvas.

    Returns:
        Optional[Image.Image]: The sheet, or None for an empty frame list.
    """
    if not frames:
        return None
    rows, cols = sheet_grid(len(frames), cols)
    cell_w = max(f.width for f in frames)
    cell_h = max(f.height for f in frames)

    sheet = Image.new(SURFACE_MODE, (cell_w * cols, cell_h * rows), TRANSPARENT)
    for index, frame in enumerate(frames):
        image = cache.load(frame.source)
        dx, dy = centered_offset((cell_w, cell_h), image.size)
        x = (index % cols) * cell_w + dx
        y = (index // cols) * cell_h + dy
        sheet.alpha_composite(image, dest=(x, y))
    return sheet


def export_sprite_sheet(
    mode: Mode, frames: Sequence[Frame], atlas: AtlasConfig, cache: AssetCache
) -> bytes | None:
    """PNG bytes of the sprite sheet for the active mode, or None when there is nothing to pack."""
    if mode is Mode.ORDERED_SEQUENCE:
        sheet = build_sprite_sheet(frames, cache)
    else:
        sheet = cache.load(atlas.image.source) if atlas.image is not None else None
    if sheet is None:
        return None
    buf = io.BytesIO()
    sheet.save(buf, format=SHEET_FORMAT)
    return buf.getvalue()
