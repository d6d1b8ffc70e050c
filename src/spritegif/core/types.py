"""
Core data types for spritegif.

Frames, atlas grid configuration, resolved geometry and the small state
records shared between the playback clock, the renderer and the exporter.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

from PIL import ImageColor
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import FRAME_ID_ALPHABET, FRAME_ID_LENGTH

# A path, raw encoded bytes, or a data: URL.
SourceId = Union[str, Path, bytes]


class Mode(str, Enum):
    """Which data set drives playback and export."""

    ORDERED_SEQUENCE = "sequence"
    GRID_ATLAS = "atlas"


def new_frame_id() -> str:
    """Return a short random identifier for a frame."""
    return "".join(secrets.choice(FRAME_ID_ALPHABET) for _ in range(FRAME_ID_LENGTH))


@dataclass(frozen=True)
class Frame:
    """One ingested image and its native size in pixels."""

    source: SourceId
    width: int
    height: int
    id: str = field(default_factory=new_frame_id)

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


@dataclass
class AtlasConfig:
    """A single image cut into a rows x cols grid of equal cells.

    rows and cols never drop below 1 and total_frames always stays within
    [1, rows * cols]; every mutator re-clamps.
    """

    rows: int = 1
    cols: int = 1
    total_frames: int = 1
    image: Frame | None = None

    def __post_init__(self) -> None:
        self.rows = max(1, int(self.rows))
        self.cols = max(1, int(self.cols))
        self._clamp_total()

    @property
    def capacity(self) -> int:
        """Number of cells in the grid."""
        return self.rows * self.cols

    def set_rows(self, rows: int) -> None:
        self.rows = max(1, int(rows))
        self._clamp_total()

    def set_cols(self, cols: int) -> None:
        self.cols = max(1, int(cols))
        self._clamp_total()

    def set_grid(self, rows: int, cols: int) -> None:
        self.rows = max(1, int(rows))
        self.cols = max(1, int(cols))
        self._clamp_total()

    def set_total_frames(self, total: int) -> None:
        self.total_frames = int(total)
        self._clamp_total()

    def replace_image(self, image: Frame | None) -> None:
        """Swap the atlas image and reset the grid to a single cell."""
        self.image = image
        self.rows = self.cols = self.total_frames = 1

    def _clamp_total(self) -> None:
        self.total_frames = max(1, min(int(self.total_frames), self.capacity))


@dataclass(frozen=True)
class Rect:
    """Axis-aligned pixel rectangle."""

    x: int
    y: int
    width: int
    height: int

    @property
    def box(self) -> tuple[int, int, int, int]:
        """(left, upper, right, lower) as used by Pillow."""
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass(frozen=True)
class FrameGeometry:
    """Where to read a frame from and how big its canvas is."""

    source: SourceId | None
    source_rect: Rect | None
    canvas_width: int
    canvas_height: int

    @property
    def has_content(self) -> bool:
        return (
            self.source is not None
            and self.source_rect is not None
            and self.canvas_width > 0
            and self.canvas_height > 0
        )

    @property
    def canvas_size(self) -> tuple[int, int]:
        return self.canvas_width, self.canvas_height


@dataclass(frozen=True)
class PlaybackState:
    """Snapshot of the playback clock."""

    current_index: int = 0
    fps: int = 8
    playing: bool = False
    total_frames: int = 0


@dataclass
class ExportJob:
    """Progress record for one export run."""

    progress: float = 0.0
    running: bool = False
    frame_count: int = 0

    def start(self, frame_count: int) -> None:
        self.progress = 0.0
        self.running = True
        self.frame_count = frame_count

    def report(self, fraction: float) -> float:
        self.progress = max(0.0, min(1.0, float(fraction)))
        return self.progress

    def finish(self) -> None:
        self.running = False


class ExportOptions(BaseModel):
    """Validated parameters of a single export request."""

    model_config = ConfigDict(frozen=True)

    fps: Annotated[int, Field(ge=1, le=60, description="Playback rate of the exported animation")] = 8
    background: Annotated[str, Field(description="Solid fill behind every frame")] = "#2d3748"
    encoder: Literal["pillow", "ffmpeg"] = "pillow"
    loop: Annotated[int, Field(ge=0)] = 0

    @field_validator('background')
    @classmethod
    def validate_background(cls, v):
        """Reject colors Pillow cannot parse."""
        try:
            ImageColor.getrgb(v)
        except ValueError as ex:
            raise ValueError(f"Unknown color: {v}") from ex
        return v
