"""
Consolidated configuration system for spritegif.

This module provides a centralized Pydantic-based configuration system for
playback, preview, decoding and export settings, with environment variable
support and validation.
"""

from __future__ import annotations

from typing import Annotated, Literal

from PIL import ImageColor
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# =============================================================================
# PLAYBACK SETTINGS
# =============================================================================

class PlaybackSettings(BaseModel):
    """Frame rate bounds and defaults for the playback clock."""

    default_fps: Annotated[int, Field(
        default=8,
        ge=1,
        le=60,
        description="Frame rate used when none is given (fps)"
    )] = 8

    min_fps: Annotated[int, Field(default=1, ge=1, description="Lowest accepted frame rate")] = 1

    max_fps: Annotated[int, Field(default=60, ge=1, description="Highest accepted frame rate")] = 60


# =============================================================================
# VIEW SETTINGS
# =============================================================================

class ViewSettings(BaseModel):
    """Preview surface configuration."""

    default_scale: Annotated[float, Field(default=1.0, gt=0.0, le=10.0)] = 1.0
    scale_step: Annotated[float, Field(default=0.5, gt=0.0)] = 0.5
    min_scale: Annotated[float, Field(default=0.1, gt=0.0)] = 0.1
    max_scale: Annotated[float, Field(default=10.0, gt=0.0)] = 10.0

    fallback_width: Annotated[int, Field(
        default=300,
        gt=0,
        description="Canvas width shown when there is nothing to draw"
    )] = 300

    fallback_height: Annotated[int, Field(
        default=300,
        gt=0,
        description="Canvas height shown when there is nothing to draw"
    )] = 300

    default_background: Annotated[str, Field(
        default="#2d3748",
        description="Background color behind the preview and export frames"
    )] = "#2d3748"

    @field_validator('default_background')
    @classmethod
    def validate_background(cls, v):
        """Ensure the background is a color Pillow understands."""
        ImageColor.getrgb(v)
        return v


# =============================================================================
# DECODE SETTINGS
# =============================================================================

class DecodeSettings(BaseModel):
    """Image decoding configuration."""

    decode_workers: Annotated[int, Field(
        default=2,
        ge=1,
        le=16,
        description="Worker threads used for asynchronous image decoding"
    )] = 2

    supported_image_exts: Annotated[set[str], Field(
        default={".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp"},
        description="Image file extensions accepted on the command line"
    )] = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp"}


# =============================================================================
# EXPORT SETTINGS
# =============================================================================

class ExportSettings(BaseModel):
    """Export pipeline configuration."""

    default_encoder: Literal["pillow", "ffmpeg"] = "pillow"

    loop: Annotated[int, Field(default=0, ge=0, description="GIF loop count, 0 loops forever")] = 0

    output_name: str = "animation.gif"
    sheet_name: str = "sprite-sheet.png"
    temp_prefix: str = "spritegif_"

    timeout_sec: Annotated[int, Field(
        default=300,
        gt=0,
        description="Timeout in seconds for external encoder processes"
    )] = 300


# =============================================================================
# MAIN APPLICATION CONFIGURATION
# =============================================================================

class AppConfig(BaseSettings):
    """
    Main application configuration with environment variable support.

    All settings can be overridden via environment variables with SPRITEGIF_ prefix.
    Example: SPRITEGIF_PLAYBACK__DEFAULT_FPS=12
    """

    model_config = SettingsConfigDict(
        env_prefix="SPRITEGIF_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    playback: PlaybackSettings = PlaybackSettings()
    view: ViewSettings = ViewSettings()
    decode: DecodeSettings = DecodeSettings()
    export: ExportSettings = ExportSettings()

    def clamp_fps(self, fps: int) -> int:
        """Clamp a frame rate into the accepted range."""
        return max(self.playback.min_fps, min(self.playback.max_fps, int(fps)))

    def clamp_scale(self, scale: float) -> float:
        """Clamp a preview scale into the accepted range."""
        return max(self.view.min_scale, min(self.view.max_scale, float(scale)))


# =============================================================================
# DEFAULT INSTANCE
# =============================================================================

app_config = AppConfig()

DEFAULT_FPS = app_config.playback.default_fps
MIN_FPS = app_config.playback.min_fps
MAX_FPS = app_config.playback.max_fps
DEFAULT_SCALE = app_config.view.default_scale
DEFAULT_BACKGROUND = app_config.view.default_background
FALLBACK_CANVAS_SIZE = (app_config.view.fallback_width, app_config.view.fallback_height)
DECODE_WORKERS = app_config.decode.decode_workers
SUPPORTED_IMAGE_EXTS = app_config.decode.supported_image_exts
TEMP_PREFIX = app_config.export.temp_prefix


def create_config_from_env() -> AppConfig:
    """Create a new configuration instance from environment variables."""
    return AppConfig()
