from __future__ import annotations

import pytest
from pydantic import ValidationError

from spritegif.config import AppConfig, ViewSettings, create_config_from_env


def test_defaults():
    config = AppConfig()
    assert config.playback.default_fps == 8
    assert config.view.default_background == "#2d3748"
    assert config.export.default_encoder == "pillow"
    assert config.export.loop == 0


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SPRITEGIF_PLAYBACK__DEFAULT_FPS", "12")
    monkeypatch.setenv("SPRITEGIF_EXPORT__DEFAULT_ENCODER", "ffmpeg")
    config = create_config_from_env()
    assert config.playback.default_fps == 12
    assert config.export.default_encoder == "ffmpeg"


def test_clamps():
    config = AppConfig()
    assert config.clamp_fps(0) == 1
    assert config.clamp_fps(500) == 60
    assert config.clamp_fps(24) == 24
    assert config.clamp_scale(0) == config.view.min_scale
    assert config.clamp_scale(99) == config.view.max_scale


def test_background_must_be_a_color():
    with pytest.raises(ValidationError):
        ViewSettings(default_background="not-a-color")
