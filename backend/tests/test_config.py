"""
Tests for configuration checks.
"""
from lifepath import config
from lifepath.config import Settings, validate_config


def test_defaults():
    settings = Settings()
    assert settings.start_age == 20
    assert (settings.min_time_horizon, settings.max_time_horizon) == (40, 120)
    assert settings.api_prefix == "/api"


def test_gemini_requires_key(monkeypatch):
    monkeypatch.setattr(config.settings, "text_generator", "gemini")
    monkeypatch.setattr(config.settings, "gemini_api_key", "")
    assert validate_config() is False
    monkeypatch.setattr(config.settings, "gemini_api_key", "k")
    assert validate_config() is True


def test_zero_width_axis(monkeypatch):
    monkeypatch.setattr(config.settings, "text_generator", "canned")
    monkeypatch.setattr(config.settings, "axis_end_x", config.settings.axis_start_x)
    assert validate_config() is False
