"""Tests for viewer settings."""

import json
import logging

import pytest

from view_engine.config import ViewerSettings, load_settings, save_settings


class TestViewerSettings:
    """Defaults and dictionary conversion."""

    def test_defaults(self):
        settings = ViewerSettings()
        assert settings.rotation.pixels_per_frame == 30.0
        assert settings.zoom.min_zoom == 0.8
        assert settings.zoom.max_zoom == 3.0
        assert settings.timing.auto_rotate_delay_ms == 5000.0
        assert settings.timing.dark_phase_ms == 1200.0
        assert settings.timing.demo_max_duration_ms == 30000.0
        assert settings.demo_easing == 'ease_in_out_cubic'

    def test_partial_dict_keeps_defaults(self):
        settings = ViewerSettings.from_dict({'zoom': {'max_zoom': 4.0}, 'auto_start_demo': False})
        assert settings.zoom.max_zoom == 4.0
        assert settings.zoom.min_zoom == 0.8
        assert settings.auto_start_demo is False

    def test_unknown_keys_are_ignored(self, caplog):
        with caplog.at_level(logging.WARNING):
            settings = ViewerSettings.from_dict({'colour': 'red', 'timing': {'bogus': 1}})
        assert settings == ViewerSettings()
        assert 'colour' in caplog.text
        assert 'timing.bogus' in caplog.text

    def test_dict_round_trip(self):
        settings = ViewerSettings()
        settings.timing.intro_enabled = False
        assert ViewerSettings.from_dict(settings.to_dict()) == settings


class TestSettingsFiles:
    """JSON settings files."""

    def test_save_and_load(self, tmp_path):
        path = tmp_path / 'settings.json'
        settings = ViewerSettings()
        settings.rotation.total_frames = 36
        save_settings(settings, path)
        assert json.loads(path.read_text())['rotation']['total_frames'] == 36
        assert load_settings(path) == settings

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / 'missing.json')
