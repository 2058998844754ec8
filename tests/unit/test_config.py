"""Tests for configuration validation"""
import pytest

from progression import config


class TestConfigValidation:
    """Test validate_config against module-level settings"""

    def test_defaults_are_valid(self):
        """Test that the default configuration validates"""
        config.validate_config()

    def test_defaults(self):
        assert config.STATE_KEY_PREFIX == "gamification_"
        assert config.RECENT_EVENTS_LIMIT > 0

    def test_non_positive_recent_events_limit(self, monkeypatch):
        monkeypatch.setattr(config, "RECENT_EVENTS_LIMIT", 0)

        with pytest.raises(ValueError) as exc_info:
            config.validate_config()

        assert "RECENT_EVENTS_LIMIT" in str(exc_info.value)

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setattr(config, "LOG_LEVEL", "LOUD")

        with pytest.raises(ValueError):
            config.validate_config()

    def test_missing_catalog_file(self, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "CATALOG_PATH", str(tmp_path / "missing.json"))

        with pytest.raises(ValueError):
            config.validate_config()

    def test_empty_state_file_name(self, monkeypatch):
        monkeypatch.setattr(config, "STATE_FILE_NAME", "")

        with pytest.raises(ValueError):
            config.validate_config()
