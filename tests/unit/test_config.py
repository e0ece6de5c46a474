"""
Unit tests for application settings.
"""
from repriseval.config import Settings, get_settings


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("REPRISEVAL_LOW_CONFIDENCE_THRESHOLD", raising=False)
        settings = Settings(_env_file=None)

        assert settings.app_name == "RepriseVal"
        assert settings.low_confidence_threshold == 0.7
        assert settings.vigilance_points_limit == 5
        assert settings.calculation_tolerance == 1000.0
        assert settings.default_as_of_year is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("REPRISEVAL_VIGILANCE_POINTS_LIMIT", "2")
        monkeypatch.setenv("REPRISEVAL_DEFAULT_AS_OF_YEAR", "2025")

        settings = Settings(_env_file=None)

        assert settings.vigilance_points_limit == 2
        assert settings.default_as_of_year == 2025

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
