"""Tests for configuration loading."""

from pathlib import Path

import pytest

from amanah.config import (
    REMINDER_THRESHOLDS_DAYS,
    AppSettings,
    LoggingSettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in [
        "AMANAH_STORAGE_BACKEND",
        "AMANAH_STORAGE_DATA_DIR",
        "AMANAH_STORAGE_WRITE_ATTEMPTS",
        "AMANAH_LOG_LEVEL",
        "AMANAH_LOG_JSON_OUTPUT",
        "DEFAULT_REQUIRE_VERIFICATION",
    ]:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDefaults:
    """Tests for default values."""

    def test_storage_defaults(self):
        settings = StorageSettings()
        assert settings.backend == "memory"
        assert settings.data_dir == Path("./data")
        assert settings.write_attempts == 3

    def test_logging_defaults(self):
        settings = LoggingSettings()
        assert settings.level == "INFO"
        assert settings.json_output is True

    def test_app_defaults(self):
        settings = AppSettings()
        assert settings.default_require_verification is True
        assert settings.reminder_thresholds_days == (7, 1)
        assert REMINDER_THRESHOLDS_DAYS == (7, 1)


class TestEnvironment:
    """Tests for environment overrides."""

    def test_storage_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AMANAH_STORAGE_BACKEND", "json")
        monkeypatch.setenv("AMANAH_STORAGE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("AMANAH_STORAGE_WRITE_ATTEMPTS", "5")

        settings = get_settings().storage
        assert settings.backend == "json"
        assert settings.data_dir == tmp_path
        assert settings.write_attempts == 5

    def test_log_level_is_normalized(self, monkeypatch):
        monkeypatch.setenv("AMANAH_LOG_LEVEL", "debug")
        assert LoggingSettings().level == "DEBUG"

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("AMANAH_STORAGE_BACKEND", "postgres")
        with pytest.raises(ValueError):
            StorageSettings()

    @pytest.mark.parametrize("attempts", ["0", "11"])
    def test_write_attempts_bounded(self, monkeypatch, attempts):
        monkeypatch.setenv("AMANAH_STORAGE_WRITE_ATTEMPTS", attempts)
        with pytest.raises(ValueError):
            StorageSettings()

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()


class TestValidateAllSettings:
    """Tests for the startup health map."""

    def test_all_valid(self):
        assert validate_all_settings() == {"storage": True, "logging": True, "app": True}

    def test_reports_invalid_section(self, monkeypatch):
        monkeypatch.setenv("AMANAH_LOG_LEVEL", "LOUD")
        results = validate_all_settings()
        assert results["logging"] is False
        assert "Unknown log level" in results["logging_error"]
        assert results["storage"] is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
