import pytest

from core import config as config_module


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    config_module.get_settings.cache_clear()
    yield
    config_module.get_settings.cache_clear()


def test_non_local_debug_mode_is_blocked(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("DEBUG", "true")

    with pytest.raises(ValueError, match="debug=true"):
        config_module.get_settings()


def test_non_local_inverted_expiry_thresholds_are_blocked(monkeypatch):
    monkeypatch.setenv("APP_ENV", "staging")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("EXPIRY_WINDOW_DAYS", "5")
    monkeypatch.setenv("EXPIRY_HIGH_SEVERITY_DAYS", "7")

    with pytest.raises(ValueError, match="expiry_high_severity_days"):
        config_module.get_settings()


def test_local_allows_dev_defaults(monkeypatch):
    monkeypatch.setenv("APP_ENV", "local")
    monkeypatch.setenv("DEBUG", "true")

    settings = config_module.get_settings()
    assert settings.app_env == "local"
    assert settings.expiry_window_days == 30
    assert settings.expiry_high_severity_days == 7


def test_pool_sizing_reads_environment(monkeypatch):
    monkeypatch.setenv("APP_ENV", "local")
    monkeypatch.setenv("DATABASE_POOL_SIZE", "25")
    monkeypatch.setenv("DATABASE_MAX_OVERFLOW", "5")

    settings = config_module.get_settings()
    assert settings.database_pool_size == 25
    assert settings.database_max_overflow == 5
