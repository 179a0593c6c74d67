import os

from server_dashboard.config import Settings, get_settings


def test_settings_defaults(monkeypatch):
    for name in ("SERVICES_FILE", "PROBE_TIMEOUT_SECONDS", "PROBE_WARNING_MS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()
    assert settings.services_file == os.path.join("data", "services.json")
    assert settings.probe_timeout_seconds == 5.0
    assert settings.probe_warning_ms == 1000
    assert settings.log_level == "INFO"


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("SERVICES_FILE", "/tmp/dashboard/services.json")
    monkeypatch.setenv("PROBE_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("PROBE_WARNING_MS", "750")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()
    assert settings.services_file == "/tmp/dashboard/services.json"
    assert settings.probe_timeout_seconds == 2.5
    assert settings.probe_warning_ms == 750
    assert settings.log_level == "DEBUG"


def test_unparsable_numbers_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("PROBE_TIMEOUT_SECONDS", "soon")
    monkeypatch.setenv("PROBE_WARNING_MS", "")

    settings = Settings.from_env()
    assert settings.probe_timeout_seconds == 5.0
    assert settings.probe_warning_ms == 1000


def test_get_settings_is_cached(monkeypatch):
    get_settings.cache_clear()
    monkeypatch.setenv("SERVICES_FILE", "cached.json")
    try:
        s1 = get_settings()
        s2 = get_settings()
        assert s1 is s2
        assert s1.services_file == "cached.json"
    finally:
        get_settings.cache_clear()
