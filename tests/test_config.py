from inventory_service.config import Settings


def test_defaults(monkeypatch):
    for name in ("DATABASE_URL", "LOCK_TIMEOUT_MS", "EVENTS_ENABLED", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.database_url.startswith("postgresql://")
    assert settings.lock_timeout_ms == 5000
    assert settings.events_enabled is False
    assert settings.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./other.db")
    monkeypatch.setenv("LOCK_TIMEOUT_MS", "250")
    monkeypatch.setenv("EVENTS_ENABLED", "true")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    settings = Settings(_env_file=None)

    assert settings.database_url == "sqlite:///./other.db"
    assert settings.lock_timeout_ms == 250
    assert settings.events_enabled is True
    assert settings.log_level == "DEBUG"
