from sweet_kiosk.config import Settings


def test_defaults(monkeypatch):
    for name in (
        "DATABASE_URL",
        "ECHO_SQL",
        "LOG_LEVEL",
        "HOST",
        "PORT",
        "ORDER_ID_ATTEMPTS",
        "STRICT_STATUS_TRANSITIONS",
        "SEED_CATALOG",
    ):
        monkeypatch.delenv(f"KIOSK_{name}", raising=False)
    settings = Settings.from_env()
    assert settings.database_url == "sqlite:///./kiosk.db"
    assert settings.order_id_attempts == 10
    assert settings.strict_status_transitions is False


def test_from_env(monkeypatch):
    monkeypatch.setenv("KIOSK_DATABASE_URL", "sqlite://")
    monkeypatch.setenv("KIOSK_LOG_LEVEL", "debug")
    monkeypatch.setenv("KIOSK_PORT", "9000")
    monkeypatch.setenv("KIOSK_ORDER_ID_ATTEMPTS", "3")
    monkeypatch.setenv("KIOSK_STRICT_STATUS_TRANSITIONS", "true")
    monkeypatch.setenv("KIOSK_SEED_CATALOG", "1")

    settings = Settings.from_env()
    assert settings.database_url == "sqlite://"
    assert settings.log_level == "DEBUG"
    assert settings.port == 9000
    assert settings.order_id_attempts == 3
    assert settings.strict_status_transitions is True
    assert settings.seed_catalog is True
