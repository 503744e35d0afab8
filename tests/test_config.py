import pytest
from pydantic import ValidationError

from heritage_realtime.config import Settings


def test_log_level_is_normalised():
    assert Settings(log_level=" debug ").log_level == "DEBUG"


def test_allowed_origins_splits_and_trims():
    settings = Settings(cors_origins="https://museum.example, http://localhost:3000,, ")

    assert settings.allowed_origins() == ["https://museum.example", "http://localhost:3000"]


def test_heartbeat_timeout_must_exceed_interval():
    with pytest.raises(ValidationError):
        Settings(heartbeat_interval_seconds=30, heartbeat_timeout_seconds=30)


def test_default_page_size_cannot_exceed_maximum():
    with pytest.raises(ValidationError):
        Settings(default_page_size=50, max_page_size=10)


def test_send_buffer_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(connection_send_buffer=0)


def test_reset_settings_cache_reloads_environment(monkeypatch):
    from heritage_realtime.config import get_settings, reset_settings_cache

    monkeypatch.setenv("MAX_PAGE_SIZE", "42")
    reset_settings_cache()
    try:
        assert get_settings().max_page_size == 42
    finally:
        monkeypatch.delenv("MAX_PAGE_SIZE")
        reset_settings_cache()
    assert get_settings().max_page_size == 100
