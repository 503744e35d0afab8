from datetime import datetime, timedelta, timezone

import pytest

from heritage_realtime.config import reset_settings_cache
from heritage_realtime.utils import display_timezone, isoformat_or_none, to_storage, to_utc


@pytest.fixture
def app_timezone(monkeypatch):
    """Switch ``APP_TIMEZONE`` for one test and restore the cached defaults."""

    def _set(name: str) -> None:
        monkeypatch.setenv("APP_TIMEZONE", name)
        reset_settings_cache()
        display_timezone.cache_clear()

    yield _set
    monkeypatch.delenv("APP_TIMEZONE", raising=False)
    reset_settings_cache()
    display_timezone.cache_clear()


def test_naive_values_are_taken_as_utc():
    naive = datetime(2024, 5, 1, 9, 30)

    assert to_utc(naive) == datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
    assert to_storage(naive) == naive


def test_aware_values_are_stored_as_naive_utc():
    lima = timezone(timedelta(hours=-5))
    aware = datetime(2024, 5, 1, 9, 30, tzinfo=lima)

    stored = to_storage(aware)

    assert stored == datetime(2024, 5, 1, 14, 30)
    assert stored.tzinfo is None
    assert to_utc(stored) == aware


def test_none_passes_through():
    assert to_utc(None) is None
    assert to_storage(None) is None
    assert isoformat_or_none(None) is None


def test_isoformat_renders_in_the_configured_zone(app_timezone):
    app_timezone("Europe/Madrid")

    rendered = isoformat_or_none(datetime(2024, 1, 15, 12, 0))

    assert rendered == "2024-01-15T13:00:00+01:00"


def test_unknown_zone_falls_back_to_utc(app_timezone):
    app_timezone("Mars/Olympus_Mons")

    assert display_timezone() is timezone.utc
    assert isoformat_or_none(datetime(2024, 1, 15, 12, 0)) == "2024-01-15T12:00:00+00:00"
