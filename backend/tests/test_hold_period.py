"""Tests for the hold period policy."""
from datetime import datetime, timedelta

from app.config import settings
from app.models.user import User
from app.services.hold_period import compute_available_at, hold_period_days


NOW = datetime(2026, 3, 1, 12, 0, 0)


def test_default_hold_period_is_seven_days():
    assert settings.HOLD_PERIOD_DAYS == 7
    assert compute_available_at(None, NOW) == NOW + timedelta(days=7)


def test_platform_default_follows_settings(monkeypatch):
    monkeypatch.setattr(settings, "HOLD_PERIOD_DAYS", 3)
    assert hold_period_days(User(name="c", email="c@example.com")) == 3
    assert compute_available_at(None, NOW) == NOW + timedelta(days=3)


def test_creator_override_wins():
    creator = User(name="c", email="c@example.com", hold_period_days=14)
    assert compute_available_at(creator, NOW) == NOW + timedelta(days=14)


def test_zero_day_hold_is_available_immediately():
    creator = User(name="c", email="c@example.com", hold_period_days=0)
    assert compute_available_at(creator, NOW) == NOW


def test_negative_override_is_clamped():
    creator = User(name="c", email="c@example.com", hold_period_days=-2)
    assert hold_period_days(creator) == 0
