"""Tests for the scheduled counter refresh and its Redis job lock."""
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.config import settings
from app.services import scheduler as scheduler_service


class FakeRedis:
    """Just enough of redis.asyncio for SET NX and the release script."""

    def __init__(self, fail: bool = False):
        self.store = {}
        self.fail = fail

    async def set(self, key, value, nx=False, ex=None):
        if self.fail:
            raise RedisConnectionError("redis down")
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0


@pytest.fixture
def fake_redis(monkeypatch):
    client = FakeRedis()
    monkeypatch.setattr(scheduler_service, "redis_client", client)
    return client


@pytest.mark.asyncio
async def test_job_lock_is_exclusive_and_released(fake_redis):
    async with scheduler_service.job_lock("job") as first:
        assert first is True
        async with scheduler_service.job_lock("job") as second:
            assert second is False
        assert "kreasi:lock:job" in fake_redis.store

    assert fake_redis.store == {}


@pytest.mark.asyncio
async def test_job_lock_not_acquired_when_redis_is_down(monkeypatch):
    monkeypatch.setattr(scheduler_service, "redis_client", FakeRedis(fail=True))
    async with scheduler_service.job_lock("job") as acquired:
        assert acquired is False


@pytest.mark.asyncio
async def test_refresh_skips_when_locked(fake_redis, monkeypatch):
    calls = []

    async def fake_reconcile(session, apply=True):
        calls.append(apply)
        return []

    monkeypatch.setattr(scheduler_service, "reconcile_cached_totals", fake_reconcile)
    fake_redis.store["kreasi:lock:refresh_cached_totals"] = "someone-else"

    await scheduler_service.refresh_cached_totals()

    assert calls == []
    assert fake_redis.store["kreasi:lock:refresh_cached_totals"] == "someone-else"


@pytest.mark.asyncio
async def test_refresh_runs_and_survives_errors(fake_redis, monkeypatch):
    async def failing_reconcile(session, apply=True):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(scheduler_service, "reconcile_cached_totals", failing_reconcile)

    await scheduler_service.refresh_cached_totals()

    assert fake_redis.store == {}


def test_start_scheduler_respects_setting(monkeypatch):
    monkeypatch.setattr(settings, "ENABLE_SCHEDULER", False)
    scheduler_service.start_scheduler()
    assert not scheduler_service.scheduler.running
    assert scheduler_service.scheduler.get_job("refresh_cached_totals") is None
