"""Tests for per-browser key/value storage backends."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from libs.github_auth.storage import BrowserStorage, MemoryBackend, RedisBackend, run_sweeper


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def backend(clock):
    return MemoryBackend(clock=clock)


class TestMemoryBackend:
    @pytest.mark.asyncio()
    async def test_set_and_get(self, backend):
        await backend.set("k", "v")

        assert await backend.get("k") == "v"
        assert await backend.get("missing") is None

    @pytest.mark.asyncio()
    async def test_entry_invisible_after_ttl(self, backend, clock):
        await backend.set("k", "v", ttl_seconds=10)

        clock.advance(9)
        assert await backend.get("k") == "v"

        clock.advance(1)
        assert await backend.get("k") is None

    @pytest.mark.asyncio()
    async def test_delete_counts_existing_keys(self, backend):
        await backend.set("a", "1")
        await backend.set("b", "2")

        assert await backend.delete("a", "b", "c") == 2
        assert len(backend) == 0

    @pytest.mark.asyncio()
    async def test_take_returns_values_and_deletes(self, backend):
        await backend.set("a", "1")
        await backend.set("b", "2")

        assert await backend.take("a", "b", "c") == ["1", "2", None]
        assert await backend.take("a", "b") == [None, None]

    @pytest.mark.asyncio()
    async def test_take_is_single_use_under_concurrency(self, backend):
        await backend.set("state", "s1")

        results = await asyncio.gather(*(backend.take("state") for _ in range(10)))

        assert sum(1 for r in results if r == ["s1"]) == 1

    @pytest.mark.asyncio()
    async def test_take_skips_expired_values(self, backend, clock):
        await backend.set("a", "1", ttl_seconds=5)
        clock.advance(6)

        assert await backend.take("a") == [None]

    @pytest.mark.asyncio()
    async def test_sweep_evicts_only_expired(self, backend, clock):
        await backend.set("short", "1", ttl_seconds=5)
        await backend.set("long", "2", ttl_seconds=500)
        await backend.set("forever", "3")
        clock.advance(10)

        assert await backend.sweep() == 1
        assert len(backend) == 2
        assert await backend.get("long") == "2"


class TestRedisBackend:
    @pytest.fixture()
    def redis_mock(self):
        redis = MagicMock()
        redis.get = AsyncMock(return_value=None)
        redis.set = AsyncMock()
        redis.setex = AsyncMock()
        redis.delete = AsyncMock(return_value=0)
        return redis

    @pytest.fixture()
    def pipeline(self, redis_mock):
        pipe = MagicMock()
        pipe.execute = AsyncMock()

        pipeline_cm = MagicMock()
        pipeline_cm.__aenter__ = AsyncMock(return_value=pipe)
        pipeline_cm.__aexit__ = AsyncMock(return_value=None)
        redis_mock.pipeline = MagicMock(return_value=pipeline_cm)
        return pipe

    @pytest.mark.asyncio()
    async def test_set_with_ttl_uses_setex(self, redis_mock):
        backend = RedisBackend(redis_mock)

        await backend.set("b1:oauth_state", "s", ttl_seconds=300)

        redis_mock.setex.assert_called_once_with("gist_auth:b1:oauth_state", 300, "s")
        redis_mock.set.assert_not_called()

    @pytest.mark.asyncio()
    async def test_set_without_ttl(self, redis_mock):
        backend = RedisBackend(redis_mock, key_prefix="p:")

        await backend.set("k", "v")

        redis_mock.set.assert_called_once_with("p:k", "v")

    @pytest.mark.asyncio()
    async def test_get_decodes_bytes(self, redis_mock):
        redis_mock.get.return_value = b"value"
        backend = RedisBackend(redis_mock)

        assert await backend.get("k") == "value"
        redis_mock.get.assert_called_once_with("gist_auth:k")

    @pytest.mark.asyncio()
    async def test_delete_prefixes_keys(self, redis_mock):
        redis_mock.delete.return_value = 2
        backend = RedisBackend(redis_mock)

        assert await backend.delete("a", "b") == 2
        redis_mock.delete.assert_called_once_with("gist_auth:a", "gist_auth:b")

    @pytest.mark.asyncio()
    async def test_delete_nothing(self, redis_mock):
        backend = RedisBackend(redis_mock)

        assert await backend.delete() == 0
        redis_mock.delete.assert_not_called()

    @pytest.mark.asyncio()
    async def test_take_uses_transactional_pipeline(self, redis_mock, pipeline):
        pipeline.execute.return_value = [b"state", None, 1]
        backend = RedisBackend(redis_mock)

        values = await backend.take("a", "b")

        assert values == ["state", None]
        redis_mock.pipeline.assert_called_once_with(transaction=True)
        assert pipeline.get.call_count == 2
        pipeline.delete.assert_called_once_with("gist_auth:a", "gist_auth:b")
        pipeline.execute.assert_awaited_once()


class TestBrowserStorage:
    @pytest.mark.asyncio()
    async def test_keys_are_namespaced_per_browser(self, backend):
        first = BrowserStorage(backend, "browser-1")
        second = BrowserStorage(backend, "browser-2")

        await first.set("oauth_state", "s1")
        await second.set("oauth_state", "s2")

        assert await first.get("oauth_state") == "s1"
        assert await second.get("oauth_state") == "s2"
        assert await backend.get("browser-1:oauth_state") == "s1"

    @pytest.mark.asyncio()
    async def test_take_and_delete_stay_in_namespace(self, backend):
        first = BrowserStorage(backend, "browser-1")
        second = BrowserStorage(backend, "browser-2")
        await first.set("k", "1")
        await second.set("k", "2")

        assert await first.take("k") == ["1"]
        assert await first.delete("k") == 0
        assert await second.get("k") == "2"

    def test_empty_browser_id_rejected(self, backend):
        with pytest.raises(ValueError, match="browser_id"):
            BrowserStorage(backend, "")


@pytest.mark.asyncio()
async def test_sweeper_runs_until_cancelled():
    backend = MagicMock()
    backend.sweep = AsyncMock(return_value=0)

    task = asyncio.create_task(run_sweeper(backend, interval_seconds=0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert backend.sweep.await_count >= 1


@pytest.mark.asyncio()
async def test_sweeper_survives_sweep_failure():
    calls = []

    async def sweep():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return 0

    backend = MagicMock()
    backend.sweep = sweep

    task = asyncio.create_task(run_sweeper(backend, interval_seconds=0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(calls) >= 2
