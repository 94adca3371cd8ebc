"""Tests for auth service dependency wiring."""

from __future__ import annotations

import base64
import os

import pytest
from pydantic import SecretStr

from apps.auth_service import dependencies
from apps.auth_service.dependencies import (
    ControllerFactory,
    build_token_cipher,
    get_controller_factory,
    get_storage_backend,
)
from config.settings import Settings
from libs.github_auth.storage import MemoryBackend, RedisBackend


@pytest.fixture()
def clear_backend_cache():
    get_storage_backend.cache_clear()
    yield
    get_storage_backend.cache_clear()


def test_memory_backend_without_redis_url(monkeypatch, clear_backend_cache) -> None:
    monkeypatch.setattr(dependencies, "get_settings", lambda: Settings(_env_file=None, redis_url=""))

    backend = get_storage_backend()

    assert isinstance(backend, MemoryBackend)
    assert get_storage_backend() is backend


def test_redis_backend_with_redis_url(monkeypatch, clear_backend_cache) -> None:
    monkeypatch.setattr(
        dependencies,
        "get_settings",
        lambda: Settings(_env_file=None, redis_url="redis://localhost:6379/3"),
    )

    assert isinstance(get_storage_backend(), RedisBackend)


def test_no_cipher_without_key() -> None:
    assert build_token_cipher(Settings(_env_file=None, session_encryption_key="")) is None


def test_cipher_with_rotation_keys() -> None:
    old_key = os.urandom(32)
    settings = Settings(
        _env_file=None,
        session_encryption_key=SecretStr(base64.b64encode(os.urandom(32)).decode()),
        session_encryption_key_secondary=SecretStr(base64.b64encode(old_key).decode()),
    )

    cipher = build_token_cipher(settings)

    assert cipher is not None
    assert cipher.cipher_secondary is not None


@pytest.mark.asyncio()
async def test_factory_scopes_controllers_by_browser(settings) -> None:
    backend = MemoryBackend()
    factory = get_controller_factory(settings=settings, backend=backend)

    first = factory("browser-a")
    second = factory("browser-b")

    assert isinstance(factory, ControllerFactory)
    assert first.sessions.storage.browser_id == "browser-a"
    assert second.pending.storage.browser_id == "browser-b"
    assert first.exchanger is second.exchanger
    assert first.pending.ttl_seconds == settings.pending_attempt_ttl_seconds

    await first.sessions.save("gho_a")
    assert await second.sessions.load() is None
    first.close()
    second.close()
