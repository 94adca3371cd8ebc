"""Fixtures for auth service route tests.

Routes are mounted on a bare FastAPI app with settings and storage
overridden, so no environment or Redis is needed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
from fastapi import APIRouter, FastAPI
from fastapi.testclient import TestClient
from pydantic import SecretStr

from apps.auth_service.dependencies import get_storage_backend
from config.settings import Settings, get_settings
from libs.github_auth.storage import MemoryBackend

COOKIE_NAME = "gist_sid"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        github_client_id="test-client-id",
        github_client_secret=SecretStr("test-client-secret"),
        redirect_uri="http://testserver/callback",
        cookie_secure=False,
        cookie_name=COOKIE_NAME,
        home_path="/",
        debug=False,
    )


@pytest.fixture()
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture()
def make_client(settings: Settings, backend: MemoryBackend) -> Iterator[Callable[..., TestClient]]:
    """Build a TestClient for an app with only the given routers registered."""

    def _make(*routers: APIRouter) -> TestClient:
        app = FastAPI()
        for router in routers:
            app.include_router(router)
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_storage_backend] = lambda: backend
        return TestClient(app)

    yield _make
