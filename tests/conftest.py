"""
Shared fixtures for auth tests.
"""

import pytest

from libs.github_auth.config import OAuthConfig
from libs.github_auth.storage import BrowserStorage, MemoryBackend


@pytest.fixture()
def oauth_config() -> OAuthConfig:
    """Confidential-client OAuth configuration."""
    return OAuthConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://localhost:5000/callback",
        timeout_seconds=5.0,
    )


@pytest.fixture()
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture()
def browser_storage(memory_backend: MemoryBackend) -> BrowserStorage:
    return BrowserStorage(memory_backend, "browser-abc123456")
