"""Shared dependencies for the FastAPI auth service.

Uses functools.lru_cache for process-wide singletons (settings, storage
backend). Controllers are NOT shared: one is built per request, scoped to
the browser id from the cookie.
"""

from __future__ import annotations

import logging
from functools import lru_cache

import redis.asyncio
from fastapi import Depends

from config.settings import Settings, get_settings
from libs.github_auth.config import OAuthConfig
from libs.github_auth.controller import AuthStateController
from libs.github_auth.github_api import GitHubClient
from libs.github_auth.pending_attempts import PendingAttemptStore
from libs.github_auth.session_store import SessionStore
from libs.github_auth.storage import BrowserStorage, KeyValueBackend, MemoryBackend, RedisBackend
from libs.github_auth.token_cipher import TokenCipher
from libs.github_auth.token_exchange import TokenExchangeClient

logger = logging.getLogger(__name__)


@lru_cache
def get_storage_backend() -> KeyValueBackend:
    """Get the storage backend singleton (Redis when REDIS_URL is set)."""
    settings = get_settings()
    if settings.redis_url:
        client = redis.asyncio.Redis.from_url(settings.redis_url, decode_responses=False)
        return RedisBackend(redis_client=client)

    logger.warning("REDIS_URL not set - using in-memory auth storage (single process only)")
    return MemoryBackend()


def build_token_cipher(settings: Settings) -> TokenCipher | None:
    """Build the at-rest token cipher, or None when no key is configured.

    Expected format: Base64-encoded 32-byte key
    Example: SESSION_ENCRYPTION_KEY=$(python3 -c "import os, base64; print(base64.b64encode(os.urandom(32)).decode())")
    """
    primary = settings.session_encryption_key.get_secret_value()
    if not primary:
        return None
    secondary = settings.session_encryption_key_secondary.get_secret_value()
    return TokenCipher.from_base64(primary, secondary or None)


class ControllerFactory:
    """Builds a browser-scoped AuthStateController with shared collaborators."""

    def __init__(
        self,
        config: OAuthConfig,
        backend: KeyValueBackend,
        cipher: TokenCipher | None = None,
    ):
        self.config = config
        self.backend = backend
        self.cipher = cipher
        self.exchanger = TokenExchangeClient(config)

    def __call__(self, browser_id: str) -> AuthStateController:
        storage = BrowserStorage(self.backend, browser_id)
        sessions = SessionStore(
            storage,
            ttl_seconds=self.config.session_ttl_seconds,
            cipher=self.cipher,
        )
        pending = PendingAttemptStore(storage, ttl_seconds=self.config.pending_attempt_ttl_seconds)

        return AuthStateController(
            config=self.config,
            pending=pending,
            sessions=sessions,
            exchanger=self.exchanger,
            github=GitHubClient(self.config, session_store=sessions),
        )


def get_controller_factory(
    settings: Settings = Depends(get_settings),
    backend: KeyValueBackend = Depends(get_storage_backend),
) -> ControllerFactory:
    """FastAPI dependency producing the controller factory for a request."""
    return ControllerFactory(
        config=settings.to_oauth_config(),
        backend=backend,
        cipher=build_token_cipher(settings),
    )
