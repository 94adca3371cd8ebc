"""Session store for the GitHub access token and cached profile.

The session wraps GitHub's (non-expiring) OAuth token in a local TTL
(default 24 hours). The TTL is a safety net only; revocation on GitHub's side
is detected through 401 responses, which raise the invalidation signal.

Storage keys (per browser namespace):
  github_token        -> access token (AES-256-GCM encrypted when a cipher is set)
  session_expires_at  -> ISO-8601 absolute expiry
  session_created_at  -> ISO-8601 creation timestamp
  session_user        -> JSON GitHubUser profile

Observers:
  on_invalidated(cb)  "token invalid" signal raised by any API caller
  on_logout(cb)       fired after every clear(), so cached data can be dropped
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

from cryptography.exceptions import InvalidTag
from pydantic import BaseModel, ConfigDict, ValidationError

from libs.github_auth.metrics import oauth_logouts_total
from libs.github_auth.pending_attempts import PENDING_ATTEMPT_KEYS
from libs.github_auth.storage import BrowserStorage
from libs.github_auth.token_cipher import TokenCipher

logger = logging.getLogger(__name__)

TOKEN_KEY = "github_token"
EXPIRES_AT_KEY = "session_expires_at"
CREATED_AT_KEY = "session_created_at"
USER_KEY = "session_user"

SESSION_KEYS = (TOKEN_KEY, EXPIRES_AT_KEY, CREATED_AT_KEY, USER_KEY)

DEFAULT_SESSION_TTL_SECONDS = 24 * 60 * 60

SessionListener = Callable[[str], Awaitable[None] | None]


class GitHubUser(BaseModel):
    """Subset of the GitHub /user profile cached alongside the session."""

    model_config = ConfigDict(extra="ignore")

    id: int
    login: str
    name: str | None = None
    avatar_url: str | None = None
    html_url: str | None = None
    email: str | None = None  # Only with user:email scope or a public email
    public_repos: int = 0
    public_gists: int = 0
    followers: int = 0
    following: int = 0


class Session(BaseModel):
    """Locally cached authenticated state."""

    access_token: str
    expires_at: datetime
    created_at: datetime
    user: GitHubUser | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at


class SessionStore:
    """Persists the session for one browser and broadcasts logout/invalidation."""

    def __init__(
        self,
        storage: BrowserStorage,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        cipher: TokenCipher | None = None,
    ):
        self.storage = storage
        self.ttl_seconds = ttl_seconds
        self.cipher = cipher
        self._invalidation_listeners: list[SessionListener] = []
        self._logout_listeners: list[SessionListener] = []

    async def save(
        self,
        token: str,
        ttl_seconds: int | None = None,
        user: GitHubUser | None = None,
    ) -> Session:
        """Create the session, replacing any previous one.

        Args:
            token: GitHub access token
            ttl_seconds: Local session lifetime (defaults to the store TTL)
            user: Optional profile to cache immediately

        Returns:
            The stored Session
        """
        ttl = ttl_seconds or self.ttl_seconds
        now = datetime.now(UTC)
        session = Session(
            access_token=token,
            expires_at=now + timedelta(seconds=ttl),
            created_at=now,
            user=user,
        )

        stored_token = self.cipher.encrypt(token) if self.cipher else token
        await self.storage.set(TOKEN_KEY, stored_token, ttl)
        await self.storage.set(EXPIRES_AT_KEY, session.expires_at.isoformat(), ttl)
        await self.storage.set(CREATED_AT_KEY, session.created_at.isoformat(), ttl)
        if user is not None:
            await self.storage.set(USER_KEY, user.model_dump_json(), ttl)
        else:
            await self.storage.delete(USER_KEY)

        logger.info(
            "Session created",
            extra={
                "browser": self.storage.browser_id[:8] + "...",
                "ttl_seconds": ttl,
            },
        )
        return session

    async def save_user(self, user: GitHubUser) -> bool:
        """Cache the profile without extending the session lifetime.

        Returns:
            False if there is no live session to attach the profile to
        """
        expires_raw = await self.storage.get(EXPIRES_AT_KEY)
        if not expires_raw:
            return False

        remaining = datetime.fromisoformat(expires_raw) - datetime.now(UTC)
        remaining_seconds = int(remaining.total_seconds())
        if remaining_seconds <= 0:
            return False

        await self.storage.set(USER_KEY, user.model_dump_json(), remaining_seconds)
        return True

    async def load(self) -> Session | None:
        """Return the live session, or None.

        An expired session is evicted here and never returned.
        """
        token_raw = await self.storage.get(TOKEN_KEY)
        expires_raw = await self.storage.get(EXPIRES_AT_KEY)

        if not token_raw or not expires_raw:
            if token_raw or expires_raw:
                # Half-written session: never trust it
                await self.storage.delete(*SESSION_KEYS)
            return None

        expires_at = datetime.fromisoformat(expires_raw)
        if datetime.now(UTC) >= expires_at:
            logger.info(
                "Session expired",
                extra={"browser": self.storage.browser_id[:8] + "..."},
            )
            await self.clear(reason="expired", keep_pending=True)
            return None

        try:
            token = self.cipher.decrypt(token_raw) if self.cipher else token_raw
        except (InvalidTag, ValueError) as e:
            logger.error(
                "Session token decryption failed",
                extra={
                    "browser": self.storage.browser_id[:8] + "...",
                    "error": type(e).__name__,
                },
            )
            await self.clear(reason="corrupt", keep_pending=True)
            return None

        created_raw = await self.storage.get(CREATED_AT_KEY)
        user_raw = await self.storage.get(USER_KEY)

        user = None
        if user_raw:
            try:
                user = GitHubUser.model_validate_json(user_raw)
            except ValidationError:
                logger.warning("Cached GitHub profile is unreadable, dropping it")
                await self.storage.delete(USER_KEY)

        return Session(
            access_token=token,
            expires_at=expires_at,
            created_at=datetime.fromisoformat(created_raw) if created_raw else expires_at,
            user=user,
        )

    async def clear(self, reason: str = "logout", keep_pending: bool = False) -> None:
        """Remove every session artifact and leftover pending-attempt data.

        Args:
            reason: Logout reason reported to listeners and metrics
            keep_pending: Leave the pending attempt alone, so a login already
                in flight for this browser can still complete
        """
        keys = SESSION_KEYS if keep_pending else (*SESSION_KEYS, *PENDING_ATTEMPT_KEYS)
        deleted = await self.storage.delete(*keys)
        oauth_logouts_total.labels(reason=reason).inc()

        logger.info(
            "Session cleared",
            extra={
                "browser": self.storage.browser_id[:8] + "...",
                "reason": reason,
                "existed": deleted > 0,
            },
        )

        await self._notify(self._logout_listeners, reason)

    async def invalidate(self, reason: str = "token_invalid") -> None:
        """Signal that GitHub no longer accepts the stored token.

        Subscribers (normally the auth controller) run the logout path.
        Without subscribers the session is cleared directly.
        """
        logger.warning(
            "Session invalidation signalled",
            extra={
                "browser": self.storage.browser_id[:8] + "...",
                "reason": reason,
            },
        )

        if self._invalidation_listeners:
            await self._notify(self._invalidation_listeners, reason)
        else:
            await self.clear(reason=reason, keep_pending=True)

    def on_invalidated(self, callback: SessionListener) -> Callable[[], None]:
        """Subscribe to the "token invalid" signal. Returns an unsubscribe function."""
        return self._subscribe(self._invalidation_listeners, callback)

    def on_logout(self, callback: SessionListener) -> Callable[[], None]:
        """Subscribe to logout notifications. Returns an unsubscribe function."""
        return self._subscribe(self._logout_listeners, callback)

    @staticmethod
    def _subscribe(
        listeners: list[SessionListener], callback: SessionListener
    ) -> Callable[[], None]:
        listeners.append(callback)

        def unsubscribe() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    @staticmethod
    async def _notify(listeners: list[SessionListener], reason: str) -> None:
        for callback in list(listeners):
            try:
                result = callback(reason)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning("Session listener failed", exc_info=True)
