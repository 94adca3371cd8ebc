"""Pending OAuth attempt storage with single-use enforcement.

CRITICAL SECURITY: state and PKCE verifier are stored per browser with a
short TTL (default 5 minutes) and consumed exactly once, to prevent CSRF and
replay of an intercepted authorization code.

Storage keys (per browser namespace):
  oauth_state               -> state token
  code_verifier             -> PKCE verifier
  oauth_attempt_created_at  -> ISO-8601 creation timestamp

Only one attempt exists per browser. Starting a second login overwrites the
first, which then can no longer complete.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import NamedTuple

from pydantic import BaseModel

from libs.github_auth.storage import BrowserStorage

logger = logging.getLogger(__name__)

OAUTH_STATE_KEY = "oauth_state"
CODE_VERIFIER_KEY = "code_verifier"
ATTEMPT_CREATED_AT_KEY = "oauth_attempt_created_at"

PENDING_ATTEMPT_KEYS = (OAUTH_STATE_KEY, CODE_VERIFIER_KEY, ATTEMPT_CREATED_AT_KEY)


class OAuthAttempt(BaseModel):
    """OAuth attempt persisted between the authorization redirect and the callback."""

    state: str
    code_verifier: str
    created_at: datetime


class TakenAttempt(NamedTuple):
    """Whatever was left of the pending attempt when the callback consumed it.

    Fields are None when the corresponding key was absent or expired.
    """

    state: str | None
    code_verifier: str | None
    created_at: datetime | None


class PendingAttemptStore:
    """Manages the single in-flight OAuth attempt of one browser."""

    def __init__(self, storage: BrowserStorage, ttl_seconds: int = 300):
        """Initialize pending attempt store.

        Args:
            storage: Browser-scoped storage
            ttl_seconds: Attempt lifetime in seconds (default: 300 = 5 minutes)
        """
        self.storage = storage
        self.ttl_seconds = ttl_seconds

    async def save(self, attempt: OAuthAttempt) -> None:
        """Persist the attempt, overwriting any earlier one.

        Args:
            attempt: Freshly generated state/verifier pair
        """
        await self.storage.set(OAUTH_STATE_KEY, attempt.state, self.ttl_seconds)
        await self.storage.set(CODE_VERIFIER_KEY, attempt.code_verifier, self.ttl_seconds)
        await self.storage.set(
            ATTEMPT_CREATED_AT_KEY, attempt.created_at.isoformat(), self.ttl_seconds
        )

        logger.info(
            "OAuth attempt stored",
            extra={
                "state": attempt.state[:8] + "...",
                "ttl_seconds": self.ttl_seconds,
            },
        )

    async def take(self) -> TakenAttempt:
        """Retrieve and DELETE the pending attempt (single-use enforcement).

        The attempt is gone after this call whatever the caller does with it.
        An attempt older than the TTL is reported as absent.

        Returns:
            TakenAttempt, with None for every missing field
        """
        state, code_verifier, created_raw = await self.storage.take(*PENDING_ATTEMPT_KEYS)

        created_at = datetime.fromisoformat(created_raw) if created_raw else None
        if created_at is not None:
            age = datetime.now(UTC) - created_at
            if age > timedelta(seconds=self.ttl_seconds):
                logger.warning(
                    "OAuth attempt expired before callback",
                    extra={"age_seconds": int(age.total_seconds())},
                )
                return TakenAttempt(state=None, code_verifier=None, created_at=None)

        if state is None:
            logger.warning(
                "OAuth attempt not found or already used",
                extra={"browser": self.storage.browser_id[:8] + "..."},
            )

        return TakenAttempt(state=state, code_verifier=code_verifier, created_at=created_at)

    async def clear(self) -> None:
        """Remove any leftover attempt data."""
        await self.storage.delete(*PENDING_ATTEMPT_KEYS)
