"""Authenticated GitHub REST API calls used by the auth flow.

Any call that receives HTTP 401 raises the session store's invalidation
signal before failing, so a token revoked on GitHub's side logs the browser
out wherever the 401 is first observed.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from pydantic import ValidationError

from libs.github_auth.config import OAuthConfig
from libs.github_auth.exceptions import (
    AuthError,
    GitHubRateLimitError,
    TokenInvalidError,
    TransportError,
)
from libs.github_auth.session_store import GitHubUser, SessionStore

logger = logging.getLogger(__name__)

# Warn once fewer than 10% of the hourly requests remain
RATE_LIMIT_WARNING_RATIO = 0.1


class GitHubClient:
    """Thin async client for the GitHub REST API."""

    def __init__(self, config: OAuthConfig, session_store: SessionStore | None = None):
        self.config = config
        self.session_store = session_store

    async def request(
        self,
        method: str,
        path: str,
        access_token: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Call the GitHub API with a bearer token.

        Args:
            method: HTTP method
            path: API path, e.g. "/user"
            access_token: GitHub access token
            **kwargs: Additional arguments for httpx.request (json, params, ...)

        Returns:
            HTTP response (any status other than 401 / exhausted rate limit)

        Raises:
            TokenInvalidError: GitHub answered 401 (invalidation already signalled)
            GitHubRateLimitError: GitHub answered 403 with no requests remaining
            TransportError: Network failure or timeout
        """
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {access_token}"
        headers.setdefault("Accept", "application/vnd.github+json")

        url = f"{self.config.api_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("GitHub API request timed out", extra={"path": path})
            raise TransportError("No response received from GitHub. Please try again.") from e
        except httpx.RequestError as e:
            logger.error(f"GitHub API network error: {type(e).__name__}", extra={"path": path})
            raise TransportError(f"GitHub API network error: {e}") from e

        remaining = response.headers.get("x-ratelimit-remaining")
        limit = response.headers.get("x-ratelimit-limit")
        reset = response.headers.get("x-ratelimit-reset")
        _log_rate_limit(remaining, limit, reset)

        if response.status_code == 401:
            logger.error("Unauthorized GitHub API request - token may be invalid", extra={"path": path})
            if self.session_store is not None:
                await self.session_store.invalidate(reason="github_unauthorized")
            raise TokenInvalidError(
                "Authentication token is invalid or expired. Please log in again."
            )

        if response.status_code == 403 and remaining == "0":
            raise GitHubRateLimitError(reset_at=_format_reset(reset))

        return response

    async def get_current_user(self, access_token: str) -> GitHubUser:
        """Fetch the authenticated user's profile (GET /user)."""
        response = await self.request("GET", "/user", access_token)

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(
                "Error fetching current user",
                extra={"status_code": response.status_code},
            )
            raise TransportError(f"GitHub API error: {message}")

        try:
            user = GitHubUser.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(
                "Unreadable GitHub user payload",
                extra={"status_code": response.status_code, "error": type(e).__name__},
            )
            raise TransportError("GitHub API returned an unreadable user profile") from e

        logger.info("Fetched GitHub user", extra={"login": user.login})
        return user

    async def validate_token(self, access_token: str) -> bool:
        """Check whether GitHub still accepts the token.

        Only a 401 counts as invalid; other failures (network, rate limit,
        5xx) say nothing about the token and are treated as still valid.
        """
        try:
            await self.request("GET", "/user", access_token)
        except TokenInvalidError:
            logger.warning("Token validation failed - token is invalid or expired")
            return False
        except AuthError as e:
            logger.error("Error during token validation", extra={"error": str(e)})
        return True


def _log_rate_limit(remaining: str | None, limit: str | None, reset: str | None) -> None:
    if not remaining or not limit:
        return
    try:
        ratio = int(remaining) / int(limit)
    except (ValueError, ZeroDivisionError):
        return

    if ratio < RATE_LIMIT_WARNING_RATIO:
        logger.warning(
            "GitHub API rate limit running low",
            extra={"limit": limit, "remaining": remaining, "reset": _format_reset(reset)},
        )


def _format_reset(reset: str | None) -> str | None:
    if not reset:
        return None
    try:
        return datetime.fromtimestamp(int(reset), UTC).isoformat()
    except ValueError:
        return None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"HTTP {response.status_code}"
