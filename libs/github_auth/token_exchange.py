"""Authorization code exchange against GitHub's token endpoint.

GitHub's token endpoint does not allow cross-origin browser calls, so the
exchange always runs server-side: either directly from the callback
(``exchange_code_for_token``) or on behalf of a browser client through the
same-origin proxy route (``forward``).

SECURITY: authorization codes, verifiers and tokens are never logged.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from libs.github_auth.config import OAuthConfig
from libs.github_auth.exceptions import (
    ExchangeTimeoutError,
    MalformedTokenResponseError,
    ProviderError,
    TransportError,
)
from libs.github_auth.metrics import oauth_token_exchange_seconds

logger = logging.getLogger(__name__)


class TokenExchangeClient:
    """Exchanges authorization codes (plus PKCE verifier) for access tokens."""

    def __init__(self, config: OAuthConfig):
        self.config = config
        self.token_endpoint = config.token_url

    async def exchange_code_for_token(self, code: str, code_verifier: str) -> str:
        """Exchange an authorization code for an access token.

        Args:
            code: Authorization code from the callback
            code_verifier: PKCE verifier stored with the pending attempt

        Returns:
            GitHub access token

        Raises:
            ProviderError: GitHub answered with error/error_description
            ExchangeTimeoutError: No answer within the configured timeout
            TransportError: Network failure or unexpected HTTP status
            MalformedTokenResponseError: Response lacks access_token
        """
        payload = {
            "client_id": self.config.client_id,
            "code": code,
            "code_verifier": code_verifier,
        }
        if self.config.redirect_uri:
            payload["redirect_uri"] = self.config.redirect_uri
        if self.config.client_secret:
            payload["client_secret"] = self.config.client_secret

        with oauth_token_exchange_seconds.time():
            data = await self._post_token_request(payload)

        access_token = data.get("access_token")
        if not access_token:
            logger.error(
                "Token exchange response missing access_token",
                extra={"fields": sorted(data)},
            )
            raise MalformedTokenResponseError("Token response did not include an access_token")

        logger.info("Authorization code exchanged for access token")
        return str(access_token)

    async def forward(self, body: dict[str, Any]) -> dict[str, str]:
        """Forward a browser's token request to GitHub.

        The caller's fields are passed through unchanged; client_id and
        redirect_uri are filled in when absent and client_secret is always
        taken from server configuration.

        Returns:
            {"access_token": ...}

        Raises:
            Same as exchange_code_for_token
        """
        payload = dict(body)
        payload.setdefault("client_id", self.config.client_id)
        if self.config.redirect_uri:
            payload.setdefault("redirect_uri", self.config.redirect_uri)
        payload.pop("client_secret", None)
        if self.config.client_secret:
            payload["client_secret"] = self.config.client_secret

        with oauth_token_exchange_seconds.time():
            data = await self._post_token_request(payload)

        access_token = data.get("access_token")
        if not access_token:
            logger.error("Proxied token response missing access_token")
            raise MalformedTokenResponseError("Token response did not include an access_token")

        return {"access_token": str(access_token)}

    async def revoke_token(self, access_token: str) -> bool:
        """Revoke the token at GitHub (best effort, confidential clients only).

        See: https://docs.github.com/en/rest/apps/oauth-applications#delete-an-app-token

        Returns:
            False when no client secret is configured (nothing attempted)

        Raises:
            httpx.HTTPError: If the revocation request fails
        """
        if not self.config.client_secret:
            return False

        url = f"{self.config.api_url}/applications/{self.config.client_id}/token"
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
            response = await client.request(
                "DELETE",
                url,
                json={"access_token": access_token},
                auth=(self.config.client_id, self.config.client_secret),
                headers={"Accept": "application/vnd.github+json"},
            )
            response.raise_for_status()
        return True

    async def _post_token_request(self, payload: dict[str, Any]) -> dict[str, Any]:
        timeout = self.config.timeout_seconds
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(
                    self.token_endpoint,
                    json=payload,
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            logger.error("Token exchange timed out", extra={"timeout_seconds": timeout})
            raise ExchangeTimeoutError(
                f"GitHub did not respond within {timeout:g} seconds. Please try again."
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Token exchange network error: {type(e).__name__}")
            raise TransportError(f"Token exchange network error: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        # GitHub reports OAuth errors with HTTP 200 and an "error" field
        if isinstance(data, dict) and data.get("error"):
            logger.warning(
                "GitHub rejected token exchange",
                extra={"error": data["error"], "status_code": response.status_code},
            )
            raise ProviderError(str(data["error"]), data.get("error_description"))

        if response.status_code >= 400:
            logger.error(f"Token exchange failed: HTTP {response.status_code}")
            raise TransportError(f"Token exchange failed: HTTP {response.status_code}")

        if not isinstance(data, dict):
            logger.error("Token exchange returned a non-JSON body")
            raise MalformedTokenResponseError("Token endpoint returned a non-JSON response")

        return data
