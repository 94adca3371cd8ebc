"""GitHub authorization URL construction."""

from __future__ import annotations

from collections.abc import Sequence
from urllib.parse import urlencode

from libs.github_auth.config import GITHUB_AUTHORIZE_URL
from libs.github_auth.exceptions import ConfigurationError


def build_authorization_url(
    client_id: str,
    redirect_uri: str,
    scopes: str | Sequence[str],
    state: str,
    challenge: str,
    authorize_url: str = GITHUB_AUTHORIZE_URL,
) -> str:
    """Build the GitHub authorization URL for the PKCE flow.

    The caller must persist the state and verifier before navigating.

    Args:
        client_id: OAuth App client ID
        redirect_uri: Registered callback URL (omitted from the URL when empty)
        scopes: Space-separated scope string or sequence of scopes
        state: Anti-CSRF state token
        challenge: PKCE S256 code challenge

    Returns:
        Complete authorization URL

    Raises:
        ConfigurationError: If client_id is empty
    """
    if not client_id:
        raise ConfigurationError("GitHub OAuth is not configured. Missing GITHUB_CLIENT_ID.")

    scope = scopes if isinstance(scopes, str) else " ".join(scopes)

    params = {"client_id": client_id}
    if redirect_uri:
        params["redirect_uri"] = redirect_uri
    params.update(
        {
            "scope": scope,
            "state": state,
            "code_challenge": challenge,
            "code_challenge_method": "S256",
        }
    )

    return f"{authorize_url}?{urlencode(params)}"
