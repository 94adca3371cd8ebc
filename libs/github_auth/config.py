"""OAuth configuration consumed by the GitHub auth library."""

from pydantic import BaseModel, ConfigDict

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_API_URL = "https://api.github.com"

DEFAULT_SCOPES = "gist user user:email"


class OAuthConfig(BaseModel):
    """Immutable OAuth settings, built from the service settings.

    client_secret is only set for the confidential server-side flow. Without
    it the exchange relies on PKCE alone.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str
    redirect_uri: str = ""
    client_secret: str | None = None
    scopes: str = DEFAULT_SCOPES
    authorize_url: str = GITHUB_AUTHORIZE_URL
    token_url: str = GITHUB_TOKEN_URL
    api_url: str = GITHUB_API_URL
    timeout_seconds: float = 10.0
    session_ttl_seconds: int = 24 * 60 * 60
    pending_attempt_ttl_seconds: int = 300
    home_path: str = "/"
    debug: bool = False
