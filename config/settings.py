"""
Application settings loaded from environment variables.

Uses Pydantic Settings for type-safe configuration with validation.
All settings can be overridden via environment variables or .env file.
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from libs.github_auth.config import (
    DEFAULT_SCOPES,
    GITHUB_API_URL,
    GITHUB_AUTHORIZE_URL,
    GITHUB_TOKEN_URL,
    OAuthConfig,
)


class Settings(BaseSettings):
    """
    Auth service configuration.

    All settings are loaded from environment variables or .env file.
    The GitHub client secret never leaves the server.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # GitHub OAuth App
    github_client_id: str = Field(
        default="",
        description="GitHub OAuth App client ID (login is refused while empty)",
    )
    github_client_secret: SecretStr = Field(
        default=SecretStr(""),
        description="GitHub OAuth App client secret (empty = public client, PKCE only)",
    )
    redirect_uri: str = Field(
        default="http://localhost:5000/callback",
        description="Callback URL registered with the GitHub OAuth App",
    )
    oauth_scopes: str = Field(
        default=DEFAULT_SCOPES,
        description="Space-separated GitHub scopes requested at login",
    )

    # GitHub endpoints (overridable for GitHub Enterprise or a same-origin proxy)
    github_authorize_url: str = Field(default=GITHUB_AUTHORIZE_URL)
    github_token_url: str = Field(default=GITHUB_TOKEN_URL)
    github_api_url: str = Field(default=GITHUB_API_URL)

    # Session lifecycle
    session_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        ge=60,
        description="Local session lifetime; a safety net, not a substitute for revocation checks",
    )
    pending_attempt_ttl_seconds: int = Field(
        default=300,
        ge=30,
        le=3600,
        description="How long a started login may take before its state/verifier are discarded",
    )
    sweep_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Interval of the in-memory sweep of abandoned login attempts",
    )
    provider_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="Timeout for calls to GitHub",
    )

    # Storage
    redis_url: str = Field(
        default="",
        description="Redis connection string (empty = in-process memory storage)",
    )
    session_encryption_key: SecretStr = Field(
        default=SecretStr(""),
        description="Base64-encoded 32-byte AES key for tokens at rest (empty disables)",
    )
    session_encryption_key_secondary: SecretStr = Field(
        default=SecretStr(""),
        description="Previous key, accepted for decryption during rotation",
    )

    # Browser cookie
    cookie_name: str = Field(default="gist_sid")
    cookie_secure: bool = Field(default=True, description="HTTPS-only cookie")
    cookie_domain: str | None = Field(default=None)

    # Application
    home_path: str = Field(default="/", description="Where a successful login lands")
    debug: bool = Field(
        default=False,
        description="Show underlying error details on the callback page",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    def to_oauth_config(self) -> OAuthConfig:
        """Convert to the OAuthConfig consumed by libs.github_auth."""
        secret = self.github_client_secret.get_secret_value()
        return OAuthConfig(
            client_id=self.github_client_id,
            client_secret=secret or None,
            redirect_uri=self.redirect_uri,
            scopes=self.oauth_scopes,
            authorize_url=self.github_authorize_url,
            token_url=self.github_token_url,
            api_url=self.github_api_url,
            timeout_seconds=self.provider_timeout_seconds,
            session_ttl_seconds=self.session_ttl_seconds,
            pending_attempt_ttl_seconds=self.pending_attempt_ttl_seconds,
            home_path=self.home_path,
            debug=self.debug,
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.

    Returns:
        Settings instance with all configuration loaded.

    Example:
        >>> settings = get_settings()
        >>> print(settings.oauth_scopes)
        'gist user user:email'
    """
    return Settings()
