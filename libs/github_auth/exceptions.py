"""Authentication exceptions for the GitHub OAuth flow."""

from __future__ import annotations


class AuthError(Exception):
    """Base exception for all authentication errors.

    ``user_safe`` marks whether the message may be shown to an end user
    verbatim. Errors that can carry transport internals set it to False.
    """

    user_safe = True


class ConfigurationError(AuthError):
    """Raised when required OAuth configuration (e.g. client id) is missing."""


class ProviderError(AuthError):
    """Raised when GitHub reports an OAuth error (access_denied, bad_verification_code, ...)."""

    def __init__(self, error: str, description: str | None = None) -> None:
        self.error = error
        self.description = description
        message = f"GitHub reported an error: {error}"
        if description:
            message = f"{message} - {description}"
        super().__init__(message)


class ProtocolError(AuthError):
    """Raised when the OAuth handshake violates the expected protocol."""


class MissingCodeError(ProtocolError):
    """Raised when the callback carries no authorization code."""


class MissingStateError(ProtocolError):
    """Raised when the callback carries no state parameter."""


class StateMismatchError(ProtocolError):
    """Raised when the callback state does not match the pending attempt."""


class FlowInterruptedError(ProtocolError):
    """Raised when the pending attempt has no code verifier."""


class MalformedTokenResponseError(ProtocolError):
    """Raised when the token endpoint answers without an access_token."""


class TransportError(AuthError):
    """Raised when a call to GitHub fails at the network level."""

    user_safe = False


class ExchangeTimeoutError(TransportError):
    """Raised when GitHub does not answer within the configured timeout."""

    user_safe = True


class TokenInvalidError(AuthError):
    """Raised when GitHub rejects the stored access token (HTTP 401)."""


class GitHubRateLimitError(AuthError):
    """Raised when the GitHub API rate limit is exhausted (HTTP 403, remaining 0)."""

    def __init__(self, reset_at: str | None = None) -> None:
        self.reset_at = reset_at
        message = "GitHub API rate limit exceeded"
        if reset_at:
            message = f"{message}, resets at {reset_at}"
        super().__init__(message)


__all__ = [
    "AuthError",
    "ConfigurationError",
    "ProviderError",
    "ProtocolError",
    "MissingCodeError",
    "MissingStateError",
    "StateMismatchError",
    "FlowInterruptedError",
    "MalformedTokenResponseError",
    "TransportError",
    "ExchangeTimeoutError",
    "TokenInvalidError",
    "GitHubRateLimitError",
]
