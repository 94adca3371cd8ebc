"""GitHub OAuth (Authorization Code + PKCE) for Gist Manager.

Public surface used by the auth service and by tests.
"""

from libs.github_auth.authorize import build_authorization_url
from libs.github_auth.callback import CallbackHandler, CallbackOutcome, CallbackPhase
from libs.github_auth.config import OAuthConfig
from libs.github_auth.controller import AuthStateController
from libs.github_auth.github_api import GitHubClient
from libs.github_auth.pending_attempts import OAuthAttempt, PendingAttemptStore
from libs.github_auth.pkce import derive_challenge, generate_state, generate_verifier
from libs.github_auth.session_store import GitHubUser, Session, SessionStore
from libs.github_auth.storage import BrowserStorage, MemoryBackend, RedisBackend
from libs.github_auth.token_exchange import TokenExchangeClient

__all__ = [
    "AuthStateController",
    "BrowserStorage",
    "CallbackHandler",
    "CallbackOutcome",
    "CallbackPhase",
    "GitHubClient",
    "GitHubUser",
    "MemoryBackend",
    "OAuthAttempt",
    "OAuthConfig",
    "PendingAttemptStore",
    "RedisBackend",
    "Session",
    "SessionStore",
    "TokenExchangeClient",
    "build_authorization_url",
    "derive_challenge",
    "generate_state",
    "generate_verifier",
]
