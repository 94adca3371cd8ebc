"""Auth state controller for the GitHub OAuth PKCE flow.

One controller per browser namespace, built per request with its
collaborators injected; there is no module-level auth state. The controller
is the error boundary of the login sequence: every failure becomes the
``error`` field plus a False return value, and partial pending-attempt data
is scrubbed so a retry starts clean.

Flow:
1. initiate_login(): PKCE pair + state -> persist attempt -> authorization URL
2. login(code, state): take attempt (single use) -> validate state ->
   exchange code -> save session -> fetch profile
3. logout(): clear session, broadcast logout, best-effort revocation at GitHub
"""

from __future__ import annotations

import hmac
import logging
from datetime import UTC, datetime

from libs.github_auth.authorize import build_authorization_url
from libs.github_auth.config import OAuthConfig
from libs.github_auth.exceptions import (
    AuthError,
    ConfigurationError,
    FlowInterruptedError,
    MissingCodeError,
    MissingStateError,
    ProtocolError,
    ProviderError,
    StateMismatchError,
    TokenInvalidError,
    TransportError,
)
from libs.github_auth.github_api import GitHubClient
from libs.github_auth.metrics import oauth_logins_total
from libs.github_auth.pending_attempts import OAuthAttempt, PendingAttemptStore
from libs.github_auth.pkce import generate_pkce_pair, generate_state
from libs.github_auth.session_store import GitHubUser, Session, SessionStore
from libs.github_auth.token_exchange import TokenExchangeClient

logger = logging.getLogger(__name__)

GENERIC_LOGIN_ERROR = "Authentication failed. Please try again."
PROFILE_ERROR = "Failed to retrieve user information"
INVALIDATED_NOTICE = "Your GitHub session has expired or was revoked. Please sign in again."


class AuthStateController:
    """Ties PKCE, pending attempts, token exchange and session together."""

    def __init__(
        self,
        config: OAuthConfig,
        pending: PendingAttemptStore,
        sessions: SessionStore,
        exchanger: TokenExchangeClient,
        github: GitHubClient,
    ):
        self.config = config
        self.pending = pending
        self.sessions = sessions
        self.exchanger = exchanger
        self.github = github

        self.user: GitHubUser | None = None
        self.loading = False
        self.error: str | None = None
        self.notice: str | None = None
        self.last_failure: Exception | None = None
        self._session: Session | None = None

        self._unsubscribe = sessions.on_invalidated(self._on_token_invalid)

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None and not self._session.is_expired()

    async def initiate_login(self) -> str | None:
        """Start a new OAuth attempt.

        Any earlier pending attempt of this browser is overwritten.

        Returns:
            Authorization URL to navigate to, or None with ``error`` set
        """
        self.clear_error()

        pkce = generate_pkce_pair()
        state = generate_state()

        try:
            authorization_url = build_authorization_url(
                client_id=self.config.client_id,
                redirect_uri=self.config.redirect_uri,
                scopes=self.config.scopes,
                state=state,
                challenge=pkce.code_challenge,
                authorize_url=self.config.authorize_url,
            )
            # Persist before the caller navigates away
            await self.pending.save(
                OAuthAttempt(
                    state=state,
                    code_verifier=pkce.code_verifier,
                    created_at=datetime.now(UTC),
                )
            )
        except ConfigurationError as e:
            logger.error(str(e))
            self._record_failure(e)
            oauth_logins_total.labels(outcome="configuration_error").inc()
            return None
        except Exception as e:
            logger.exception("Error initiating GitHub login")
            self.last_failure = e
            self.error = "Failed to initiate GitHub login. Please try again."
            return None

        logger.info(
            "Initiating GitHub OAuth login with PKCE",
            extra={
                "state": state[:8] + "...",
                "redirect_uri": self.config.redirect_uri,
                "scopes": self.config.scopes,
            },
        )
        return authorization_url

    async def login(self, code: str | None, state: str | None) -> bool:
        """Complete the login started by initiate_login().

        Args:
            code: Authorization code from the callback
            state: State parameter from the callback

        Returns:
            True only if state validation, token exchange, session save and
            profile fetch all succeeded
        """
        self.loading = True
        self.clear_error()
        self.notice = None

        try:
            # Read-then-delete: the attempt is consumed whatever happens next
            attempt = await self.pending.take()

            if not code:
                raise MissingCodeError("No authorization code received from GitHub")
            if not state:
                raise MissingStateError("No state parameter received from GitHub")

            if attempt.state is None or not hmac.compare_digest(
                attempt.state.encode("utf-8"), state.encode("utf-8")
            ):
                logger.warning(
                    "OAuth state mismatch",
                    extra={
                        "received": state[:8] + "...",
                        "pending": bool(attempt.state),
                    },
                )
                raise StateMismatchError(
                    "Invalid state parameter - possible CSRF attack or expired session"
                )

            if not attempt.code_verifier:
                raise FlowInterruptedError(
                    "Missing code verifier - OAuth flow may have been interrupted"
                )

            access_token = await self.exchanger.exchange_code_for_token(code, attempt.code_verifier)
            self._session = await self.sessions.save(access_token)

            user = await self.github.get_current_user(access_token)
            await self.sessions.save_user(user)
            self.user = user
            self._session = self._session.model_copy(update={"user": user})
        except Exception as e:
            await self._abort_login(e)
            return False
        finally:
            self.loading = False

        oauth_logins_total.labels(outcome="success").inc()
        logger.info("Login successful", extra={"login": self.user.login if self.user else None})
        return True

    async def restore(self) -> bool:
        """Load an existing session for this browser.

        Fetches the profile if the session has none cached. Expired sessions
        are silently treated as logged out.

        Returns:
            Whether the browser is authenticated
        """
        session = await self.sessions.load()
        if session is None:
            self._session = None
            self.user = None
            return False

        self._session = session
        self.user = session.user

        if self.user is None:
            try:
                user = await self.github.get_current_user(session.access_token)
            except TokenInvalidError:
                # Invalidation signal already ran the logout path
                return False
            except AuthError as e:
                logger.error("Error fetching user", extra={"error": str(e)})
                self.error = PROFILE_ERROR
                return self.is_authenticated

            await self.sessions.save_user(user)
            self.user = user
            self._session = session.model_copy(update={"user": user})

        return self.is_authenticated

    async def logout(self, reason: str = "logout") -> None:
        """Clear the session and cached user.

        Local logout never depends on GitHub: token revocation is attempted
        afterwards and its failure is only logged.
        """
        session = self._session or await self.sessions.load()

        self.user = None
        self._session = None
        self.error = None
        self.last_failure = None

        # Only an explicit logout abandons a login started in the meantime
        await self.sessions.clear(reason=reason, keep_pending=reason != "logout")
        logger.info("User logged out", extra={"reason": reason})

        if session is None or reason != "logout":
            return

        try:
            await self.exchanger.revoke_token(session.access_token)
        except Exception as e:
            logger.error(f"Token revocation failed (non-critical): {type(e).__name__}")

    def clear_error(self) -> None:
        self.error = None
        self.last_failure = None

    def close(self) -> None:
        """Detach from the session store's invalidation signal."""
        self._unsubscribe()

    async def _on_token_invalid(self, reason: str) -> None:
        logger.info("Received token invalid signal, logging out", extra={"reason": reason})
        await self.logout(reason=reason)
        self.notice = INVALIDATED_NOTICE

    async def _abort_login(self, failure: Exception) -> None:
        self._record_failure(failure)
        oauth_logins_total.labels(outcome=_outcome(failure)).inc()

        if isinstance(failure, AuthError):
            logger.warning(
                "Login failed",
                extra={"error_type": type(failure).__name__, "user_message": self.error},
            )
        else:
            logger.exception("Unexpected login failure")

        try:
            await self.pending.clear()
            if self._session is not None:
                # Token obtained but profile fetch failed: do not keep half a login
                self._session = None
                self.user = None
                await self.sessions.clear(reason="login_failed")
        except Exception:
            logger.exception("Failed to scrub partial login state")

    def _record_failure(self, failure: Exception) -> None:
        self.last_failure = failure
        self.error = str(failure) if isinstance(failure, AuthError) else GENERIC_LOGIN_ERROR


def _outcome(failure: Exception) -> str:
    if isinstance(failure, ConfigurationError):
        return "configuration_error"
    if isinstance(failure, ProviderError):
        return "provider_error"
    if isinstance(failure, ProtocolError):
        return "protocol_error"
    if isinstance(failure, TransportError):
        return "transport_error"
    if isinstance(failure, TokenInvalidError):
        return "token_invalid"
    return "unexpected_error"
