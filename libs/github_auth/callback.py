"""OAuth callback handling as an explicit state machine.

Phases: IDLE -> CHECKING -> {SUCCESS, FAILURE}

State validation itself lives in AuthStateController.login(); this handler
decides whether the callback may reach it at all and turns the outcome into
a redirect target or a user-facing message.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

from libs.github_auth.controller import AuthStateController
from libs.github_auth.exceptions import AuthError, ProviderError

logger = logging.getLogger(__name__)

SANITIZED_ERROR = "Authentication failed. Please try again later."


class CallbackPhase(StrEnum):
    IDLE = "idle"
    CHECKING = "checking"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class CallbackOutcome:
    """Terminal result of one callback invocation."""

    phase: CallbackPhase
    redirect_to: str | None = None
    error: str | None = None
    provider_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.phase is CallbackPhase.SUCCESS


class CallbackHandler:
    """Processes the query parameters GitHub sends to the callback route."""

    def __init__(self, controller: AuthStateController, home_path: str = "/", debug: bool = False):
        self.controller = controller
        self.home_path = home_path
        self.debug = debug
        self.phase = CallbackPhase.IDLE

    async def handle(self, params: Mapping[str, str]) -> CallbackOutcome:
        """Run the callback.

        Args:
            params: Callback query parameters (code, state, error, error_description)

        Returns:
            CallbackOutcome in phase SUCCESS or FAILURE
        """
        self.phase = CallbackPhase.CHECKING

        provider_error = params.get("error")
        if provider_error:
            description = params.get("error_description")
            logger.warning("GitHub returned an OAuth error", extra={"error": provider_error})
            await self.controller.pending.clear()
            return self._fail(
                str(ProviderError(provider_error, description)), provider_error=provider_error
            )

        if await self.controller.restore():
            # Re-visited callback URL (back button, bookmark) with a live session
            await self.controller.pending.clear()
            logger.info("Callback hit with an active session, skipping exchange")
            return self._succeed()

        code = params.get("code")
        state = params.get("state")
        if not code:
            await self.controller.pending.clear()
            return self._fail("No authorization code received from GitHub. Authentication failed.")
        if not state:
            await self.controller.pending.clear()
            return self._fail("No state parameter received from GitHub. Authentication failed.")

        if await self.controller.login(code, state):
            return self._succeed()

        return self._fail(self._failure_message())

    def _failure_message(self) -> str:
        failure = self.controller.last_failure
        message = self.controller.error or SANITIZED_ERROR
        if self.debug:
            return message
        if isinstance(failure, AuthError) and failure.user_safe:
            return message
        return SANITIZED_ERROR

    def _succeed(self) -> CallbackOutcome:
        self.phase = CallbackPhase.SUCCESS
        return CallbackOutcome(phase=self.phase, redirect_to=self.home_path)

    def _fail(self, message: str, provider_error: str | None = None) -> CallbackOutcome:
        self.phase = CallbackPhase.FAILURE
        logger.info("OAuth callback failed", extra={"reason": message})
        return CallbackOutcome(phase=self.phase, error=message, provider_error=provider_error)
