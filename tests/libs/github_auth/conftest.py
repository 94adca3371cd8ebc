"""Fixtures wiring an AuthStateController to in-memory storage and mocked GitHub calls."""

from unittest.mock import AsyncMock

import pytest

from libs.github_auth.controller import AuthStateController
from libs.github_auth.github_api import GitHubClient
from libs.github_auth.pending_attempts import PendingAttemptStore
from libs.github_auth.session_store import GitHubUser, SessionStore
from libs.github_auth.token_exchange import TokenExchangeClient


@pytest.fixture()
def octocat() -> GitHubUser:
    return GitHubUser(id=1, login="octocat", name="The Octocat")


@pytest.fixture()
def exchanger() -> AsyncMock:
    mock = AsyncMock(spec=TokenExchangeClient)
    mock.exchange_code_for_token.return_value = "gho_token"
    mock.revoke_token.return_value = True
    return mock


@pytest.fixture()
def github(octocat) -> AsyncMock:
    mock = AsyncMock(spec=GitHubClient)
    mock.get_current_user.return_value = octocat
    return mock


@pytest.fixture()
def pending(browser_storage) -> PendingAttemptStore:
    return PendingAttemptStore(browser_storage)


@pytest.fixture()
def sessions(browser_storage) -> SessionStore:
    return SessionStore(browser_storage)


@pytest.fixture()
def controller(oauth_config, pending, sessions, exchanger, github) -> AuthStateController:
    ctrl = AuthStateController(oauth_config, pending, sessions, exchanger, github)
    yield ctrl
    ctrl.close()
