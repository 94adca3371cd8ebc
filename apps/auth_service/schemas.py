"""Request/response models for the auth service API."""

from typing import Any

from pydantic import BaseModel, ConfigDict

from libs.github_auth.session_store import GitHubUser


class TokenRequest(BaseModel):
    """Body of POST /api/auth/token. Unknown fields are forwarded verbatim."""

    model_config = ConfigDict(extra="allow")

    code: str | None = None
    code_verifier: str | None = None
    client_id: str | None = None
    redirect_uri: str | None = None

    def forwarded_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TokenResponse(BaseModel):
    access_token: str


class ErrorResponse(BaseModel):
    error: str
    error_description: str | None = None


class AuthStatusResponse(BaseModel):
    authenticated: bool
    user: GitHubUser | None = None
    notice: str | None = None


class LogoutResponse(BaseModel):
    success: bool = True
