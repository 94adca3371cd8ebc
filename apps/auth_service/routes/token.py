"""Same-origin token exchange proxy.

GitHub's token endpoint does not answer cross-origin browser requests, so a
browser-side client posts its code and verifier here. The body is forwarded
verbatim; the client secret (if any) is added server-side.

SECURITY: never log the code or verifier.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from apps.auth_service.dependencies import ControllerFactory, get_controller_factory
from apps.auth_service.schemas import ErrorResponse, TokenRequest, TokenResponse
from libs.github_auth.exceptions import (
    ExchangeTimeoutError,
    MalformedTokenResponseError,
    ProviderError,
    TransportError,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/api/auth/token",
    response_model=TokenResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
)
async def exchange_token(
    body: TokenRequest,
    factory: ControllerFactory = Depends(get_controller_factory),
) -> Any:
    """Exchange an authorization code for an access token on behalf of a browser."""
    if not body.code:
        return JSONResponse(status_code=400, content={"error": "Missing authorization code"})

    try:
        return await factory.exchanger.forward(body.forwarded_fields())
    except ProviderError as e:
        return JSONResponse(
            status_code=400,
            content={"error": e.error, "error_description": e.description},
        )
    except ExchangeTimeoutError as e:
        return JSONResponse(
            status_code=504,
            content={"error": "timeout", "error_description": str(e)},
        )
    except MalformedTokenResponseError:
        return JSONResponse(status_code=502, content={"error": "Failed to obtain access token"})
    except TransportError:
        logger.error("Token proxy could not reach GitHub")
        return JSONResponse(status_code=502, content={"error": "Token exchange failed"})
