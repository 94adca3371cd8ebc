"""OAuth callback route."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from apps.auth_service.cookies import set_browser_cookie
from apps.auth_service.dependencies import ControllerFactory, get_controller_factory
from config.settings import Settings, get_settings
from libs.github_auth.callback import CallbackHandler
from libs.github_auth.pkce import generate_browser_id

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/callback")
async def callback(
    request: Request,
    settings: Settings = Depends(get_settings),
    factory: ControllerFactory = Depends(get_controller_factory),
) -> Any:
    """Handle GitHub's redirect back to the application.

    Validates state against this browser's pending attempt, exchanges the
    code, creates the session and redirects home.

    Query params:
        code, state: Authorization response
        error, error_description: Set by GitHub when the user denied access

    Returns:
        RedirectResponse to the home path, or 400 with the failure message
    """
    # Without a cookie there cannot be a pending attempt; a throwaway id
    # sends the request down the normal invalid-state path.
    browser_id = request.cookies.get(settings.cookie_name) or generate_browser_id()

    controller = factory(browser_id)
    handler = CallbackHandler(controller, home_path=settings.home_path, debug=settings.debug)
    try:
        outcome = await handler.handle(request.query_params)
    finally:
        controller.close()

    if not outcome.ok:
        logger.warning(
            "OAuth callback rejected",
            extra={"browser": browser_id[:8] + "...", "provider_error": outcome.provider_error},
        )
        content = {"error": outcome.error}
        if outcome.provider_error:
            content["provider_error"] = outcome.provider_error
        return JSONResponse(status_code=400, content=content)

    logger.info(
        "OAuth callback successful",
        extra={"browser": browser_id[:8] + "..."},
    )
    response = RedirectResponse(url=outcome.redirect_to or settings.home_path, status_code=302)
    # Cookie lifetime restarts with the session, not with the login attempt
    set_browser_cookie(response, browser_id, settings)
    return response
