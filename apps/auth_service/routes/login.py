"""Login initiation: PKCE attempt + redirect to GitHub."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from apps.auth_service.cookies import set_browser_cookie
from apps.auth_service.dependencies import ControllerFactory, get_controller_factory
from config.settings import Settings, get_settings
from libs.github_auth.pkce import generate_browser_id

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/auth/login")
async def login(
    request: Request,
    settings: Settings = Depends(get_settings),
    factory: ControllerFactory = Depends(get_controller_factory),
) -> Any:
    """Initiate GitHub OAuth login.

    Generates PKCE verifier/challenge and state, stores them for this
    browser, and redirects to GitHub's authorization endpoint. A second
    login from the same browser replaces the first attempt.

    Returns:
        RedirectResponse to GitHub, or 500 when OAuth is not configured
    """
    browser_id = request.cookies.get(settings.cookie_name) or generate_browser_id()

    controller = factory(browser_id)
    try:
        authorization_url = await controller.initiate_login()
    finally:
        controller.close()

    if authorization_url is None:
        return JSONResponse(status_code=500, content={"error": controller.error})

    response = RedirectResponse(url=authorization_url, status_code=302)
    set_browser_cookie(response, browser_id, settings)
    return response
