"""Logout endpoint with cookie clearing."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from apps.auth_service.cookies import clear_browser_cookie
from apps.auth_service.dependencies import ControllerFactory, get_controller_factory
from config.settings import Settings, get_settings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/auth/logout")
async def logout(
    request: Request,
    settings: Settings = Depends(get_settings),
    factory: ControllerFactory = Depends(get_controller_factory),
) -> Any:
    """Clear the session and the browser cookie.

    Idempotent: succeeds without a cookie or session. Token revocation at
    GitHub is best effort and never fails the logout.

    Returns:
        {"success": true} with the cookie expired
    """
    browser_id = request.cookies.get(settings.cookie_name)

    if browser_id:
        controller = factory(browser_id)
        try:
            await controller.logout()
        finally:
            controller.close()

        logger.info(
            "User logged out, cookie cleared",
            extra={"browser": browser_id[:8] + "..."},
        )

    response = JSONResponse(content={"success": True})
    clear_browser_cookie(response, settings)
    return response
