"""Authentication status for the current browser."""

from fastapi import APIRouter, Depends, Request

from apps.auth_service.dependencies import ControllerFactory, get_controller_factory
from apps.auth_service.schemas import AuthStatusResponse
from config.settings import Settings, get_settings

router = APIRouter()


@router.get("/api/auth/status", response_model=AuthStatusResponse, response_model_exclude_none=True)
async def auth_status(
    request: Request,
    settings: Settings = Depends(get_settings),
    factory: ControllerFactory = Depends(get_controller_factory),
) -> AuthStatusResponse:
    """Report whether this browser has a live session, with the cached profile."""
    browser_id = request.cookies.get(settings.cookie_name)
    if not browser_id:
        return AuthStatusResponse(authenticated=False)

    controller = factory(browser_id)
    try:
        authenticated = await controller.restore()
    finally:
        controller.close()

    return AuthStatusResponse(
        authenticated=authenticated,
        user=controller.user if authenticated else None,
        notice=controller.notice,
    )
