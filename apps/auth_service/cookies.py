"""Browser-id cookie handling.

The cookie carries only an opaque random id; tokens stay server-side.
SameSite=Lax so the cookie survives GitHub's top-level redirect to /callback.
"""

from fastapi import Response

from config.settings import Settings


def set_browser_cookie(response: Response, browser_id: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=browser_id,
        max_age=settings.session_ttl_seconds,
        path="/",
        domain=settings.cookie_domain,
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )


def clear_browser_cookie(response: Response, settings: Settings) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value="",
        max_age=0,  # Expire immediately
        path="/",
        domain=settings.cookie_domain,
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
