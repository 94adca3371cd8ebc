"""FastAPI auth service for the Gist Manager GitHub OAuth flow.

This service owns the OAuth handshake so no secret and no token ever
reaches browser storage:
- /api/auth/login: Starts the authorization code flow with PKCE
- /callback: Validates state, exchanges the code, creates the session
- /api/auth/token: Same-origin proxy to GitHub's token endpoint
- /api/auth/status: Reports the current browser's session
- /api/auth/logout: Clears the session and cookie
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from prometheus_client import make_asgi_app

from apps.auth_service.dependencies import get_storage_backend
from apps.auth_service.routes import callback, login, logout, status, token
from config.settings import get_settings
from libs.github_auth.storage import MemoryBackend, run_sweeper

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Validate configuration and run the pending-attempt sweep."""
    current = get_settings()

    if not current.github_client_id:
        logger.warning("GITHUB_CLIENT_ID not set - login requests will fail with a configuration error")
    if not current.github_client_secret.get_secret_value():
        logger.info("GITHUB_CLIENT_SECRET not set - running as a public client (PKCE only)")
    if current.redis_url and not current.session_encryption_key.get_secret_value():
        logger.warning("SESSION_ENCRYPTION_KEY not set - access tokens stored unencrypted in Redis")

    backend = get_storage_backend()
    sweeper: asyncio.Task[None] | None = None
    if isinstance(backend, MemoryBackend):
        sweeper = asyncio.create_task(run_sweeper(backend, current.sweep_interval_seconds))

    logger.info("Auth service started")
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper
        logger.info("Auth service shutting down")


# Create FastAPI app
app = FastAPI(
    title="Gist Manager Auth Service",
    description="GitHub OAuth endpoints with PKCE",
    version="1.0.0",
    lifespan=lifespan,
)

# Include routers
app.include_router(login.router, tags=["auth"])
app.include_router(callback.router, tags=["auth"])
app.include_router(token.router, tags=["auth"])
app.include_router(status.router, tags=["auth"])
app.include_router(logout.router, tags=["auth"])

app.mount("/metrics", make_asgi_app())


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        JSON response with service status
    """
    return {"status": "healthy", "service": "auth_service"}
