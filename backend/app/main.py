import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware

from backend.app.api.errors import error_response, register_exception_handlers
from backend.app.api.v1.endpoints import health
from backend.app.api.v1.router import api_router
from backend.app.core.config import Settings, get_settings
from backend.app.core.logging_config import configure_logging
from backend.app.db import create_engine_from_settings, create_session_factory, init_models
from backend.app.services.auth import SessionManager
from backend.app.services.credentials import CredentialManager
from backend.app.services.drive115 import UpstreamClientFactory
from backend.app.services.qr_login import QRLoginBroker

logger = logging.getLogger(__name__)


def create_app(
        settings: Optional[Settings] = None,
        upstream_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the application.

    ``upstream_transport`` replaces the network transport of every 115 client
    (tests pass an ``httpx.MockTransport``).
    """
    settings = settings or get_settings()
    configure_logging(settings)

    engine = create_engine_from_settings(settings)
    session_factory = create_session_factory(engine)
    credential_manager = CredentialManager(session_factory)

    # --- LIFESPAN: create tables on startup, release the pool on shutdown ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_models(engine)
        logger.info("%s %s started (%s)", settings.PROJECT_NAME, settings.PROJECT_VERSION, settings.ENVIRONMENT)
        yield
        await engine.dispose()
        logger.info("%s stopped", settings.PROJECT_NAME)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        lifespan=lifespan,
    )

    app.state.session_manager = SessionManager(session_factory, settings)
    app.state.credential_manager = credential_manager
    app.state.client_factory = UpstreamClientFactory(
        settings, credential_manager, transport=upstream_transport
    )
    app.state.qr_broker = QRLoginBroker(settings, transport=upstream_transport)

    @app.middleware("http")
    async def request_deadline(request: Request, call_next):
        try:
            return await asyncio.wait_for(call_next(request), timeout=settings.REQUEST_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning("Request deadline exceeded: %s %s", request.method, request.url.path)
            return error_response(request, 504, "timeout", "Request timed out")

    # Set up CORS
    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.BACKEND_CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(api_router, prefix=settings.API_V1_STR)

    return app


app = create_app()
