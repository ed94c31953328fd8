"""
FastAPI app factory for the volunteer-manager server.

Creates and configures the FastAPI application with:
- The action dispatcher and its identity resolver
- CORS middleware
- Built-in health and identity actions
- Routers provided by the application (Data Table APIs, actions)
"""

import logging
from contextlib import asynccontextmanager
from typing import Sequence

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..auth.identity import ApiKeyIdentityResolver, IdentityResolver
from ..config import PortalConfig
from .actions.action import ActionDispatcher
from .api import health, identity

logger = logging.getLogger(__name__)


def create_app(
    config: PortalConfig | None = None,
    routers: Sequence[APIRouter] = (),
    identity_resolver: IdentityResolver | None = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        config: Server configuration (defaults when omitted)
        routers: Additional routers to mount under /api
        identity_resolver: Resolves request users; defaults to the configured API keys

    Returns:
        Configured FastAPI application
    """
    config = config or PortalConfig.default()

    if identity_resolver is None:
        identity_resolver = ApiKeyIdentityResolver.from_config(config.api_keys)

    dispatcher = ActionDispatcher.from_config(config.actions, identity_resolver)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle."""
        logger.info(
            f"Volunteer manager {__version__} ready "
            f"({len(app.routes)} routes, {len(config.api_keys)} API keys)"
        )
        yield
        logger.info("Volunteer manager stopped")

    app = FastAPI(
        title="Volunteer Manager",
        description="Typed actions and Data Table APIs for volunteer management",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/api")
    app.include_router(identity.router, prefix="/api")

    for router in routers:
        app.include_router(router, prefix="/api")

    return app
