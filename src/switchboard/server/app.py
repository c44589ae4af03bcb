"""FastAPI application factory."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI

from switchboard import __version__
from switchboard.config.constants import SERVICE_DESCRIPTION
from switchboard.mcp.tools import create_mcp_server
from switchboard.server.lifespan import lifespan
from switchboard.server.routes.health import health_router
from switchboard.server.routes.mcp import mcp_router

if TYPE_CHECKING:
    from switchboard.config.settings import Settings
    from switchboard.core.context import ServiceContext

logger = logging.getLogger("switchboard.server")


def create_app(settings: Settings, context: ServiceContext | None = None) -> FastAPI:
    """Build the FastAPI application.

    Without *context*, the lifespan creates the registry and queue at startup
    and shuts them down on exit. A supplied context is wired in immediately
    and remains owned by the caller.
    """
    app = FastAPI(
        title=settings.service_name,
        version=__version__,
        description=SERVICE_DESCRIPTION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    if context is not None:
        app.state.context = context
        app.state.mcp_server = create_mcp_server(context)

    app.include_router(health_router)
    app.include_router(mcp_router)
    return app
