"""Application lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI

from switchboard.core.context import build_context
from switchboard.mcp.tools import create_mcp_server

logger = logging.getLogger("switchboard.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service context on startup and shut it down on exit.

    A context placed on ``app.state`` before startup is used as-is and left
    for its creator to close.
    """
    settings = app.state.settings

    # --- Startup ---
    context = getattr(app.state, "context", None)
    owns_context = context is None
    if owns_context:
        context = await build_context(settings)
        app.state.context = context
        app.state.mcp_server = create_mcp_server(context)

    logger.info(
        "%s server starting: host=%s, port=%d",
        settings.service_name,
        settings.server.host,
        settings.server.port,
    )
    app.state.started_at = datetime.now(UTC)

    yield

    # --- Shutdown ---
    logger.info("%s server shutting down.", settings.service_name)
    if owns_context:
        try:
            await context.close()
        except Exception:
            logger.exception("Error during service shutdown")
