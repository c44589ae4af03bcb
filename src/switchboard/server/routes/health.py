"""Health and status endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from switchboard import __version__

health_router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    uptime_seconds: float


class StatusResponse(BaseModel):
    service: str
    version: str
    started_at: str
    server_host: str
    server_port: int
    total_agents: int
    agents_by_status: dict[str, int]
    queue: dict[str, int]
    workers: list[str]


@health_router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    settings = request.app.state.settings
    started_at = getattr(request.app.state, "started_at", datetime.now(UTC))
    uptime = (datetime.now(UTC) - started_at).total_seconds()
    return HealthResponse(
        status="ok",
        service=settings.service_name,
        version=__version__,
        uptime_seconds=round(uptime, 1),
    )


@health_router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    settings = request.app.state.settings
    context = request.app.state.context
    started_at = getattr(request.app.state, "started_at", context.started_at)
    stats = context.registry.get_agent_stats()

    return StatusResponse(
        service=settings.service_name,
        version=__version__,
        started_at=started_at.isoformat(),
        server_host=settings.server.host,
        server_port=settings.server.port,
        total_agents=stats["totalAgents"],
        agents_by_status=stats["agentsByStatus"],
        queue=await context.queue.get_queue_stats(),
        workers=sorted(context.queue.workers),
    )
