"""HTTP transport for the tool/resource protocol."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from switchboard.mcp.protocol import (
    MCPServer,
    ResourceNotFoundError,
    ToolInputError,
    ToolNotFoundError,
)

logger = logging.getLogger("switchboard.server.mcp")

mcp_router = APIRouter(prefix="/mcp", tags=["MCP"])


def _server(request: Request) -> MCPServer:
    return request.app.state.mcp_server


@mcp_router.get("/info")
async def mcp_info(request: Request) -> dict[str, Any]:
    return _server(request).info()


@mcp_router.post("/tool/{tool_name}")
async def call_tool(tool_name: str, request: Request) -> Any:
    body = await request.body()
    try:
        arguments = json.loads(body) if body.strip() else {}
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Request body must be valid JSON"})
    if not isinstance(arguments, dict):
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object"})

    try:
        return await _server(request).call_tool(tool_name, arguments)
    except ToolNotFoundError as exc:
        return JSONResponse(status_code=404, content={"error": str(exc)})
    except ToolInputError as exc:
        return JSONResponse(
            status_code=400, content={"error": str(exc), "details": exc.details}
        )
    except Exception as exc:
        logger.exception("Tool %s failed", tool_name)
        return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__})


async def _read_resource(request: Request, name: str, uri: str) -> Any:
    try:
        return await _server(request).read_resource(name, uri)
    except ResourceNotFoundError as exc:
        return JSONResponse(status_code=404, content={"error": str(exc)})
    except Exception as exc:
        logger.exception("Resource %s failed", name)
        return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__})


@mcp_router.get("/resource/{resource_name}")
async def read_resource(resource_name: str, request: Request) -> Any:
    return await _read_resource(request, resource_name, "")


@mcp_router.get("/resource/{resource_name}/{uri:path}")
async def read_resource_uri(resource_name: str, uri: str, request: Request) -> Any:
    return await _read_resource(request, resource_name, uri)
