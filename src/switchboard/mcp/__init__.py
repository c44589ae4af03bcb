"""Tool/resource protocol exposed over HTTP."""

from switchboard.mcp.protocol import (
    MCPResource,
    MCPServer,
    MCPTool,
    ResourceNotFoundError,
    ToolInputError,
    ToolNotFoundError,
)
from switchboard.mcp.tools import create_mcp_server

__all__ = [
    "MCPResource",
    "MCPServer",
    "MCPTool",
    "ResourceNotFoundError",
    "ToolInputError",
    "ToolNotFoundError",
    "create_mcp_server",
]
