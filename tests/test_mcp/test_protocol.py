"""Tests for the MCPServer registry and dispatch."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from switchboard.mcp.protocol import (
    MCPResource,
    MCPServer,
    MCPTool,
    ResourceNotFoundError,
    ToolInputError,
    ToolNotFoundError,
)


class EchoInput(BaseModel):
    text: str
    times: int = 1


async def _echo(params: EchoInput):
    return {"echo": params.text * params.times}


async def _resource(uri: str):
    return {"uri": uri}


@pytest.fixture
def server() -> MCPServer:
    srv = MCPServer("test", "1.0.0", "Test server")
    srv.register_tool(MCPTool("echo", "Echo text", EchoInput, _echo))
    srv.register_resource(MCPResource("things", "Some things", _resource))
    return srv


def test_info_lists_tools_and_resources(server):
    info = server.info()
    assert info["name"] == "test"
    assert info["version"] == "1.0.0"
    assert info["tools"][0]["name"] == "echo"
    schema = info["tools"][0]["inputSchema"]
    assert schema["required"] == ["text"]
    assert info["resources"] == [{"name": "things", "description": "Some things"}]


def test_duplicate_registration_rejected(server):
    with pytest.raises(ValueError):
        server.register_tool(MCPTool("echo", "again", EchoInput, _echo))
    with pytest.raises(ValueError):
        server.register_resource(MCPResource("things", "again", _resource))


@pytest.mark.asyncio
async def test_call_tool(server):
    assert await server.call_tool("echo", {"text": "ab", "times": 2}) == {"echo": "abab"}


@pytest.mark.asyncio
async def test_call_unknown_tool(server):
    with pytest.raises(ToolNotFoundError):
        await server.call_tool("nope", {})


@pytest.mark.asyncio
async def test_call_tool_invalid_input(server):
    with pytest.raises(ToolInputError) as excinfo:
        await server.call_tool("echo", {"times": "many"})
    fields = {tuple(d["loc"]) for d in excinfo.value.details}
    assert ("text",) in fields
    assert ("times",) in fields


@pytest.mark.asyncio
async def test_read_resource(server):
    assert await server.read_resource("things", "a/b") == {"uri": "a/b"}
    with pytest.raises(ResourceNotFoundError):
        await server.read_resource("missing")
