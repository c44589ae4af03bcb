"""Minimal tool/resource server: registration, discovery and dispatch."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

logger = logging.getLogger("switchboard.mcp.protocol")

ToolHandler = Callable[[Any], Awaitable[Any]]
ResourceHandler = Callable[[str], Awaitable[Any]]


class MCPError(Exception):
    """Base class for protocol-level errors."""


class ToolNotFoundError(MCPError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Tool not found: {name}")
        self.name = name


class ResourceNotFoundError(MCPError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Resource not found: {name}")
        self.name = name


class ToolInputError(MCPError):
    """Tool input failed schema validation."""

    def __init__(self, name: str, error: ValidationError) -> None:
        super().__init__(f"Invalid input for tool {name}")
        self.name = name
        self.details = error.errors(include_url=False, include_context=False)


@dataclass
class MCPTool:
    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler

    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema(by_alias=True)


@dataclass
class MCPResource:
    name: str
    description: str
    handler: ResourceHandler


class MCPServer:
    """Registry of tools and resources with validated dispatch."""

    def __init__(self, name: str, version: str, description: str = "") -> None:
        self.name = name
        self.version = version
        self.description = description
        self._tools: dict[str, MCPTool] = {}
        self._resources: dict[str, MCPResource] = {}

    def register_tool(self, tool: MCPTool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def register_resource(self, resource: MCPResource) -> None:
        if resource.name in self._resources:
            raise ValueError(f"Resource already registered: {resource.name}")
        self._resources[resource.name] = resource

    @property
    def tools(self) -> list[MCPTool]:
        return list(self._tools.values())

    @property
    def resources(self) -> list[MCPResource]:
        return list(self._resources.values())

    def info(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "tools": [
                {"name": t.name, "description": t.description, "inputSchema": t.input_schema()}
                for t in self._tools.values()
            ],
            "resources": [
                {"name": r.name, "description": r.description} for r in self._resources.values()
            ],
        }

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> Any:
        """Validate *arguments* against the tool's input model and run it."""
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        try:
            params = tool.input_model.model_validate(arguments or {})
        except ValidationError as exc:
            raise ToolInputError(name, exc) from exc

        logger.debug("Calling tool %s", name)
        return await tool.handler(params)

    async def read_resource(self, name: str, uri: str = "") -> Any:
        resource = self._resources.get(name)
        if resource is None:
            raise ResourceNotFoundError(name)
        return await resource.handler(uri)
