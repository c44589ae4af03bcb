"""Tests for the switchboard CLI."""

from __future__ import annotations

from unittest.mock import patch

import httpx
from typer.testing import CliRunner

from switchboard import __version__
from switchboard.cli.main import app

runner = CliRunner()

INFO = {
    "name": "agent-orchestration",
    "version": "0.1.0",
    "description": "AI Agent Orchestration Layer for multi-brand system",
    "tools": [
        {"name": "get_task_status", "description": "Get the status", "inputSchema": {"required": ["taskId"]}},
        {"name": "get_agent_stats", "description": "Get statistics", "inputSchema": {}},
    ],
    "resources": [{"name": "agents", "description": "List of agents"}],
}


def _response(status: int, payload, method: str = "GET", url: str = "http://localhost:3020/mcp/info"):
    return httpx.Response(status, json=payload, request=httpx.Request(method, url))


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_info_prints_tools():
    with patch("switchboard.cli.main.httpx.get", return_value=_response(200, INFO)) as get:
        result = runner.invoke(app, ["info", "--url", "http://localhost:3020/"])

    assert result.exit_code == 0
    get.assert_called_once_with("http://localhost:3020/mcp/info", timeout=10.0)
    assert "get_task_status" in result.output
    assert "taskId" in result.output
    assert "agents" in result.output


def test_info_unreachable():
    with patch("switchboard.cli.main.httpx.get", side_effect=httpx.ConnectError("refused")):
        result = runner.invoke(app, ["info"])
    assert result.exit_code == 1
    assert "Could not reach server" in result.output


def test_call_posts_json():
    resp = _response(200, {"success": True, "status": "pending"}, "POST", "http://localhost:3020/mcp/tool/get_task_status")
    with patch("switchboard.cli.main.httpx.post", return_value=resp) as post:
        result = runner.invoke(app, ["call", "get_task_status", '{"taskId": "abc"}'])

    assert result.exit_code == 0
    args, kwargs = post.call_args
    assert args[0] == "http://localhost:3020/mcp/tool/get_task_status"
    assert kwargs["json"] == {"taskId": "abc"}
    assert "pending" in result.output


def test_call_invalid_json():
    result = runner.invoke(app, ["call", "get_task_status", "{oops"])
    assert result.exit_code == 2
    assert "Invalid JSON" in result.output


def test_call_error_status_exits_nonzero():
    resp = _response(404, {"error": "Tool not found: nope"}, "POST", "http://localhost:3020/mcp/tool/nope")
    with patch("switchboard.cli.main.httpx.post", return_value=resp):
        result = runner.invoke(app, ["call", "nope"])
    assert result.exit_code == 1
    assert "Tool not found" in result.output


def test_serve_runs_uvicorn(test_settings):
    with (
        patch("switchboard.config.settings.get_settings", return_value=test_settings),
        patch("uvicorn.run") as run,
        patch("switchboard.cli.main._configure_logging"),
    ):
        result = runner.invoke(app, ["serve", "--port", "3999"])

    assert result.exit_code == 0, result.output
    _, kwargs = run.call_args
    assert kwargs["port"] == 3999
    assert kwargs["host"] == "0.0.0.0"
