"""Switchboard CLI: the main entry point."""

from __future__ import annotations

import json
import logging

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from switchboard import __version__
from switchboard.config.constants import DEFAULT_PORT

app = typer.Typer(
    name="switchboard",
    help="Task queue and agent dispatch service.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

DEFAULT_URL = f"http://localhost:{DEFAULT_PORT}"


@app.callback(invoke_without_command=True)
def version_callback(
    version: bool = typer.Option(False, "--version", "-v", help="Show version"),
):
    if version:
        console.print(f"switchboard [dim]v{__version__}[/dim]")
        raise typer.Exit()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from settings)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default from settings)"),
):
    """Run the HTTP server in the foreground."""
    import uvicorn

    from switchboard.config.settings import get_settings
    from switchboard.server.app import create_app

    settings = get_settings()
    if host is not None:
        settings.server.host = host
    if port is not None:
        settings.server.port = port

    _configure_logging(settings.log_level)
    _show_settings(settings)

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        access_log=False,
        log_config=None,
    )


def _show_settings(settings) -> None:
    """Print the effective configuration."""
    console.print()
    console.print(f"  [bold]Service:[/bold]  {settings.service_name} v{__version__}")
    console.print(f"  [bold]Listen:[/bold]   http://{settings.server.host}:{settings.server.port}")
    console.print(f"  [bold]Queue:[/bold]    {settings.queue.queue_name}")
    console.print(
        f"  [bold]Agents:[/bold]   "
        f"{'defaults' if settings.agents.register_defaults else 'none'} at startup"
    )
    providers = []
    if settings.providers.openai_api_key:
        providers.append("OpenAI")
    if settings.providers.anthropic_api_key:
        providers.append("Anthropic")
    providers.append(f"Ollama ({settings.providers.ollama_base_url})")
    console.print(f"  [bold]Providers:[/bold] {', '.join(providers)}")
    console.print()


@app.command()
def info(
    url: str = typer.Option(DEFAULT_URL, "--url", "-u", help="Server base URL"),
):
    """List the tools and resources a running server exposes."""
    try:
        response = httpx.get(f"{url.rstrip('/')}/mcp/info", timeout=10.0)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        console.print(f"[red]Could not reach server:[/red] {exc}")
        raise typer.Exit(1)

    data = response.json()
    console.print(f"[bold]{data['name']}[/bold] v{data['version']}  [dim]{data.get('description', '')}[/dim]")

    tools = Table(title="Tools", show_lines=False)
    tools.add_column("Name", style="cyan")
    tools.add_column("Description")
    tools.add_column("Required")
    for tool in data.get("tools", []):
        required = ", ".join(tool.get("inputSchema", {}).get("required", []))
        tools.add_row(tool["name"], tool.get("description", ""), required or "[dim]-[/dim]")
    console.print(tools)

    resources = Table(title="Resources")
    resources.add_column("Name", style="cyan")
    resources.add_column("Description")
    for resource in data.get("resources", []):
        resources.add_row(resource["name"], resource.get("description", ""))
    console.print(resources)


@app.command()
def call(
    tool: str = typer.Argument(..., help="Tool name, e.g. get_agent_stats"),
    arguments: str = typer.Argument("{}", help="JSON object with the tool input"),
    url: str = typer.Option(DEFAULT_URL, "--url", "-u", help="Server base URL"),
):
    """Invoke a tool on a running server and print the response."""
    try:
        body = json.loads(arguments)
    except json.JSONDecodeError as exc:
        console.print(f"[red]Invalid JSON arguments:[/red] {exc}")
        raise typer.Exit(2)

    try:
        response = httpx.post(f"{url.rstrip('/')}/mcp/tool/{tool}", json=body, timeout=130.0)
    except httpx.HTTPError as exc:
        console.print(f"[red]Could not reach server:[/red] {exc}")
        raise typer.Exit(1)

    console.print_json(response.text)
    if response.is_error:
        raise typer.Exit(1)
