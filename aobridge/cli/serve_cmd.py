"""aobridge serve: run the REST API server.

Start: aobridge serve
       aobridge serve --host 0.0.0.0 --port 3001
"""

from __future__ import annotations

import typer
from rich.console import Console

console = Console()


def serve_command(
    host: str = typer.Option(None, "--host", "-H", help="Bind address (overrides config)."),  # noqa: B008
    port: int = typer.Option(None, "--port", "-p", help="Bind port (overrides config)."),  # noqa: B008
) -> None:
    """Start the aobridge REST API server."""
    import uvicorn

    from aobridge.api.app import create_api_app
    from aobridge.cli.app import state
    from aobridge.config import load_config

    config = load_config(state.config_path)

    bind_host = host or config.gateway.host
    bind_port = port or config.gateway.port

    if bind_host == "0.0.0.0":
        console.print(
            "[yellow]Warning: the API has no authentication and is bound to all interfaces.[/yellow]"
        )
    if not config.telegram.token.get_secret_value():
        console.print("[yellow]No Telegram token configured; the bot will stay inactive.[/yellow]")

    console.print(f"[bold cyan]aobridge API server[/bold cyan] starting on {bind_host}:{bind_port}")

    app = create_api_app(config)
    uvicorn.run(
        app,
        host=bind_host,
        port=bind_port,
        log_level="info",
        log_config=None,
        access_log=False,
    )
