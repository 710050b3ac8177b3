"""Main CLI application: registers all subcommands and global options."""

from __future__ import annotations

from pathlib import Path

import typer

from aobridge.logging import setup_logging

app = typer.Typer(
    name="aobridge",
    help="aobridge - Telegram, permanent storage and AO messaging bridge.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)


class _GlobalState:
    """Shared state set by the top-level callback, consumed by subcommands."""

    config_path: Path | None = None
    verbose: bool = False
    quiet: bool = False


state = _GlobalState()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show DEBUG-level logs."),  # noqa: B008
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress logs below WARNING."),  # noqa: B008
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to config.json."),  # noqa: B008
) -> None:
    """aobridge - Telegram, permanent storage and AO messaging bridge."""
    state.verbose = verbose
    state.quiet = quiet
    state.config_path = config
    setup_logging(verbose=verbose, quiet=quiet)


# Register subcommands, imported at bottom to avoid circular deps
from aobridge.cli.config_cmd import config_app  # noqa: E402
from aobridge.cli.serve_cmd import serve_command  # noqa: E402

app.command(name="serve", help="Start the REST API server.")(serve_command)
app.add_typer(config_app, name="config", help="View and modify configuration.")
