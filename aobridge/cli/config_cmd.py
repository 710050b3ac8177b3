"""aobridge config: view and modify configuration.

Subcommands:
  aobridge config show   Print current config (secrets masked)
  aobridge config set    Update a config value by dot-path
  aobridge config path   Print the config file path
"""

from __future__ import annotations

import json
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from aobridge.config import BridgeConfig, get_config_path, load_config, save_config

console = Console()
config_app = typer.Typer(no_args_is_help=True)

_SECRET_KEYS = frozenset({"token", "webhook_secret", "api_key", "rapidapi_key"})


def mask_secrets(obj: Any, key: str = "") -> Any:
    """Recursively mask string values stored under known secret keys."""
    if isinstance(obj, dict):
        return {k: mask_secrets(v, k) for k, v in obj.items()}
    if isinstance(obj, list):
        return [mask_secrets(item, key) for item in obj]
    if isinstance(obj, str) and obj and key in _SECRET_KEYS:
        if len(obj) <= 8:
            return "***"
        return obj[:4] + "***" + obj[-4:]
    return obj


@config_app.command(name="show")
def config_show() -> None:
    """Print current configuration (secrets masked)."""
    from aobridge.cli.app import state

    config = load_config(state.config_path)
    masked = mask_secrets(config.model_dump(mode="json"))
    formatted = json.dumps(masked, indent=2, ensure_ascii=False)

    console.print(
        Panel(
            Syntax(formatted, "json", theme="monokai"),
            title="[bold cyan]aobridge Config[/bold cyan]",
            subtitle=f"[dim]{state.config_path or get_config_path()}[/dim]",
            expand=False,
        )
    )


@config_app.command(name="set")
def config_set(
    key: str = typer.Argument(help="Dot-separated config path (e.g. telegram.token)."),  # noqa: B008
    value: str = typer.Argument(help="New value to set."),  # noqa: B008
) -> None:
    """Update a configuration value by dot-path."""
    from aobridge.cli.app import state

    config = load_config(state.config_path)
    data = config.model_dump(mode="json")

    parts = key.split(".")
    target = data
    for part in parts[:-1]:
        if isinstance(target, dict) and part in target:
            target = target[part]
        else:
            console.print(f"[red]Error: Invalid config path '{key}'. '{part}' not found.[/red]")
            raise typer.Exit(1)

    final_key = parts[-1]
    if not isinstance(target, dict) or final_key not in target:
        console.print(f"[red]Error: Invalid config path '{key}'. '{final_key}' not found.[/red]")
        raise typer.Exit(1)
    target[final_key] = coerce_value(value, target[final_key])

    try:
        updated = BridgeConfig(**data)
    except ValidationError as exc:
        console.print(f"[red]Validation error: {exc}[/red]")
        raise typer.Exit(1) from exc

    save_config(updated, state.config_path)
    shown = mask_secrets({final_key: value})[final_key]
    console.print(f"[green]Updated[/green] {key} = {shown}")


@config_app.command(name="path")
def config_path() -> None:
    """Print the config file path."""
    from aobridge.cli.app import state

    console.print(str(state.config_path or get_config_path()))


def coerce_value(new: str, old: Any) -> Any:
    """Coerce a string value to match the type of the existing value."""
    if isinstance(old, bool):
        return new.lower() in ("true", "1", "yes")
    if isinstance(old, int):
        return int(new)
    if isinstance(old, float):
        return float(new)
    if isinstance(old, list):
        return [item.strip() for item in new.split(",") if item.strip()]
    return new
