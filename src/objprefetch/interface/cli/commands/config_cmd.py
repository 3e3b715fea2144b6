"""Config command - Manage objprefetch configuration."""

from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel

from objprefetch.foundation.config import get_config, load_config, save_default_config

console = Console()


def _get_nested(obj: object, key: str) -> object:
    """Get a nested attribute using dot notation.

    Args:
        obj: The object to traverse
        key: Dot-separated path like 'prefetch.helper'

    Returns:
        The value at the path, or raises KeyError if not found
    """
    current = obj
    for part in key.split("."):
        if hasattr(current, part):
            current = getattr(current, part)
        else:
            raise KeyError(f"Key not found: {key}")
    return current


@click.group()
def config() -> None:
    """Manage objprefetch configuration.

    Configuration is loaded from (in priority order):
    1. Environment variables (OBJPREFETCH_*)
    2. .objprefetch/config.yaml (project-local)
    3. ~/.objprefetch/config.yaml (user-global)
    4. Built-in defaults

    Examples:

        objprefetch config show
        objprefetch config init
        objprefetch config get prefetch.helper

    Environment overrides:

        OBJPREFETCH_PREFETCH_ENABLED=false objprefetch run ...
        OBJPREFETCH_PREFETCH_HELPER=/opt/objfs/bin/objfsutil objprefetch run ...
    """
    pass


@config.command()
@click.option("--path", type=click.Path(), help="Config file path to show")
def show(path: str | None) -> None:
    """Show current configuration.

    Examples:
        objprefetch config show
        objprefetch config show --path ~/.objprefetch/config.yaml
    """
    cfg = load_config(path) if path else get_config()
    pf = cfg.prefetch

    console.print(Panel("[bold]objprefetch Configuration[/bold]", border_style="cyan"))

    console.print("\n[cyan]Prefetch[/cyan]")
    console.print(f"  Enabled: {pf.enabled}")
    console.print(f"  Helper: {pf.helper} {pf.subcommand}")
    console.print(f"  Sidecars: *{pf.declaration_suffix} -> *{pf.sidecar_suffix}")
    console.print(f"  Transport: {pf.transport} ({pf.encoding})")
    console.print(f"  Failure exit code: {pf.failure_exit_code}")

    console.print(f"\n[cyan]Debug[/cyan]: {cfg.debug}")

    console.print("\n[dim]Config sources:[/dim]")
    for candidate in (Path(".objprefetch/config.yaml"), Path.home() / ".objprefetch" / "config.yaml"):
        if candidate.exists():
            console.print(f"  [green]✓[/green] {candidate}")
        else:
            console.print(f"  [dim]○[/dim] {candidate} (not found)")


@config.command()
@click.option(
    "--path",
    type=click.Path(),
    default=".objprefetch/config.yaml",
    help="Config file path (default: .objprefetch/config.yaml)",
)
@click.option("--global", "global_config", is_flag=True, help="Create in ~/.objprefetch/ instead")
def init(path: str, global_config: bool) -> None:
    """Create default config file.

    Examples:
        objprefetch config init
        objprefetch config init --global
    """
    config_path = Path.home() / ".objprefetch" / "config.yaml" if global_config else path
    saved_path = save_default_config(config_path)
    console.print(f"[green]✓[/green] Config file created: {saved_path}")


@config.command()
@click.argument("key")
@click.option("--path", type=click.Path(), help="Config file path")
def get(key: str, path: str | None) -> None:
    """Get a configuration value.

    Examples:
        objprefetch config get prefetch.helper
        objprefetch config get debug
    """
    cfg = load_config(path) if path else get_config()

    try:
        value = _get_nested(cfg, key)
        # Print value without Rich formatting for scripting
        click.echo(value)
    except KeyError:
        console.print(f"[red]✗[/red] Key not found: {key}")
        console.print("\n[dim]Available top-level keys:[/dim]")
        console.print("  prefetch, debug")
        raise SystemExit(1) from None
