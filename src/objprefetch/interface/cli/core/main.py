"""Main CLI entry point.

    objprefetch run a.d.ts b.ts          # warm the cache for two files
    objprefetch run -f files.txt          # file list from a file ('-' for stdin)
    objprefetch candidates -f files.txt   # show what would be requested
    objprefetch --persist-logs run -f files.txt
    objprefetch config show
"""

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.text import Text

from objprefetch import __version__
from objprefetch.foundation.config import ObjPrefetchConfig, get_config, load_config
from objprefetch.foundation.errors import PrefetchError, file_list_error
from objprefetch.foundation.logging import configure_logging, logging_trace
from objprefetch.interface.cli.commands.config_cmd import config
from objprefetch.interface.cli.core.async_runner import async_command
from objprefetch.interface.cli.core.error_handler import handle_error
from objprefetch.prefetch import (
    ExitStatus,
    Prefetcher,
    PrefetchState,
    build_candidate_set,
    detect_platform_capability,
)

# Everything we print goes to stderr; stdout is reserved for --json and `candidates`
console = Console(stderr=True)


def cli_entrypoint() -> None:
    """Wrapped entrypoint with global error handling.

    Called from pyproject.toml [project.scripts].
    """
    try:
        main(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        console.print("\n  [dim]Interrupted[/]")
        sys.exit(130)
    except PrefetchError as e:
        handle_error(e, json_output=False)


def _console_trace(message: str) -> None:
    # Text keeps names like foo[1].ts from being read as markup; soft_wrap keeps paths whole
    console.print(Text.assemble(("◇ ", "cyan"), message), soft_wrap=True)


def _load_config(ctx: click.Context, json_output: bool) -> ObjPrefetchConfig:
    """Load config and finish logging setup, reporting config errors nicely."""
    config_path = ctx.obj.get("config_path")
    try:
        cfg = load_config(config_path) if config_path else get_config()
    except PrefetchError as e:
        handle_error(e, json_output=json_output)
    configure_logging(
        debug=ctx.obj.get("debug", False),
        persist=ctx.obj.get("persist_logs", False),
        config_debug=cfg.debug,
    )
    return cfg


def _read_file_list(files: tuple[str, ...], from_file: str | None) -> list[str]:
    """Collect file names from arguments and an optional list file.

    Raises:
        PrefetchError: If the list file cannot be read
    """
    names = list(files)
    if from_file is None:
        return names

    if from_file == "-":
        text = click.get_text_stream("stdin").read()
    else:
        try:
            text = Path(from_file).read_text(encoding="utf-8")
        except OSError as e:
            raise file_list_error(from_file, e) from e

    names.extend(line for line in text.splitlines() if line)
    return names


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Explicit config file (default: .objprefetch/config.yaml)",
)
@click.option(
    "--persist-logs",
    is_flag=True,
    help="Keep a session log in .objprefetch/logs/ (run, candidates)",
)
@click.version_option(__version__, prog_name="objprefetch")
@click.pass_context
def main(
    ctx: click.Context,
    debug: bool,
    config_path: str | None,
    persist_logs: bool,
) -> None:
    """objprefetch - warm a network filesystem cache before reading files.

    Sends the whole list of files to `objfsutil prefetch` in one request.
    Missing helpers are ignored; other helper failures set a nonzero exit code.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = config_path
    ctx.obj["persist_logs"] = persist_logs
    configure_logging(debug=debug)


@main.command()
@click.argument("files", nargs=-1)
@click.option(
    "--from-file",
    "-f",
    metavar="PATH",
    help="Read newline-separated file names from PATH ('-' for stdin)",
)
@click.option("--trace/--no-trace", default=True, help="Print trace messages (default: on)")
@click.option("--json", "json_output", is_flag=True, help="Print the outcome as JSON on stdout")
@click.pass_context
@async_command
async def run(
    ctx: click.Context,
    files: tuple[str, ...],
    from_file: str | None,
    trace: bool,
    json_output: bool,
) -> None:
    """Request a prefetch and wait for the helper to finish.

    Exits 0 when the prefetch completed or the helper is not installed,
    and with the configured failure code otherwise.

    Examples:
        objprefetch run src/index.d.ts src/main.ts
        find src -name '*.ts' | objprefetch run -f -
    """
    cfg = _load_config(ctx, json_output)
    try:
        names = _read_file_list(files, from_file)
    except PrefetchError as e:
        handle_error(e, json_output=json_output)

    sink = None
    if trace:
        # stdout carries the JSON; traces go through logging at a level shown by default
        sink = logging_trace(level=logging.WARNING) if json_output else _console_trace

    status = ExitStatus()
    prefetcher = Prefetcher(
        cfg.prefetch,
        capability=detect_platform_capability(),
        exit_status=status,
    )
    handle = prefetcher.trigger(names, sink)

    if handle is None:
        if json_output:
            click.echo(json.dumps({"state": "skipped", "candidates": 0}))
        else:
            console.print("[dim]Prefetch unavailable on this host or disabled[/]")
        return

    result = await handle.wait()

    if json_output:
        click.echo(json.dumps(result.to_dict()))
    elif result.state is PrefetchState.COMPLETED:
        console.print(
            f"[green]✓[/] Prefetch requested for {len(result.candidates)} files "
            f"[dim](helper exit {result.returncode})[/]"
        )
    elif result.state is PrefetchState.FAILED:
        console.print(f"[red]✗[/] Prefetch failed (exit {status.code})")

    if status.failed:
        raise SystemExit(status.code)


@main.command()
@click.argument("files", nargs=-1)
@click.option(
    "--from-file",
    "-f",
    metavar="PATH",
    help="Read newline-separated file names from PATH ('-' for stdin)",
)
@click.pass_context
def candidates(ctx: click.Context, files: tuple[str, ...], from_file: str | None) -> None:
    """Print the files a prefetch would request, one per line.

    Includes sidecar metadata files derived from declaration files.
    """
    cfg = _load_config(ctx, json_output=False)
    try:
        names = _read_file_list(files, from_file)
    except PrefetchError as e:
        handle_error(e)

    for name in build_candidate_set(
        names,
        cfg.prefetch.declaration_suffix,
        cfg.prefetch.sidecar_suffix,
    ):
        click.echo(name)


main.add_command(config)
