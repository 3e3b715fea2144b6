"""CLI Error Handler.

Provides unified error handling for the CLI with support for:
- Human-readable output (default)
- JSON output for machine consumption (--json)
- Context-aware recovery suggestions
"""

import json
import shutil
import sys
from typing import NoReturn

from rich.console import Console
from rich.text import Text

from objprefetch.foundation.errors import ErrorCode, PrefetchError


def _get_context_aware_hints(error: PrefetchError) -> list[str]:
    """Generate hints based on what is actually installed here.

    Args:
        error: The error to generate hints for

    Returns:
        List of additional context-aware hints (may be empty)
    """
    hints: list[str] = []
    helper = error.context.get("helper")

    if error.code == ErrorCode.HELPER_NOT_FOUND and helper:
        if shutil.which("objfsutil") and helper != "objfsutil":
            hints.append("Detected: objfsutil is on PATH. Check prefetch.helper in your config")

    elif error.code == ErrorCode.HELPER_PERMISSION_DENIED and helper:
        resolved = shutil.which(helper)
        if resolved:
            hints.append(f"Detected: helper resolves to {resolved}")

    return hints


def _as_prefetch_error(error: PrefetchError | Exception) -> PrefetchError:
    if isinstance(error, PrefetchError):
        return error
    return PrefetchError(
        code=ErrorCode.HELPER_RUNTIME_FAILED,
        context={"helper": "objprefetch", "detail": str(error)},
        cause=error,
    )


def handle_error(
    error: PrefetchError | Exception,
    json_output: bool = False,
) -> NoReturn:
    """Handle an error with optional JSON output for machine consumption.

    Args:
        error: The error to handle (PrefetchError or generic Exception)
        json_output: If True, output JSON to stderr

    Raises:
        SystemExit: Always exits with code 1
    """
    error = _as_prefetch_error(error)

    if json_output:
        print(format_error_for_json(error), file=sys.stderr)
        sys.exit(1)

    _print_human_error(error)
    sys.exit(1)


def _print_human_error(error: PrefetchError) -> None:
    """Print error in human-readable format."""
    console = Console(stderr=True)

    header = Text()
    header.append(f"{error.error_id}", style="bold red")
    header.append(f" {error.message}")
    console.print(header)

    all_hints = _get_context_aware_hints(error) + error.recovery_hints
    if all_hints:
        console.print("\n[bold]What you can do:[/]")
        for i, hint in enumerate(all_hints, 1):
            if hint.startswith("Detected:"):
                console.print(f"  [dim]{hint}[/]")
            else:
                console.print(f"  {i}. {hint}")


def format_error_for_json(error: PrefetchError | Exception) -> str:
    """Format an error as JSON string.

    Args:
        error: The error to format

    Returns:
        JSON string representation of the error
    """
    error = _as_prefetch_error(error)
    error_dict = error.to_dict()
    if error.cause:
        error_dict["cause"] = str(error.cause)
    return json.dumps(error_dict)
