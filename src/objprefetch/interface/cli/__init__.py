"""objprefetch CLI - Command-line interface."""

from objprefetch.interface.cli.core.main import cli_entrypoint, main

__all__ = ["cli_entrypoint", "main"]
