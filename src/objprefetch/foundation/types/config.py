"""Configuration type definitions - single source of truth for all config classes."""


from dataclasses import dataclass, field
from typing import Literal

Transport = Literal["stdin", "argv"]


@dataclass(frozen=True, slots=True)
class PrefetchConfig:
    """Configuration for the prefetch trigger."""

    enabled: bool = True
    """Whether prefetch requests are issued at all."""

    helper: str = "objfsutil"
    """Helper executable, resolved on PATH."""

    subcommand: str = "prefetch"
    """First argument passed to the helper."""

    declaration_suffix: str = ".d.ts"
    """Suffix of files that get a sidecar entry."""

    sidecar_suffix: str = ".metadata.json"
    """Replacement suffix for derived sidecar entries."""

    encoding: str = "utf-8"
    """Text encoding of the file list written to the helper."""

    transport: Transport = "stdin"
    """How the file list reaches the helper: newline-joined on stdin, or as argv."""

    failure_exit_code: int = 1
    """Exit status recorded when the helper fails for a reason other than being absent."""


@dataclass(frozen=True, slots=True)
class ObjPrefetchConfig:
    """Root configuration for objprefetch."""

    prefetch: PrefetchConfig = field(default_factory=PrefetchConfig)
    """Prefetch trigger configuration."""

    debug: bool = False
    """Enable debug logging by default."""
