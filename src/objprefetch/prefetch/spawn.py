"""Helper process spawning.

Wraps ``asyncio.create_subprocess_exec`` behind a small protocol so the
trigger can be driven by test doubles, and turns the OSError zoo raised by
a failed exec into a closed set of error kinds.
"""

import asyncio
import errno
import logging
import sys
from collections.abc import Sequence
from enum import Enum
from typing import Protocol, runtime_checkable

from objprefetch.foundation.errors import ErrorCode, PrefetchError

logger = logging.getLogger(__name__)


class SpawnErrorKind(Enum):
    """Why a helper could not be started or kept running."""

    BINARY_NOT_FOUND = "binary_not_found"
    PERMISSION_DENIED = "permission_denied"
    OTHER = "other"


_KIND_CODES: dict[SpawnErrorKind, ErrorCode] = {
    SpawnErrorKind.BINARY_NOT_FOUND: ErrorCode.HELPER_NOT_FOUND,
    SpawnErrorKind.PERMISSION_DENIED: ErrorCode.HELPER_PERMISSION_DENIED,
    SpawnErrorKind.OTHER: ErrorCode.HELPER_SPAWN_FAILED,
}


class SpawnError(PrefetchError):
    """A helper spawn or runtime failure with its classified kind."""

    def __init__(
        self,
        kind: SpawnErrorKind,
        helper: str,
        detail: str = "",
        cause: Exception | None = None,
        *,
        code: ErrorCode | None = None,
    ):
        self.kind = kind
        super().__init__(
            code=code or _KIND_CODES[kind],
            context={"helper": helper, "detail": detail, "kind": kind.value},
            cause=cause,
        )

    @classmethod
    def from_os_error(cls, helper: str, exc: OSError) -> "SpawnError":
        """Classify an OSError raised while starting ``helper``."""
        return cls(
            classify_os_error(exc),
            helper,
            detail=exc.strerror or str(exc),
            cause=exc,
        )

    @classmethod
    def runtime(cls, helper: str, exc: Exception) -> "SpawnError":
        """Wrap an unexpected failure after the helper was started."""
        return cls(
            SpawnErrorKind.OTHER,
            helper,
            detail=f"{type(exc).__name__}: {exc}",
            cause=exc,
            code=ErrorCode.HELPER_RUNTIME_FAILED,
        )


def classify_os_error(exc: OSError) -> SpawnErrorKind:
    """Map an exec failure onto a SpawnErrorKind."""
    if isinstance(exc, FileNotFoundError) or exc.errno == errno.ENOENT:
        return SpawnErrorKind.BINARY_NOT_FOUND
    if isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM):
        return SpawnErrorKind.PERMISSION_DENIED
    return SpawnErrorKind.OTHER


@runtime_checkable
class HelperInput(Protocol):
    """Writable input stream of a helper process (asyncio.StreamWriter subset)."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...

    def close(self) -> None: ...

    async def wait_closed(self) -> None: ...


@runtime_checkable
class HelperProcess(Protocol):
    """Handle to a spawned helper (asyncio.subprocess.Process subset)."""

    @property
    def pid(self) -> int: ...

    @property
    def returncode(self) -> int | None: ...

    @property
    def stdin(self) -> HelperInput | None: ...

    async def wait(self) -> int: ...


class Spawner(Protocol):
    """Process-spawning capability consumed by the trigger."""

    async def spawn(self, argv: Sequence[str]) -> HelperProcess:
        """Start ``argv`` with a piped stdin.

        Raises:
            SpawnError: If the process could not be started
        """
        ...


def _diagnostic_fd() -> int:
    """File descriptor of the host's diagnostic channel."""
    try:
        return sys.stderr.fileno()
    except (AttributeError, OSError, ValueError):
        # stderr replaced by an in-memory stream; use the real descriptor
        return 2


class AsyncioSpawner:
    """Spawns helpers with asyncio, forwarding their output to our stderr.

    Both of the helper's output channels go to the host's stderr so helper
    chatter never mixes with the host's primary output.
    """

    async def spawn(self, argv: Sequence[str]) -> HelperProcess:
        diagnostics = _diagnostic_fd()
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=diagnostics,
                stderr=diagnostics,
            )
        except OSError as e:
            raise SpawnError.from_os_error(argv[0], e) from e

        logger.debug("Spawned %s (pid=%s)", argv[0], proc.pid)
        return proc
