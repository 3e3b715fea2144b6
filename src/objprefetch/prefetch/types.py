"""Prefetch outcome types."""

import asyncio
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum

from objprefetch.prefetch.spawn import SpawnError


class PrefetchState(Enum):
    """Lifecycle of a single prefetch invocation.

    NOT_STARTED -> SPAWNED -> {IGNORED_MISSING_BINARY | FAILED | COMPLETED}
    """

    NOT_STARTED = "not_started"
    SPAWNED = "spawned"
    IGNORED_MISSING_BINARY = "ignored_missing_binary"
    FAILED = "failed"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            PrefetchState.IGNORED_MISSING_BINARY,
            PrefetchState.FAILED,
            PrefetchState.COMPLETED,
        )


@dataclass(frozen=True, slots=True)
class PrefetchResult:
    """Terminal outcome of one prefetch invocation."""

    state: PrefetchState
    candidates: tuple[str, ...]
    error: SpawnError | None = None
    returncode: int | None = None
    """Helper exit code, when termination was observed. Not interpreted."""

    @property
    def failed(self) -> bool:
        return self.state is PrefetchState.FAILED

    def to_dict(self) -> dict:
        """Serialize for --json output."""
        return {
            "state": self.state.value,
            "candidates": len(self.candidates),
            "returncode": self.returncode,
            "error": self.error.to_dict() if self.error else None,
        }


class ExitStatus:
    """Exit code the host consults at shutdown.

    Starts at 0. A failed invocation sets it to a nonzero code; it is
    never reset. The first failure wins.
    """

    def __init__(self) -> None:
        self._code = 0
        self._lock = threading.Lock()

    @property
    def code(self) -> int:
        return self._code

    @property
    def failed(self) -> bool:
        return self._code != 0

    def record(self, result: PrefetchResult, failure_code: int = 1) -> None:
        """Fold a prefetch outcome into the exit code."""
        if not result.failed:
            return
        with self._lock:
            if self._code == 0:
                self._code = failure_code

    def __repr__(self) -> str:
        return f"ExitStatus(code={self._code})"


class PrefetchHandle:
    """Optional view of a background prefetch.

    Hosts are free to drop it; prefetch still runs to completion. Calling
    ``result()`` from the event loop that runs the prefetch would block that
    loop, so async code awaits ``wait()`` instead.
    """

    def __init__(self, candidates: tuple[str, ...]) -> None:
        self.candidates = candidates
        self._state = PrefetchState.NOT_STARTED
        self._future: Future[PrefetchResult] = Future()

    @property
    def state(self) -> PrefetchState:
        """Latest known state of the invocation."""
        return self._state

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: float | None = None) -> PrefetchResult:
        """Block until the prefetch reaches a terminal state.

        Raises:
            concurrent.futures.TimeoutError: If ``timeout`` elapses first
            concurrent.futures.CancelledError: If the background job was
                cancelled (its event loop shut down)
        """
        return self._future.result(timeout)

    async def wait(self) -> PrefetchResult:
        """Await the terminal state from any event loop."""
        return await asyncio.wrap_future(self._future)

    def _advance(self, state: PrefetchState) -> None:
        self._state = state

    def _resolve(self, result: PrefetchResult) -> None:
        self._state = result.state
        if not self._future.done():
            self._future.set_result(result)

    def _fail(self, exc: BaseException) -> None:
        if not self._future.done():
            self._future.set_exception(exc)

    def _cancel(self) -> None:
        self._future.cancel()
