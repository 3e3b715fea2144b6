"""Fire-and-forget prefetch trigger.

Network filesystems like objfs have very high latency per file read but
great parallelism: they serve files from many servers at once. A compiler
that reads its inputs one after another pays that latency N times. Calling
``prefetch()`` on project load hands the whole input list to
``objfsutil prefetch`` in one request, so by the time the sequential reads
happen the cache is warm.

The trigger never blocks and never raises to its caller:
- no spawn capability on this host: silent no-op
- helper not installed (sandboxed builds): traced, ignored
- any other spawn/runtime failure: traced, recorded in the ExitStatus
- errors on the helper's stdin: swallowed
- a trace sink that raises: logged, ignored

Usage:
    prefetcher = Prefetcher(get_config().prefetch, exit_status=ExitStatus())
    prefetcher.trigger(file_names, trace=print)
    ...
    sys.exit(prefetcher.exit_status.code)
"""

import asyncio
import logging
import threading
from collections.abc import Callable, Coroutine, Sequence
from concurrent.futures import Future
from typing import Any

from objprefetch.foundation.config import get_config
from objprefetch.foundation.types.config import PrefetchConfig
from objprefetch.prefetch.candidates import build_candidate_set
from objprefetch.prefetch.platform import PlatformCapability, detect_platform_capability
from objprefetch.prefetch.spawn import (
    AsyncioSpawner,
    HelperInput,
    SpawnError,
    SpawnErrorKind,
    Spawner,
)
from objprefetch.prefetch.types import ExitStatus, PrefetchHandle, PrefetchResult, PrefetchState

logger = logging.getLogger(__name__)

TraceSink = Callable[[str], None]
ResultSink = Callable[[PrefetchResult], None]

# In-flight tasks; the event loop only keeps weak references
_background_tasks: set[asyncio.Task] = set()


def _noop_trace(message: str) -> None:
    pass


def _guarded(trace: TraceSink) -> TraceSink:
    """Wrap a trace sink so its exceptions are logged, never propagated."""

    def emit(message: str) -> None:
        try:
            trace(message)
        except Exception:
            logger.exception("Trace sink raised on %r", message)

    return emit


class Prefetcher:
    """Issues prefetch requests to the external helper.

    Args:
        config: Prefetch settings (default: loaded configuration)
        capability: Whether this host can spawn processes (default: detected once here)
        spawner: Process-spawning capability (default: AsyncioSpawner)
        exit_status: Receives every outcome; failures set its code
        on_result: Optional callback for every terminal outcome
    """

    def __init__(
        self,
        config: PrefetchConfig | None = None,
        *,
        capability: PlatformCapability | None = None,
        spawner: Spawner | None = None,
        exit_status: ExitStatus | None = None,
        on_result: ResultSink | None = None,
    ) -> None:
        self.config = config or get_config().prefetch
        self.capability = capability or detect_platform_capability()
        self.spawner = spawner or AsyncioSpawner()
        self.exit_status = exit_status if exit_status is not None else ExitStatus()
        self.on_result = on_result

    def trigger(
        self,
        file_names: Sequence[str],
        trace: TraceSink | None = None,
    ) -> PrefetchHandle | None:
        """Request a prefetch of ``file_names`` and return immediately.

        The helper is started in the background: as a task on the running
        event loop if there is one, otherwise on a shared daemon thread that
        owns a background loop.

        Args:
            file_names: Files the caller is about to read
            trace: Optional diagnostic sink

        Returns:
            A handle to the background job, or None when prefetch is
            unavailable on this host or disabled.
        """
        if self.capability is PlatformCapability.ABSENT:
            return None
        if not self.config.enabled:
            logger.debug("Prefetch disabled, skipping %d files", len(file_names))
            return None

        emit = _guarded(trace) if trace is not None else _noop_trace
        candidates = build_candidate_set(
            file_names,
            self.config.declaration_suffix,
            self.config.sidecar_suffix,
        )
        handle = PrefetchHandle(candidates)

        emit(f"Requesting prefetch of {len(candidates)} files")
        self._launch(self._run(candidates, emit, handle), handle)
        return handle

    def _launch(self, coro: Coroutine[Any, Any, None], handle: PrefetchHandle) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(coro, name="objprefetch")
            _background_tasks.add(task)
            task.add_done_callback(_background_tasks.discard)
            task.add_done_callback(lambda t: _job_done(t, handle))
            return

        future = asyncio.run_coroutine_threadsafe(coro, _get_loop_thread().loop)
        future.add_done_callback(lambda f: _job_done(f, handle))

    async def _run(
        self,
        candidates: tuple[str, ...],
        trace: TraceSink,
        handle: PrefetchHandle,
    ) -> None:
        result = await self._execute(candidates, trace, handle)
        self.exit_status.record(result, self.config.failure_exit_code)
        if self.on_result is not None:
            self.on_result(result)
        handle._resolve(result)

    async def _execute(
        self,
        candidates: tuple[str, ...],
        trace: TraceSink,
        handle: PrefetchHandle,
    ) -> PrefetchResult:
        cfg = self.config
        argv = [cfg.helper, cfg.subcommand]

        try:
            if cfg.transport == "argv":
                argv.extend(candidates)
                payload = None
            else:
                payload = "\n".join(candidates).encode(cfg.encoding)
            proc = await self.spawner.spawn(argv)
        except SpawnError as e:
            return self._classify(e, candidates, trace)
        except Exception as e:
            return self._classify(SpawnError.runtime(cfg.helper, e), candidates, trace)

        handle._advance(PrefetchState.SPAWNED)
        logger.debug("Prefetch helper started (pid=%s, %d files)", proc.pid, len(candidates))

        try:
            await _send(proc.stdin, payload)
            # Completion is not interpreted, only awaited
            returncode = await proc.wait()
        except Exception as e:
            return self._classify(SpawnError.runtime(cfg.helper, e), candidates, trace)

        return PrefetchResult(PrefetchState.COMPLETED, candidates, returncode=returncode)

    def _classify(
        self,
        error: SpawnError,
        candidates: tuple[str, ...],
        trace: TraceSink,
    ) -> PrefetchResult:
        match error.kind:
            case SpawnErrorKind.BINARY_NOT_FOUND:
                trace(
                    f"Prefetch helper '{self.config.helper}' not found, skipping prefetch "
                    "(expected in sandboxed builds without network filesystem access)"
                )
                return PrefetchResult(
                    PrefetchState.IGNORED_MISSING_BINARY, candidates, error=error
                )
            case SpawnErrorKind.PERMISSION_DENIED | SpawnErrorKind.OTHER:
                trace(f"Prefetch failed: {error}")
                logger.debug("Prefetch failure", exc_info=error.cause)
                return PrefetchResult(PrefetchState.FAILED, candidates, error=error)


async def _send(stdin: HelperInput | None, payload: bytes | None) -> None:
    """Write the file list and close stdin, ignoring stream errors.

    The stream may already be dead if the helper exited early. The list is
    written in one go, without chunking.
    """
    if stdin is None:
        return
    try:
        if payload is not None:
            stdin.write(payload)
            await stdin.drain()
        stdin.close()
        await stdin.wait_closed()
    except OSError as e:
        logger.debug("Ignoring helper stdin error: %s", e)


def _job_done(job: asyncio.Task | Future, handle: PrefetchHandle) -> None:
    if job.cancelled():
        handle._cancel()
        return
    exc = job.exception()
    if exc is not None:
        logger.error("Prefetch job crashed", exc_info=exc)
        handle._fail(exc)


class _LoopThread:
    """Daemon thread owning the event loop for hosts that have none.

    Started on first use and shared by every later trigger.
    """

    def __init__(self) -> None:
        self.loop = asyncio.new_event_loop()
        self._ready = threading.Event()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="objprefetch-loop",
            daemon=True,
        )
        self._thread.start()
        self._ready.wait(timeout=5.0)

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.call_soon(self._ready.set)
        self.loop.run_forever()

    def is_alive(self) -> bool:
        return self._thread.is_alive() and not self.loop.is_closed()


_loop_thread: _LoopThread | None = None
_loop_thread_lock = threading.Lock()


def _get_loop_thread() -> _LoopThread:
    """Get the shared background loop, starting it if needed."""
    global _loop_thread

    with _loop_thread_lock:
        if _loop_thread is None or not _loop_thread.is_alive():
            _loop_thread = _LoopThread()
        return _loop_thread


# Default prefetcher for the module-level entry point (lazy, thread-safe)
_default: Prefetcher | None = None
_default_lock = threading.Lock()


def get_prefetcher() -> Prefetcher:
    """Get the default Prefetcher, creating it from the loaded config if needed.

    Its ``exit_status`` is what a host consults at shutdown when it uses the
    module-level ``prefetch()``.
    """
    global _default

    if _default is not None:
        return _default

    with _default_lock:
        if _default is None:
            _default = Prefetcher()
        return _default


def reset_prefetcher() -> None:
    """Drop the default Prefetcher (useful for testing)."""
    global _default
    with _default_lock:
        _default = None


def prefetch(
    trace: TraceSink | None,
    file_names: Sequence[str],
    *,
    prefetcher: Prefetcher | None = None,
) -> PrefetchHandle | None:
    """Trigger a background prefetch of ``file_names``.

    Synchronous call, asynchronous effect. Never raises for helper problems.

    Args:
        trace: Optional diagnostic sink, called with human-readable messages
        file_names: Files about to be read
        prefetcher: Use this instead of the default Prefetcher

    Returns:
        A handle the caller may ignore, or None if prefetch is unavailable
    """
    return (prefetcher or get_prefetcher()).trigger(file_names, trace)
