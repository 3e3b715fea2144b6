"""Tests for the prefetch trigger."""

import asyncio
import errno
import threading

import pytest

from objprefetch.foundation.errors import ErrorCode
from objprefetch.foundation.types.config import PrefetchConfig
from objprefetch.prefetch import (
    ExitStatus,
    PlatformCapability,
    Prefetcher,
    PrefetchState,
    SpawnError,
    SpawnErrorKind,
    prefetch,
)
from objprefetch.prefetch import trigger as trigger_module


def _missing_binary() -> SpawnError:
    return SpawnError.from_os_error(
        "objfsutil", FileNotFoundError(errno.ENOENT, "No such file or directory")
    )


class TestTransfer:
    """Tests for writing the candidate set to the helper."""

    @pytest.mark.asyncio
    async def test_writes_newline_joined_candidates(
        self, make_prefetcher, spawner, trace
    ) -> None:
        """The helper receives the candidate set joined by newlines."""
        handle = make_prefetcher(spawner).trigger(["a.d.ts", "b.ts"], trace)

        result = await handle.wait()

        assert result.state is PrefetchState.COMPLETED
        assert spawner.calls == [["objfsutil", "prefetch"]]
        assert spawner.stdin.data == b"a.d.ts\nb.ts\na.metadata.json"
        assert spawner.stdin.closed

    @pytest.mark.asyncio
    async def test_trace_precedes_spawn_and_write(
        self, make_prefetcher, spawner, trace, events
    ) -> None:
        """The file-count trace comes first; close only follows the drained write."""
        handle = make_prefetcher(spawner).trigger(["a.d.ts", "b.ts"], trace)
        await handle.wait()

        kinds = [kind for kind, _ in events]
        assert kinds == ["trace", "spawn", "write", "drain", "close"]
        assert events[0] == ("trace", "Requesting prefetch of 3 files")

    @pytest.mark.asyncio
    async def test_trigger_returns_before_spawning(
        self, make_prefetcher, spawner, trace
    ) -> None:
        """The call returns before the helper is started."""
        handle = make_prefetcher(spawner).trigger(["a.ts"], trace)

        assert handle is not None
        assert spawner.calls == []
        assert handle.state is PrefetchState.NOT_STARTED
        assert not handle.done()

        await handle.wait()
        assert handle.state is PrefetchState.COMPLETED

    @pytest.mark.asyncio
    async def test_encoding_is_configurable(self, make_prefetcher, spawner) -> None:
        """The file list is encoded with the configured encoding."""
        handle = make_prefetcher(spawner, encoding="latin-1").trigger(["café.ts"])
        await handle.wait()
        assert spawner.stdin.data == "café.ts".encode("latin-1")

    @pytest.mark.asyncio
    async def test_argv_transport(self, make_prefetcher, spawner, events) -> None:
        """argv transport passes files on the command line and writes nothing."""
        handle = make_prefetcher(spawner, transport="argv").trigger(["a.d.ts"])
        await handle.wait()

        assert spawner.calls == [["objfsutil", "prefetch", "a.d.ts", "a.metadata.json"]]
        assert spawner.stdin.data == b""
        assert spawner.stdin.closed
        assert "write" not in [kind for kind, _ in events]

    @pytest.mark.asyncio
    async def test_custom_helper(self, make_prefetcher, spawner) -> None:
        """Helper and subcommand come from config."""
        prefetcher = make_prefetcher(spawner, helper="/opt/objfs/objfsutil", subcommand="warm")
        await prefetcher.trigger(["a.ts"]).wait()
        assert spawner.calls == [["/opt/objfs/objfsutil", "warm"]]

    @pytest.mark.asyncio
    async def test_helper_exit_code_is_not_interpreted(
        self, make_prefetcher, spawner_factory, exit_status
    ) -> None:
        """A nonzero helper exit still counts as completed."""
        spawner = spawner_factory(returncode=7)

        result = await make_prefetcher(spawner).trigger(["a.ts"]).wait()

        assert result.state is PrefetchState.COMPLETED
        assert result.returncode == 7
        assert exit_status.code == 0

    @pytest.mark.asyncio
    async def test_stdin_errors_are_swallowed(
        self, make_prefetcher, spawner_factory, exit_status
    ) -> None:
        """A broken pipe on stdin neither fails the prefetch nor raises."""
        spawner = spawner_factory(write_error=BrokenPipeError(errno.EPIPE, "Broken pipe"))

        result = await make_prefetcher(spawner).trigger(["a.ts"]).wait()

        assert result.state is PrefetchState.COMPLETED
        assert exit_status.code == 0


class TestFailureClassification:
    """Tests for spawn failure handling."""

    @pytest.mark.asyncio
    async def test_missing_binary_is_ignored(
        self, make_prefetcher, spawner_factory, trace, events, exit_status
    ) -> None:
        """A missing helper is traced and otherwise ignored."""
        spawner = spawner_factory(error=_missing_binary())

        result = await make_prefetcher(spawner).trigger(["a.ts"], trace).wait()

        assert result.state is PrefetchState.IGNORED_MISSING_BINARY
        assert result.error is not None
        assert result.error.kind is SpawnErrorKind.BINARY_NOT_FOUND
        assert exit_status.code == 0
        messages = [msg for kind, msg in events if kind == "trace"]
        assert len(messages) == 2
        assert "not found" in messages[1]
        assert "sandbox" in messages[1]

    @pytest.mark.asyncio
    async def test_other_spawn_error_sets_exit_status(
        self, make_prefetcher, spawner_factory, trace, events, exit_status
    ) -> None:
        """Any other spawn error is traced and sets a nonzero exit code."""
        error = SpawnError.from_os_error("objfsutil", OSError(errno.E2BIG, "Argument list too long"))
        spawner = spawner_factory(error=error)

        result = await make_prefetcher(spawner).trigger(["a.ts"], trace).wait()

        assert result.state is PrefetchState.FAILED
        assert exit_status.code == 1
        assert events[-1][0] == "trace"
        assert "Prefetch failed" in events[-1][1]
        assert "Argument list too long" in events[-1][1]

    @pytest.mark.asyncio
    async def test_permission_denied_is_a_failure(
        self, make_prefetcher, spawner_factory, exit_status
    ) -> None:
        """Permission problems are real failures, not a missing helper."""
        error = SpawnError.from_os_error("objfsutil", PermissionError(errno.EACCES, "Permission denied"))

        result = await make_prefetcher(spawner_factory(error=error)).trigger(["a.ts"]).wait()

        assert result.state is PrefetchState.FAILED
        assert result.error.code == ErrorCode.HELPER_PERMISSION_DENIED
        assert exit_status.code == 1

    @pytest.mark.asyncio
    async def test_failure_exit_code_is_configurable(
        self, make_prefetcher, spawner_factory, exit_status
    ) -> None:
        """The recorded exit code comes from config."""
        error = SpawnError(SpawnErrorKind.OTHER, "objfsutil", "boom")
        prefetcher = make_prefetcher(spawner_factory(error=error), failure_exit_code=3)

        await prefetcher.trigger(["a.ts"]).wait()

        assert exit_status.code == 3

    @pytest.mark.asyncio
    async def test_unexpected_spawner_exception_is_a_runtime_failure(
        self, make_prefetcher, spawner_factory, exit_status
    ) -> None:
        """Exceptions outside SpawnError are wrapped, not raised."""
        spawner = spawner_factory(error=RuntimeError("event loop closed"))

        result = await make_prefetcher(spawner).trigger(["a.ts"]).wait()

        assert result.state is PrefetchState.FAILED
        assert result.error.code == ErrorCode.HELPER_RUNTIME_FAILED
        assert "event loop closed" in result.error.message
        assert exit_status.code == 1

    @pytest.mark.asyncio
    async def test_unencodable_names_fail_without_spawning(
        self, make_prefetcher, spawner, exit_status
    ) -> None:
        """A file list the encoding cannot represent is a failure."""
        prefetcher = make_prefetcher(spawner, encoding="ascii")

        result = await prefetcher.trigger(["naïve.ts"]).wait()

        assert result.state is PrefetchState.FAILED
        assert spawner.calls == []
        assert exit_status.code == 1

    @pytest.mark.asyncio
    async def test_on_result_receives_outcome(self, spawner_factory) -> None:
        """The on_result callback sees every terminal outcome."""
        seen = []
        prefetcher = Prefetcher(
            PrefetchConfig(),
            capability=PlatformCapability.PRESENT,
            spawner=spawner_factory(error=_missing_binary()),
            on_result=seen.append,
        )

        result = await prefetcher.trigger(["a.ts"]).wait()

        assert seen == [result]


class TestNoOps:
    """Tests for the silent no-op paths."""

    def test_absent_capability_is_a_noop(self, spawner, trace, events) -> None:
        """Without spawn capability nothing happens at all."""
        prefetcher = Prefetcher(
            PrefetchConfig(),
            capability=PlatformCapability.ABSENT,
            spawner=spawner,
        )

        assert prefetcher.trigger(["a.ts"], trace) is None
        assert events == []

    def test_disabled_config_is_a_noop(self, make_prefetcher, spawner, trace, events) -> None:
        """enabled: false skips the helper and the trace."""
        assert make_prefetcher(spawner, enabled=False).trigger(["a.ts"], trace) is None
        assert events == []

    @pytest.mark.asyncio
    async def test_missing_trace_sink_is_silent(
        self, make_prefetcher, spawner_factory, capsys
    ) -> None:
        """Without a trace sink tracing produces no output and no error."""
        prefetcher = make_prefetcher(spawner_factory(error=_missing_binary()))

        result = await prefetcher.trigger(["a.d.ts"]).wait()

        assert result.state is PrefetchState.IGNORED_MISSING_BINARY
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == ""


class TestBackgroundExecution:
    """Tests for where the background job runs."""

    def test_runs_on_thread_without_event_loop(self, make_prefetcher, spawner) -> None:
        """With no running loop the job runs on the background loop thread."""
        handle = make_prefetcher(spawner).trigger(["a.d.ts"])

        result = handle.result(timeout=5)

        assert result.state is PrefetchState.COMPLETED
        assert spawner.stdin.data == b"a.d.ts\na.metadata.json"

    def test_sync_triggers_share_one_loop_thread(self, make_prefetcher, spawner_factory) -> None:
        """Every synchronous trigger runs on the same background loop thread."""
        threads: list[str] = []

        def record_thread(message: str) -> None:
            threads.append(threading.current_thread().name)

        for _ in range(3):
            prefetcher = make_prefetcher(spawner_factory(error=_missing_binary()))
            prefetcher.trigger(["a.ts"], record_thread).result(timeout=5)

        # Every other entry is the "not found" trace from the background job
        background = threads[1::2]
        assert background == ["objprefetch-loop"] * 3
        assert trigger_module._get_loop_thread() is trigger_module._get_loop_thread()

    def test_thread_path_records_failures(
        self, make_prefetcher, spawner_factory, exit_status
    ) -> None:
        """Failures on the thread path still reach the exit status."""
        error = SpawnError(SpawnErrorKind.OTHER, "objfsutil", "boom")

        make_prefetcher(spawner_factory(error=error)).trigger(["a.ts"]).result(timeout=5)

        assert exit_status.code == 1

    @pytest.mark.asyncio
    async def test_concurrent_triggers_are_independent(self, spawner_factory) -> None:
        """Several prefetches can be in flight at once."""
        status = ExitStatus()
        ok = Prefetcher(
            PrefetchConfig(),
            capability=PlatformCapability.PRESENT,
            spawner=spawner_factory(),
            exit_status=status,
        )
        missing = Prefetcher(
            PrefetchConfig(),
            capability=PlatformCapability.PRESENT,
            spawner=spawner_factory(error=_missing_binary()),
            exit_status=status,
        )

        results = await asyncio.gather(
            ok.trigger(["a.ts"]).wait(),
            missing.trigger(["b.ts"]).wait(),
        )

        assert [r.state for r in results] == [
            PrefetchState.COMPLETED,
            PrefetchState.IGNORED_MISSING_BINARY,
        ]
        assert status.code == 0


class TestModuleLevelPrefetch:
    """Tests for the prefetch() entry point."""

    @pytest.mark.asyncio
    async def test_uses_given_prefetcher(self, make_prefetcher, spawner, trace, events) -> None:
        """prefetch(trace, files) delegates to the given Prefetcher."""
        handle = prefetch(trace, ["a.d.ts"], prefetcher=make_prefetcher(spawner))

        await handle.wait()

        assert events[0] == ("trace", "Requesting prefetch of 2 files")

    def test_default_prefetcher_follows_config(
        self, isolated_config, monkeypatch, trace, events
    ) -> None:
        """The default Prefetcher reads the loaded configuration."""
        monkeypatch.setenv("OBJPREFETCH_PREFETCH_ENABLED", "false")

        assert prefetch(trace, ["a.ts"]) is None
        assert events == []


class TestRaisingCallbacks:
    """Tests for host callbacks that raise."""

    @pytest.mark.asyncio
    async def test_raising_trace_sink_still_records_failure(
        self, make_prefetcher, spawner_factory, exit_status
    ) -> None:
        """A sink that raises on the failure trace cannot hide the failure."""
        calls = []

        def flaky(message: str) -> None:
            calls.append(message)
            if len(calls) > 1:
                raise RuntimeError("sink closed")

        error = SpawnError(SpawnErrorKind.OTHER, "objfsutil", "boom")
        handle = make_prefetcher(spawner_factory(error=error)).trigger(["a.ts"], flaky)

        result = await handle.wait()

        assert result.state is PrefetchState.FAILED
        assert exit_status.code == 1
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_raising_trace_sink_on_missing_binary(
        self, make_prefetcher, spawner_factory, exit_status
    ) -> None:
        """The missing-helper path also survives a raising sink."""

        def broken(message: str) -> None:
            raise RuntimeError("sink closed")

        handle = make_prefetcher(spawner_factory(error=_missing_binary())).trigger(["a.ts"], broken)

        result = await handle.wait()

        assert result.state is PrefetchState.IGNORED_MISSING_BINARY
        assert exit_status.code == 0

    def test_raising_trace_sink_never_reaches_caller(self, make_prefetcher, spawner) -> None:
        """The synchronous trace inside trigger() is guarded too."""

        def broken(message: str) -> None:
            raise RuntimeError("sink closed")

        handle = make_prefetcher(spawner).trigger(["a.ts"], broken)

        assert handle.result(timeout=5).state is PrefetchState.COMPLETED

    @pytest.mark.asyncio
    async def test_raising_on_result_fails_handle_after_recording(
        self, spawner_factory, exit_status
    ) -> None:
        """An on_result crash reaches the handle; the exit status is already set."""

        def explode(result) -> None:
            raise RuntimeError("observer broke")

        prefetcher = Prefetcher(
            PrefetchConfig(),
            capability=PlatformCapability.PRESENT,
            spawner=spawner_factory(error=SpawnError(SpawnErrorKind.OTHER, "objfsutil", "boom")),
            exit_status=exit_status,
            on_result=explode,
        )

        handle = prefetcher.trigger(["a.ts"])

        with pytest.raises(RuntimeError, match="observer broke"):
            await handle.wait()
        assert exit_status.code == 1
