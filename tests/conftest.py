"""Pytest fixtures for objprefetch tests."""

import os
from collections.abc import Iterator, Sequence
from pathlib import Path

import pytest

from objprefetch.foundation.config import reset_config
from objprefetch.foundation.types.config import PrefetchConfig
from objprefetch.prefetch import ExitStatus, PlatformCapability, Prefetcher, reset_prefetcher


class FakeStdin:
    """Records what the trigger writes to the helper."""

    def __init__(self, events: list[tuple[str, object]], write_error: OSError | None = None):
        self.events = events
        self.write_error = write_error
        self.data = b""
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.data += data
        self.events.append(("write", data))

    async def drain(self) -> None:
        self.events.append(("drain", None))

    def close(self) -> None:
        self.closed = True
        self.events.append(("close", None))

    async def wait_closed(self) -> None:
        pass


class FakeProcess:
    """Helper process double that exits with a fixed code."""

    def __init__(self, stdin: FakeStdin, returncode: int = 0):
        self.pid = 4242
        self.stdin = stdin
        self._exit = returncode
        self.returncode: int | None = None

    async def wait(self) -> int:
        self.returncode = self._exit
        return self._exit


class FakeSpawner:
    """Spawner double: records argv, then fails or hands out a FakeProcess."""

    def __init__(
        self,
        events: list[tuple[str, object]],
        *,
        error: Exception | None = None,
        write_error: OSError | None = None,
        returncode: int = 0,
    ):
        self.events = events
        self.error = error
        self.calls: list[list[str]] = []
        self.stdin = FakeStdin(events, write_error)
        self.returncode = returncode

    async def spawn(self, argv: Sequence[str]) -> FakeProcess:
        self.calls.append(list(argv))
        self.events.append(("spawn", list(argv)))
        if self.error is not None:
            raise self.error
        return FakeProcess(self.stdin, self.returncode)


@pytest.fixture
def events() -> list[tuple[str, object]]:
    """Shared, ordered log of trace messages and stream operations."""
    return []


@pytest.fixture
def trace(events: list[tuple[str, object]]):
    """Trace sink that records into the shared event log."""

    def sink(message: str) -> None:
        events.append(("trace", message))

    return sink


@pytest.fixture
def spawner_factory(events: list[tuple[str, object]]):
    """Build FakeSpawners sharing the event log (error=, write_error=, returncode=)."""

    def factory(**kwargs: object) -> FakeSpawner:
        return FakeSpawner(events, **kwargs)

    return factory


@pytest.fixture
def spawner(spawner_factory) -> FakeSpawner:
    """A spawner whose helper starts and exits cleanly."""
    return spawner_factory()


@pytest.fixture
def exit_status() -> ExitStatus:
    return ExitStatus()


@pytest.fixture
def make_prefetcher(exit_status: ExitStatus):
    """Build a Prefetcher with the spawn capability present."""

    def factory(spawner: FakeSpawner, **config_overrides: object) -> Prefetcher:
        return Prefetcher(
            PrefetchConfig(**config_overrides),
            capability=PlatformCapability.PRESENT,
            spawner=spawner,
            exit_status=exit_status,
        )

    return factory


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Run with no config files and no OBJPREFETCH_* variables in scope."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("OBJPREFETCH_"):
            monkeypatch.delenv(key)
    reset_config()
    reset_prefetcher()
    yield tmp_path
    reset_config()
    reset_prefetcher()
