"""Running async click commands.

``objprefetch run`` starts its prefetch on the command's own event loop and
awaits the handle before returning, so the loop must outlive the background
task. Commands are written as coroutines and wrapped with ``async_command``.

Embedded use (a notebook, or a host that calls ``main()`` from inside a
running loop) cannot start a second loop with ``asyncio.run``; there the
coroutine runs on the existing loop through nest_asyncio.
"""

import asyncio
import functools
from collections.abc import Callable, Coroutine
from typing import Any, ParamSpec, TypeVar

T = TypeVar("T")
P = ParamSpec("P")


def _has_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run ``coro`` to completion and return its result.

    Exceptions from the coroutine, ``SystemExit`` included, propagate
    unchanged so click sees the command's exit code.
    """
    if not _has_running_loop():
        return asyncio.run(coro)

    import nest_asyncio

    loop = asyncio.get_event_loop()
    nest_asyncio.apply(loop)
    return loop.run_until_complete(coro)


def async_command(
    f: Callable[P, Coroutine[Any, Any, T]],
) -> Callable[P, T]:
    """Turn an async function into the synchronous callable click expects.

    Usage:
        @main.command()
        @click.pass_context
        @async_command
        async def run(ctx: click.Context, files: tuple[str, ...]) -> None:
            handle = Prefetcher().trigger(files)
            if handle is not None:
                await handle.wait()

    ``functools.wraps`` keeps the name, docstring and signature click reads
    for help text and parameter parsing.
    """

    @functools.wraps(f)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        return run_async(f(*args, **kwargs))

    return wrapper
