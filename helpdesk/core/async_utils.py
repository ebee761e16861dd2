from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import anyio

T = TypeVar("T")


def run_async(
    func: Callable[..., Awaitable[T]],
    *args: object,
    timeout: float | None = None,
) -> T:
    """
    Run an async callable to completion from sync code (CLI commands, scripts).

    - Starts a fresh event loop through anyio.run.
    - Raises if a loop is already running in this thread (use await instead).
    """

    async def _runner() -> T:
        if timeout is not None:
            with anyio.fail_after(timeout):
                return await func(*args)
        return await func(*args)

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return anyio.run(_runner)
    raise RuntimeError("run_async called from async context; use await instead")
