"""
Background Tasks

Architectural Intent:
- Runs auxiliary work (progress heartbeats) alongside a long operation
- The work is bound to an explicit asyncio.Event stop token
- The task is always stopped and joined before the enclosing block exits,
  on success, on error and on cancellation
"""

from __future__ import annotations
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable


@asynccontextmanager
async def background_task(
    work: Callable[[asyncio.Event], Awaitable[None]],
) -> AsyncIterator[asyncio.Event]:
    stop = asyncio.Event()
    task = asyncio.create_task(work(stop))
    # Let the work start so its cleanup runs even if the block exits at once
    await asyncio.sleep(0)
    try:
        yield stop
    finally:
        stop.set()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


async def heartbeat(
    stop: asyncio.Event,
    interval: float,
    emit: Callable[[float], None],
) -> None:
    """Call `emit(elapsed_seconds)` every `interval` seconds until stopped."""
    loop = asyncio.get_running_loop()
    started = loop.time()
    while not stop.is_set():
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except asyncio.TimeoutError:
            emit(loop.time() - started)
