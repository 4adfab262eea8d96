"""Bridges asyncio awaitables into the continuation contract."""
import asyncio
from typing import Any, Awaitable, Callable

from .consts import Callback, StepT


def from_future(factory: Callable[..., Awaitable[Any]]) -> StepT:
    """
    Returns a step (or plain task) that awaits `factory(*values)` on the running event loop.

    The continuation receives `(None, result)` if the awaitable succeeds, `(exc,)` if it raises, and
    `(CancelledError(),)` if it's cancelled.  Must be dispatched while an event loop is running.
    """
    def step(next_: Callback, *values: Any) -> None:
        loop = asyncio.get_running_loop()
        future = asyncio.ensure_future(factory(*values), loop=loop)

        def on_done(f: "asyncio.Future[Any]") -> None:
            if f.cancelled():
                next_(asyncio.CancelledError())
            elif f.exception() is not None:
                next_(f.exception())
            else:
                next_(None, f.result())

        future.add_done_callback(on_done)

    step.__name__ = getattr(factory, "__name__", "from_future")
    return step
