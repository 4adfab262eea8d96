"""
Deferred scheduling of continuation calls.

Every continuation-driven step of an executor goes through `defer`, so a task's resumption never runs inside the
call that resumed it.  If an asyncio event loop is running in the current thread, deferred calls are handed to it
(`call_soon`).  Otherwise they are queued on a per-thread trampoline that is drained when the outermost `turn()`
ends; this keeps the stack flat no matter how many synchronous tasks are chained.
"""
import asyncio
from collections import deque
from contextlib import contextmanager
import logging
import threading
from typing import Any, Callable, Deque, Generator, Optional, Tuple

from .global_state import scheduler_ctrl

logger = logging.getLogger(__name__)

DeferredCall = Tuple[Callable[..., Any], Tuple[Any, ...]]


class _Trampoline(threading.local):
    """Per-thread FIFO of deferred calls."""
    def __init__(self) -> None:
        self.queue: Deque[DeferredCall] = deque()
        self.active = False  # True while a turn is open on this thread.

    def drain(self) -> None:
        """
        Runs queued calls, including ones queued while draining, until the queue is empty.

        A call that raises doesn't stop the others; the first exception is re-raised once the queue is empty.
        """
        first_exc: Optional[Exception] = None
        while self.queue:
            fn, args = self.queue.popleft()
            try:
                fn(*args)
            except Exception as e:
                if first_exc is None:
                    first_exc = e
                else:
                    logger.warning("Deferred call %r raised after an earlier failure in the same turn.", fn,
                                   exc_info=True)

        if first_exc is not None:
            raise first_exc


_trampoline = _Trampoline()


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    """Returns the event loop running in this thread, if any."""
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


@contextmanager
def turn() -> Generator[None, None, None]:
    """
    Delimits one synchronous turn.

    Calls deferred (onto the trampoline) inside the turn run after its body, when the outermost turn exits.
    """
    if _trampoline.active:  # Nested turn; the outermost one drains.
        yield
        return

    _trampoline.active = True
    try:
        yield
    finally:
        try:
            _trampoline.drain()
        finally:
            _trampoline.active = False


def defer(fn: Callable[..., Any], *args: Any) -> None:
    """Schedules `fn(*args)` to run after the current synchronous turn."""
    if scheduler_ctrl.may_use_loop():
        loop = _running_loop()
        if loop is not None:
            loop.call_soon(fn, *args)
            return

        if scheduler_ctrl.requires_loop():
            raise RuntimeError(f"No running event loop to defer {fn!r} to (defer mode: {scheduler_ctrl.mode}).")

    _trampoline.queue.append((fn, args))
    if not _trampoline.active:  # Called from outside any turn, e.g., a timer callback; this call is the turn.
        with turn():
            pass
