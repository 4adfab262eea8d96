"""py.test configuration."""
import asyncio
import functools
import logging
import random
from typing import Any, Callable, Generator, List, Optional, Tuple

import pytest

import gsync
from gsync import StepTask
from gsync.global_state import scheduler_ctrl, SchedulerControl


def pytest_addoption(parser):
    parser.addoption("--gsync-debug", action="store_true", help="log gsync executor events at DEBUG level")


@pytest.fixture(scope="session", autouse=True)
def debug_logging(request) -> None:
    if request.config.getoption("--gsync-debug"):
        logging.basicConfig(level=logging.DEBUG)
        gsync.set_logging_level(logging.DEBUG)


@pytest.fixture(autouse=True)
def restore_defer_mode() -> Generator[None, None, None]:
    """Puts the scheduling mode back after tests that change it."""
    mode = scheduler_ctrl.mode
    yield
    scheduler_ctrl.set_mode(mode)


class Recorder(object):
    """A completion callback that records every invocation as a tuple `(err, *values)`."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self._event: Optional[asyncio.Event] = None

    def __call__(self, err: Any = None, *values: Any) -> None:
        self.calls.append((err,) + values)
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Returns once the recorder has been invoked at least once."""
        if not self.calls:
            self._event = asyncio.Event()
            await self._event.wait()


@pytest.fixture()
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture()
def loop() -> Generator[asyncio.AbstractEventLoop, None, None]:
    """A fresh event loop, closed after the test."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture()
def drive(loop):
    """
    Returns a function that calls `start()` inside the event loop and runs the loop until `recorder` has been invoked,
    then for another `settle` seconds so that stragglers can land.
    """
    def _drive(start: Callable[[], None], recorder: Optional[Recorder] = None, settle: float = 0.0,
               timeout: float = 5.0) -> None:
        async def main():
            start()
            if recorder is not None:
                await asyncio.wait_for(recorder.wait(), timeout)
            await asyncio.sleep(settle)

        loop.run_until_complete(main())

    return _drive


@pytest.fixture(params=[SchedulerControl.AUTO, SchedulerControl.TRAMPOLINE])
def defer_mode(request) -> str:
    """Runs a test once with deferred calls going through the event loop and once through the trampoline."""
    scheduler_ctrl.set_mode(request.param)
    return request.param


class TaskKit(object):
    """Builds tasks for tests; everything they receive is appended to `trace`."""

    def __init__(self) -> None:
        self.trace: List[Any] = []

    @staticmethod
    def sync_func(err: Any, value: Any, callback: Callable[..., None]) -> None:
        """Calls back right away."""
        callback(err, value)

    @staticmethod
    def async_func(err: Any, value: Any, callback: Callable[..., None], delay: Optional[float] = None) -> None:
        """Calls back on the running event loop after `delay` seconds (random, up to 30 ms, if not given)."""
        if delay is None:
            delay = random.random() * 0.03
        asyncio.get_running_loop().call_later(delay, callback, err, value)

    def after(self, delay: float) -> Callable[..., None]:
        """Returns a version of `async_func` with a fixed delay."""
        return functools.partial(self.async_func, delay=delay)

    def recording(self, values: List[Any], call: Optional[Callable[..., None]] = None) -> StepTask:
        """
        Builds a StepTask whose steps resume with each of `values` in turn, passing them through `call`.

        Each step records the value it receives; the last one finishes the task with that value.
        """
        call = call or self.sync_func
        steps = [functools.partial(_resume_with, call, values[0])]
        for value in values[1:]:
            steps.append(functools.partial(_record_and_resume_with, self.trace, call, value))
        steps.append(functools.partial(_record_and_finish, self.trace))
        return StepTask(steps)

    def plain(self, value: Any, call: Optional[Callable[..., None]] = None, err: Any = None,
              pass_value: bool = False) -> Callable[..., None]:
        """Builds a plain task that gets `value` through `call`, records it, then calls back with `err`."""
        call = call or self.sync_func

        def task(next_):
            def on_result(result_err, result):
                self.trace.append(result)
                if pass_value:
                    next_(result_err, result)
                else:
                    next_(result_err)

            call(err, value, on_result)

        task.__name__ = f"plain_{value}"
        return task


def _resume_with(call, value, next_):
    call(None, value, next_)


def _record_and_resume_with(trace, call, value, next_, result):
    trace.append(result)
    call(None, value, next_)


def _record_and_finish(trace, next_, result):
    trace.append(result)
    next_(None, result)


@pytest.fixture()
def kit() -> TaskKit:
    return TaskKit()


def boom(*_args) -> None:
    """A task (or step) whose body raises."""
    raise ZeroDivisionError("boom")


@pytest.fixture()
def boom_task():
    return boom
