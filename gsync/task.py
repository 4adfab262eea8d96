"""
Tasks: units of work that are handed a continuation and eventually invoke it once with `(err, *values)`.

Executors only ever see `Task` objects; `as_task` turns plain callables and nested task lists into tasks.
"""
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, Iterable, List, Optional

from .consts import Callback, PlainTaskFn, StepT, TaskLike, Values
from .continuation import Continuation, can_deliver_faults, fail
from .scheduler import defer, turn


class InvalidArgument(TypeError):
    """Raised synchronously, before anything is dispatched, when an executor is given something that isn't a task."""
    pass


class Task(ABC):
    """Abstract base class for tasks."""

    @abstractmethod
    def start(self, callback: Callback) -> None:
        """Dispatches the task; `callback(err, *values)` is invoked once when it finishes."""
        pass

    def __call__(self, callback: Callback) -> None:
        """Lets a task be used wherever a plain callback-style function is expected."""
        self.start(callback)


class PlainTask(Task):
    """A task with no internal suspension points: `fn(callback)` does the work and calls back once."""

    def __init__(self, fn: PlainTaskFn) -> None:
        if not callable(fn):
            raise InvalidArgument(f"A plain task must be callable, not {type(fn).__name__}.")
        self.fn = fn

    def start(self, callback: Callback) -> None:
        self.fn(callback)

    def __repr__(self) -> str:
        return f"PlainTask({getattr(self.fn, '__name__', self.fn)!r})"


class StepTask(Task):
    """
    A task made of suspension points run one at a time.

    Each step is called as `step(next, *values)`, where `values` are what the previous step passed to its `next`
    (nothing, for the first step).  The task finishes with the values the last step passed on.  The first step to
    report an error ends the task with that error and the values reported alongside it; later steps don't run.

    A step may also be a `Task` or a nested task list, in which case it ignores the previous values and resumes
    with whatever the nested task finishes with.
    """

    def __init__(self, steps: Iterable[Any], name: Optional[str] = None) -> None:
        if not isinstance(steps, Iterable) or isinstance(steps, (str, bytes, bytearray)):
            raise InvalidArgument(f"Steps must be an iterable of steps, not {type(steps).__name__}.")
        self.steps: List[StepT] = [_as_step(step) for step in steps]
        self.name = name

    def start(self, callback: Callback) -> None:
        _StepDriver(self, callback).advance()

    def __repr__(self) -> str:
        return f"StepTask({self.name or len(self.steps)!r})"


class _StepDriver(object):
    """Cursor over one dispatch of a StepTask; the task itself is never mutated."""

    def __init__(self, task: StepTask, callback: Callback) -> None:
        self.task = task
        self.callback = callback
        self.cursor = 0  # Index of the next step to run.
        self.values: Values = ()  # Values of the most recent step continuation.
        self.failed = False

    def advance(self) -> None:
        """Runs the next step, or finishes the task if there are none left."""
        if self.failed:
            return

        if self.cursor == len(self.task.steps):
            self.callback(None, *self.values)
            return

        step = self.task.steps[self.cursor]
        self.cursor += 1
        cont = Continuation(self._resume, catches_faults=can_deliver_faults(self.callback),
                            label=f"{self.task!r} step {self.cursor - 1}")
        with turn():
            try:
                step(cont, *self.values)
            except Exception as e:
                if self.failed:  # The step already reported an error; the callback has had its one call.
                    raise
                self.failed = True
                fail(self.callback, e)

    def _resume(self, err: Any, values: Values) -> None:
        self.values = values
        if err is not None:
            self.failed = True
            self.callback(err, *values)
        else:
            defer(self.advance)


def _is_task_list(obj: object) -> bool:
    """Returns True if `obj` is an ordered sequence usable as a task list."""
    return isinstance(obj, Sequence) and not isinstance(obj, (str, bytes, bytearray))


def _as_step(obj: Any) -> StepT:
    """Converts a step definition into a callable taking `(next, *values)`."""
    if isinstance(obj, Task) or _is_task_list(obj):
        task = as_task(obj)

        def run_nested(next_: Callback, *_values: Any) -> None:
            task.start(next_)

        return run_nested

    if callable(obj):
        return obj

    raise InvalidArgument(f"A step must be callable, a task or a task list, not {type(obj).__name__}.")


def as_task(obj: TaskLike) -> Task:
    """Returns `obj` as a Task: tasks are returned as is, task lists run as a nested series, callables as plain tasks."""
    if isinstance(obj, Task):
        return obj

    if _is_task_list(obj):
        # Imported locally because the series module builds on this one.
        from .series import SeriesTask
        return SeriesTask(obj)

    if callable(obj):
        return PlainTask(obj)

    raise InvalidArgument(f"Not a task: {obj!r}")


def validate_tasks(tasks: Any) -> List[Task]:
    """Checks that `tasks` is an ordered sequence of task-like objects; returns them as Tasks."""
    if not _is_task_list(tasks):
        raise InvalidArgument(f"First parameter must be an ordered sequence of tasks, not {type(tasks).__name__}.")
    return [as_task(task) for task in tasks]
