"""Runs tasks strictly one after another, stopping at the first error."""
from typing import Any, List, Optional, Sequence

from .consts import Callback, Index, Values, TaskLike
from .continuation import Continuation, can_deliver_faults
from .logging import log, log_begin, log_end, new_run_id
from .scheduler import defer, turn
from .task import Task, validate_tasks


class _SeriesRun(object):
    """State of one series run; owned by the run and discarded once the completion has fired."""

    def __init__(self, tasks: List[Task], completion: Optional[Callback]) -> None:
        self.run_id = new_run_id()
        self.tasks = tasks
        self.completion = completion

        self.index = 0
        self.broken = False  # Set on the first error; nothing past the failing task is dispatched.
        self.last_values: Values = ()  # Values passed to the most recent continuation.

    def start(self) -> None:
        log_begin(self.run_id, Index(self.index), f"series of {len(self.tasks)}")
        self.dispatch()

    def dispatch(self) -> None:
        """Dispatches the task at the current index, or finishes the run if there is none."""
        if self.index == len(self.tasks):
            log_end(self.run_id, Index(self.index), "series")
            if not self.broken and self.completion is not None:
                self.completion(None, *self.last_values)
            return

        task = self.tasks[self.index]
        log(self.run_id, Index(self.index), f"dispatch {task!r}")
        cont = Continuation(self._resume, catches_faults=can_deliver_faults(self.completion),
                            label=f"series {self.run_id}[{self.index}]")
        # The turn holds back whatever the task's callback defers until the task body has returned or raised.
        with turn():
            try:
                task.start(cont)
            except Exception as e:
                if not cont.fired:
                    cont.fault(e)
                elif not self._late_fault(e):
                    raise

    def _late_fault(self, exc: Exception) -> bool:
        """Breaks the run with an exception raised after the task called back; returns False if it can't be reported."""
        if self.broken or not can_deliver_faults(self.completion):
            return False
        self.broken = True
        log(self.run_id, Index(self.index), f"raised after calling back: {exc!r}")
        defer(self.completion, exc)
        return True

    def _resume(self, err: Any, values: Values) -> None:
        self.last_values = values
        if err is not None:
            self.broken = True
            log(self.run_id, Index(self.index), f"error: {err!r}")
            if self.completion is not None:
                defer(self.completion, err, *values)
            return

        defer(self._advance)

    def _advance(self) -> None:
        if self.broken:
            return
        self.index += 1
        self.dispatch()


def series(tasks: Sequence[TaskLike], completion: Optional[Callback] = None) -> None:
    """
    Runs `tasks` in order; each task is dispatched only after the previous one has called back without an error.

    On success, `completion(None, *values)` is invoked with the values passed to the last continuation.  On the first
    error, `completion(err, *values)` is invoked and no further task runs.  An empty list completes immediately with
    `completion(None)`.  Without a completion, a failing task simply halts the chain.

    Raises `InvalidArgument` if `tasks` isn't an ordered sequence of tasks; the completion is not invoked then.
    """
    run = _SeriesRun(validate_tasks(tasks), completion)
    with turn():
        run.start()


class SeriesTask(Task):
    """A nested task list run in series, usable wherever a task is expected."""

    def __init__(self, tasks: Sequence[TaskLike]) -> None:
        self.tasks = validate_tasks(tasks)

    def start(self, callback: Callback) -> None:
        _SeriesRun(self.tasks, callback).start()

    def __repr__(self) -> str:
        return f"SeriesTask({len(self.tasks)})"
