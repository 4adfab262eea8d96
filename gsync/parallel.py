"""Dispatches tasks all at once and signals completion once."""
import functools
from typing import Any, List, Optional, Sequence

from .consts import Callback, Index, NO_INDEX, TaskLike, Values
from .continuation import Continuation, can_deliver_faults
from .logging import log, log_begin, log_end, new_run_id
from .scheduler import defer, turn
from .task import Task, validate_tasks


class _ParallelRun(object):
    """State of one parallel run; owned by the run and discarded once the completion has fired."""

    def __init__(self, tasks: List[Task], completion: Optional[Callback]) -> None:
        self.run_id = new_run_id()
        self.tasks = tasks
        self.completion = completion

        self.remaining = len(tasks)  # Tasks that haven't called back yet.
        self.broken = False  # Set on the first error.
        self.completed = False  # Set once the completion has been scheduled; it must never be scheduled again.
        self.outcome: Any = None  # Error the scheduled completion will be invoked with.

    def start(self) -> None:
        log_begin(self.run_id, NO_INDEX, f"parallel of {len(self.tasks)}")
        if not self.tasks:
            self._complete(None, immediately=True)
            return

        with turn():
            for index, task in enumerate(self.tasks):
                if self.broken:
                    # Only possible if an earlier task reported an error synchronously while being dispatched.
                    log(self.run_id, Index(index), "broken during dispatch; not dispatching the rest")
                    break

                log(self.run_id, Index(index), f"dispatch {task!r}")
                cont = Continuation(functools.partial(self._resume, Index(index)),
                                    catches_faults=can_deliver_faults(self.completion),
                                    label=f"parallel {self.run_id}[{index}]")
                try:
                    task.start(cont)
                except Exception as e:
                    if not cont.fired:
                        cont.fault(e)
                    elif not self._late_fault(Index(index), e):
                        raise

    def _late_fault(self, index: Index, exc: Exception) -> bool:
        """Breaks the run with an exception raised after the task called back; returns False if it can't be reported."""
        if self.broken or not can_deliver_faults(self.completion):
            return False
        self.broken = True
        log(self.run_id, index, f"raised after calling back: {exc!r}")
        if self.completed:
            # Success is scheduled but can't have been delivered while the task body was still running.
            self.outcome = exc
        else:
            self._complete(exc)
        return True

    def _resume(self, index: Index, err: Any, values: Values) -> None:
        self.remaining -= 1
        if self.completed:
            log(self.run_id, index, f"absorbed after completion (err={err!r}, remaining={self.remaining})")
            return

        if err is not None:
            self.broken = True
            log(self.run_id, index, f"error: {err!r}")
            self._complete(err)
        elif self.remaining == 0:
            self._complete(None)

    def _complete(self, err: Any, *, immediately: bool = False) -> None:
        """Fires the completion; guarded so it happens at most once per run."""
        if self.completed:
            return
        self.completed = True
        self.outcome = err
        log_end(self.run_id, NO_INDEX, "parallel")

        if self.completion is None:
            return
        if immediately:
            self._fire()
        else:
            defer(self._fire)

    def _fire(self) -> None:
        self.completion(self.outcome)


def parallel(tasks: Sequence[TaskLike], completion: Optional[Callback] = None) -> None:
    """
    Dispatches every task in `tasks`, in list order, without waiting for any of them.

    `completion(None)` is invoked once all tasks have called back successfully, or `completion(err)` as soon as the
    first one reports an error.  Tasks already dispatched are not cancelled by an error; their outcomes are counted
    but never trigger the completion again.  An empty list completes immediately with `completion(None)`.

    Raises `InvalidArgument` if `tasks` isn't an ordered sequence of tasks; the completion is not invoked then.
    """
    run = _ParallelRun(validate_tasks(tasks), completion)
    with turn():
        run.start()


class ParallelTask(Task):
    """A nested task list run in parallel, usable wherever a task is expected."""

    def __init__(self, tasks: Sequence[TaskLike]) -> None:
        self.tasks = validate_tasks(tasks)

    def start(self, callback: Callback) -> None:
        _ParallelRun(self.tasks, callback).start()

    def __repr__(self) -> str:
        return f"ParallelTask({len(self.tasks)})"
