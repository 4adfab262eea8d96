"""Runs a single task; the entry point for step tasks and nested compositions."""
from typing import Optional

from .consts import Callback, TaskLike
from .series import series
from .task import as_task


def run(task: TaskLike, completion: Optional[Callback] = None) -> None:
    """
    Runs one task; equivalent to `series([task], completion)`.

    `run(task, next)` has the same continuation contract as any task, so it can be called from inside a step to nest
    another run; the nested run's values and errors reach `next` as if it were a plain suspension point.

    Raises `InvalidArgument` if `task` isn't a task, a callable or a task list.
    """
    series([as_task(task)], completion)
