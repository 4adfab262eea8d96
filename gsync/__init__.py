"""
Asynchronous control flow over callback-style tasks.

A task is handed a continuation and eventually invokes it once as `next(err, *values)`.  `series` runs a list of tasks
one after another, `parallel` dispatches them all at once, and `run` runs a single task.  A `StepTask` is a task made
of several suspension points run in order; task lists nest, and `run(task, next)` can be called from inside a step.
"""
from .adapters import from_future
from .continuation import Continuation
from .logging import logger as _logger
from .parallel import parallel, ParallelTask
from .run import run
from .series import series, SeriesTask
from .task import InvalidArgument, PlainTask, StepTask, Task, as_task


def set_logging_level(level) -> None:
    """Sets the logging level for the package's logger."""
    _logger.setLevel(level)
