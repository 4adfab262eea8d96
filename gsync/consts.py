"""Contains constants and type aliases for the gsync package."""
from typing import Any, Callable, NewType, Sequence, Tuple, Union

from typing_extensions import Protocol


class Callback(Protocol):
    """A continuation: takes an optional error followed by any number of result values."""
    def __call__(self, err: Any = None, *values: Any) -> None: ...


Values = Tuple[Any, ...]  # Values passed to the most recent continuation invocation.

PlainTaskFn = Callable[[Callback], None]  # A single-shot operation that eventually calls back once.
StepT = Callable[..., None]  # A suspension point: invoked as `step(next, *previous_values)`.
TaskLike = Union[PlainTaskFn, "Task", Sequence[Any]]  # Anything `as_task` accepts.

# Stronger typing for integers.
RunId = NewType("RunId", int)
Index = NewType("Index", int)

NO_INDEX = Index(-1)  # Used when a log line isn't about a particular task.
