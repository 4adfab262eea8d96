"""Continuations handed to tasks; they decide how the owning executor or step driver advances."""
import logging
from typing import Any, Callable, Optional

from .consts import Callback, Values

Resume = Callable[[Any, Values], None]  # Receives the error and the tuple of values of one invocation.


class Continuation(object):
    """
    Represents the continuation of one suspension point.

    Invoked by a task as `cont(err, *values)`.  It fires at most once: any later invocation is logged and ignored,
    so a misbehaving task can't advance its owner twice.
    """
    logger = logging.getLogger(__name__)

    def __init__(self, resume: Resume, *, catches_faults: bool, label: str = "") -> None:
        """
        :param resume: called with `(err, values)` on the first invocation.
        :param catches_faults: whether an exception raised by the task body may be delivered through this
            continuation as its error (True only if the chain it feeds ends in a completion callback).
        """
        self.resume = resume
        self.catches_faults = catches_faults
        self.label = label
        self.fired = False

    def __call__(self, err: Any = None, *values: Any) -> None:
        if self.fired:
            self.logger.warning("Continuation %s invoked more than once; ignoring (err=%r).", self, err)
            return

        self.fired = True
        self.resume(err, values)

    def fault(self, exc: Exception) -> None:
        """
        Reports an exception raised by the body of the task holding this continuation.

        The exception object becomes the error of this continuation if it can be delivered; otherwise, or if the
        continuation has already fired, it is re-raised.
        """
        if self.fired or not self.catches_faults:
            raise exc
        self(exc)

    def __repr__(self) -> str:
        return f"<Continuation {self.label or hex(id(self))}>"


def can_deliver_faults(callback: Optional[Callback]) -> bool:
    """Returns True if exceptions raised by task bodies may be delivered to `callback` as errors."""
    if callback is None:
        return False
    if isinstance(callback, Continuation):
        return callback.catches_faults
    return True


def fail(callback: Callback, exc: Exception) -> None:
    """Delivers a task-body exception to `callback` as its error, re-raising it if `callback` can't take it."""
    if isinstance(callback, Continuation):
        callback.fault(exc)
    else:
        callback(exc)
