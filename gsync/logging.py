"""Custom logging function to ensure format conformity."""
import itertools
import logging
import time
from typing import Optional

from .consts import Index, RunId

logger = logging.getLogger("gsync")

_run_ids = itertools.count()


def new_run_id() -> RunId:
    """Returns an identifier for a new executor run, unique within the process."""
    return RunId(next(_run_ids))


def log(run_id: RunId, index: Index, msg: str, *, timestamp: Optional[float] = None) -> None:
    """Writes a debug entry for an executor run."""
    if not logger.isEnabledFor(logging.DEBUG):
        return

    timestamp = timestamp or time.time()
    time_micro = int(timestamp * 1e6)
    logger.debug("[run=%d, index=%d, time=%d] %s", run_id, index, time_micro, msg)


def log_begin(run_id: RunId, index: Index, event: str, *, timestamp: Optional[float] = None) -> None:
    """Logs the start of an event."""
    return log(run_id, index, "begin: " + event, timestamp=timestamp)


def log_end(run_id: RunId, index: Index, event: str, *, timestamp: Optional[float] = None) -> None:
    """Logs the end of an event."""
    return log(run_id, index, "end: " + event, timestamp=timestamp)
