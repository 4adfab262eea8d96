import os
import sys


class SchedulerControl(object):
    """Contains policy for how deferred continuation calls are scheduled."""
    AUTO = "auto"  # Use the running event loop if there is one, the trampoline otherwise.
    LOOP = "loop"  # Always use the running event loop; it's an error if there isn't one.
    TRAMPOLINE = "trampoline"  # Never use the event loop.
    MODES = (AUTO, LOOP, TRAMPOLINE)

    DEFAULT_MODE = AUTO
    MODE_ENV = "GSYNC_DEFER_MODE"

    def __init__(self) -> None:
        self.mode = self.DEFAULT_MODE
        mode_str = os.environ.get(self.MODE_ENV)
        if mode_str is not None:
            mode_str = mode_str.strip().lower()
            if mode_str in self.MODES:
                self.mode = mode_str
                print(f"Defer mode set to: {self.mode}", file=sys.stderr)
            else:
                print(f"Environment {self.MODE_ENV} not one of {', '.join(self.MODES)}: {mode_str}", file=sys.stderr)

    def set_mode(self, mode: str) -> None:
        """Changes the scheduling mode; raises ValueError for an unknown mode."""
        if mode not in self.MODES:
            raise ValueError(f"Unknown defer mode: {mode!r}")
        self.mode = mode

    def may_use_loop(self) -> bool:
        """Returns True if deferred calls may go through a running event loop."""
        return self.mode != self.TRAMPOLINE

    def requires_loop(self) -> bool:
        """Returns True if deferred calls must go through a running event loop."""
        return self.mode == self.LOOP
