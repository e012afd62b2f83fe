"""
Progress indicator shown while a test is being submitted or polled.
"""

import threading
from typing import Optional, Sequence

from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner as RichSpinner

SPINNER_NAME = "dots"
# ⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏
DEFAULT_FRAMES = tuple(RichSpinner(SPINNER_NAME).frames)


class Spinner:
    """
    A transient rich spinner.

    Start and stop run under `lock`, which the Formatter shares so the
    spinner never competes with a snapshot display for the console.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        frames: Sequence[str] = DEFAULT_FRAMES,
        refresh_per_second: float = 10,
        lock: Optional[threading.RLock] = None,
    ):
        self.console = console or Console()
        self.frames = list(frames)
        self.refresh_per_second = refresh_per_second
        self.lock = lock or threading.RLock()
        self._live: Optional[Live] = None
        self._pos = 0

    @property
    def active(self) -> bool:
        return self._live is not None

    def start(self) -> None:
        """Start drawing; does nothing if the spinner is already running."""
        with self.lock:
            if self._live is not None:
                return
            self._live = Live(
                RichSpinner(SPINNER_NAME),
                console=self.console,
                refresh_per_second=self.refresh_per_second,
                transient=True,
            )
            self._live.start(refresh=True)

    def stop(self) -> None:
        """Erase the spinner. Safe to call when not started."""
        with self.lock:
            live, self._live = self._live, None
            if live is not None:
                live.stop()

    def step(self) -> str:
        """Advance the animation and return the next frame without drawing it."""
        with self.lock:
            frame = self.frames[self._pos % len(self.frames)]
            self._pos += 1
            return frame
