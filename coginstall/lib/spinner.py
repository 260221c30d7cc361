from __future__ import annotations

import shutil
import sys
import threading
import time
from typing import TextIO


class Spinner:
    """A minimal CLI spinner context manager.

    Purely cosmetic; shares nothing with the command it decorates.
    """

    FRAMES = "|/-\\"

    def __init__(
        self,
        text: str = "Working...",
        *,
        file: TextIO | None = None,
        interval: float = 0.1,
        enabled: bool | None = None,
    ) -> None:
        self.text = text
        self.file = file or sys.stderr
        self.interval = interval
        self.enabled = self.file.isatty() if enabled is None else enabled
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def __enter__(self) -> "Spinner":
        if self.enabled:
            self._thread = threading.Thread(target=self._run, daemon=True)
            self._thread.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def stop(self) -> None:
        """Stop the spinner and clear the line."""
        self._stop_event.set()
        if self._thread is None:
            return
        if self._thread.is_alive():
            self._thread.join()
        self._thread = None
        cols = shutil.get_terminal_size((80, 20)).columns
        self.file.write("\r" + " " * (cols - 1) + "\r")
        self.file.flush()

    def _run(self) -> None:
        frame_index = 0
        while not self._stop_event.is_set():
            frame = self.FRAMES[frame_index % len(self.FRAMES)]
            self.file.write(f"\r{frame} {self.text}")
            self.file.flush()
            time.sleep(self.interval)
            frame_index += 1
