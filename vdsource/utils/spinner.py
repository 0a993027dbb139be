"""
Multi-line progress spinner for non-verbose terminal runs
"""
import sys
import threading
from typing import Callable, Optional

FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
LINES = 4


class Spinner:
    """
    Re-renders a small status block on a background thread.

    *counters* is called on every frame and must return
    (downloaded, skipped, failed); it is only ever read, never written.
    """

    def __init__(self, counters: Callable[[], tuple[int, int, int]],
                 interval: float = 0.1, stream=None):
        self._counters = counters
        self._interval = interval
        self._stream = stream or sys.stdout
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._frame = 0

    @property
    def running(self) -> bool:
        return self._thread is not None

    def _render(self):
        downloaded, skipped, failed = self._counters()
        frame = FRAMES[self._frame % len(FRAMES)]
        lines = [
            f"   {frame} Downloading...",
            f"   ✅ Downloaded: {downloaded}",
            f"   ⏭️  Skipped:    {skipped}",
            f"   ❌ Failed:     {failed}",
        ]
        if self._frame > 0:
            self._stream.write(f"\x1b[{LINES}A")
        self._stream.write("\n".join(f"\r{line}\x1b[K" for line in lines) + "\n")
        self._stream.flush()
        self._frame += 1

    def _run(self):
        while not self._stop.wait(self._interval):
            self._render()

    def start(self):
        if self._thread is not None:
            return
        self._render()
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="vdsource-spinner", daemon=True)
        self._thread.start()

    def stop(self):
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join()
        self._thread = None
        # wipe the block so the following output starts clean
        self._stream.write(f"\x1b[{LINES}A")
        self._stream.write("\r\x1b[K\n" * LINES)
        self._stream.write(f"\x1b[{LINES}A")
        self._stream.flush()
