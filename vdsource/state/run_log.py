"""
Run log: the append-only download-log.txt plus console echo

Lines emitted before the log file is known (deployment lookup) are buffered
and written out when the file is opened for the run.
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from ..utils.logging import log, vlog, error

SEPARATOR = "─" * 60

# Line shapes that prior_failures() parses back; keep them stable.
FAILED_MARKER = "❌ Failed to download"
DOWNLOADED_MARKER = "✅ Downloaded:"
SKIPPED_MARKER = "⏭️  Skipping (already exists):"


def failed_line(path: Path, err) -> str:
    return f"{FAILED_MARKER} {path.as_posix()}: {err}"


def downloaded_line(path: Path) -> str:
    return f"{DOWNLOADED_MARKER} {path.as_posix()}"


def skipped_line(path: Path) -> str:
    return f"{SKIPPED_MARKER} {path.as_posix()}"


class RunLog:

    def __init__(self):
        self._path: Optional[Path] = None
        self._buffer: list[str] = []

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def open(self, log_file: Path, fresh: bool = False):
        """
        Start writing to *log_file*. A fresh log (or a missing file) is
        truncated; otherwise a timestamped banner is appended first.
        """
        log_file.parent.mkdir(parents=True, exist_ok=True)
        body = "".join(line + "\n" for line in self._buffer)
        if fresh or not log_file.exists():
            log_file.write_text(body, encoding="utf-8")
        else:
            stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
            banner = f"\n{SEPARATOR}\n📅 New run: {stamp}\n{SEPARATOR}\n"
            with log_file.open("a", encoding="utf-8") as f:
                f.write(banner + body)
        self._buffer.clear()
        self._path = log_file

    def _append(self, msg: str):
        if self._path is None:
            self._buffer.append(msg)
            return
        with self._path.open("a", encoding="utf-8") as f:
            f.write(msg + "\n")

    def info(self, msg: str = "", always: bool = False):
        """Record a line; echo it on the console when verbose or *always*."""
        self._append(msg)
        if always:
            log(msg)
        else:
            vlog(msg)

    def error(self, msg: str):
        """Record a line and always echo it on stderr."""
        self._append(msg)
        error(msg)
