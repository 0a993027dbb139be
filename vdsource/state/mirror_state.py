"""
Local mirror state: cache hits, existing files and failures of the prior run
"""
import re
from pathlib import Path
from .. import config as _cfg
from .run_log import FAILED_MARKER, DOWNLOADED_MARKER, SKIPPED_MARKER

_FAILED_RE = re.compile(re.escape(FAILED_MARKER) + r" .*?/" + re.escape(_cfg.SOURCE_DIR_NAME) + r"/(.+?): ")
_DONE_RE = re.compile(
    r"(?:" + re.escape(DOWNLOADED_MARKER) + "|" + re.escape(SKIPPED_MARKER) + r") "
    r".*?/" + re.escape(_cfg.SOURCE_DIR_NAME) + r"/(.+)$"
)


def is_cached_hit(path: Path) -> bool:
    """True iff a regular file exists at *path* and is not empty."""
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def has_existing_content(directory: Path) -> bool:
    """True if *directory* exists and holds at least one entry."""
    if not directory.is_dir():
        return False
    return any(True for _ in directory.iterdir())


def existing_file_count(directory: Path) -> int:
    """Recursive count of regular files under *directory*."""
    if not directory.is_dir():
        return 0
    return sum(1 for p in directory.rglob("*") if p.is_file())


def _rel_after(line: str, marker: str, source_prefix: str, pattern: re.Pattern):
    """
    Extract the source-relative path from a marker line.

    The exact source directory of this mirror is tried first so that paths
    containing a "source" component survive; the generic pattern covers
    logs written from a different output location.
    """
    head = f"{marker} {source_prefix}"
    if line.startswith(head):
        rest = line[len(head):]
        if marker == FAILED_MARKER:
            rel, sep, _ = rest.partition(": ")
            return rel if sep and rel else None
        return rest or None
    m = pattern.search(line)
    return m.group(1) if m else None


def prior_failures(deploy_dir: Path) -> set[str]:
    """
    Parse the previous run log of *deploy_dir* and return the relative paths
    whose latest recorded state is a failed download.

    Must be called before the log is reopened for a new run.
    """
    log_file = deploy_dir / _cfg.LOG_FILE_NAME
    if not log_file.is_file():
        return set()

    source_prefix = (deploy_dir / _cfg.SOURCE_DIR_NAME).as_posix() + "/"
    failed: dict[str, None] = {}
    with log_file.open("r", encoding="utf-8", errors="replace") as f:
        for raw in f:
            line = raw.rstrip("\n").strip()
            if FAILED_MARKER in line:
                rel = _rel_after(line, FAILED_MARKER, source_prefix, _FAILED_RE)
                if rel:
                    failed[rel] = None
            elif line.startswith(DOWNLOADED_MARKER):
                rel = _rel_after(line, DOWNLOADED_MARKER, source_prefix, _DONE_RE)
                if rel:
                    failed.pop(rel, None)
            elif line.startswith(SKIPPED_MARKER):
                rel = _rel_after(line, SKIPPED_MARKER, source_prefix, _DONE_RE)
                if rel:
                    failed.pop(rel, None)
    return set(failed)
