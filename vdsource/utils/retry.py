"""
Retry decorator for setup-phase API calls
"""
import functools
import time
from .logging import log, warn
from .. import config as _cfg
from ..errors import TransportError


def retried(fn):
    """Decorator: retry fn up to RETRY_MAX times with exponential back-off.

    Only TransportError is retried; explicit API error answers are returned
    to the caller untouched.
    """

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        delay = _cfg.RETRY_BASE_DELAY
        attempts = max(_cfg.RETRY_MAX, 1)
        for attempt in range(1, attempts + 1):
            try:
                return fn(*args, **kwargs)
            except TransportError as exc:
                if attempt == attempts:
                    raise
                warn(f"{fn.__name__} failed (attempt {attempt}/{attempts}): {exc}")
                log(f"  retrying in {delay:.0f}s …")
                time.sleep(delay)
                delay = min(delay * 2, 60)

    return wrapper
