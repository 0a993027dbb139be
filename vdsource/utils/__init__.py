"""Utilities (logging, retry, spinner)"""
from .logging import log, vlog, warn, error, set_verbose
from .retry import retried
from .spinner import Spinner

__all__ = [
    "log", "vlog", "warn", "error", "set_verbose",
    "retried",
    "Spinner",
]
