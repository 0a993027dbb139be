"""
Session policy: fresh run, resume, or retry of previously failed files
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SessionMode(Enum):
    FRESH = "fresh"
    RESUME = "resume"
    RETRY_ONLY = "retry-only"


class ResumeChoice(Enum):
    """Answer to the "previous download detected" question."""
    RESUME = "resume"
    RESTART = "restart"
    RETRY_FAILED = "retry-failed"


@dataclass(frozen=True)
class SessionPlan:
    mode: SessionMode
    retry_paths: frozenset = frozenset()
    fresh_log: bool = False
    clear_output: bool = False

    @property
    def retry_only(self) -> bool:
        return self.mode is SessionMode.RETRY_ONLY


def plan_session(retry_only: bool, has_existing: bool, prior_failures: set,
                 choice: Optional[ResumeChoice] = None) -> Optional[SessionPlan]:
    """
    Decide how this run treats the existing mirror.

    Returns None when a retry-only run finds nothing to retry. *choice* is
    only consulted when *has_existing* is true and defaults to RESUME.
    """
    failures = frozenset(prior_failures)

    if retry_only:
        if not failures:
            return None
        return SessionPlan(SessionMode.RETRY_ONLY, failures)

    if not has_existing:
        return SessionPlan(SessionMode.FRESH, fresh_log=True)

    choice = choice or ResumeChoice.RESUME
    if choice is ResumeChoice.RESTART:
        return SessionPlan(SessionMode.FRESH, fresh_log=True, clear_output=True)
    if choice is ResumeChoice.RETRY_FAILED and failures:
        return SessionPlan(SessionMode.RETRY_ONLY, failures)
    return SessionPlan(SessionMode.RESUME)
