"""State management (run log, outcome ledger, local mirror state)"""
from .outcomes import OutcomeState, OutcomeRecord, Outcomes
from .run_log import RunLog
from .mirror_state import is_cached_hit, has_existing_content, existing_file_count, prior_failures

__all__ = [
    "OutcomeState", "OutcomeRecord", "Outcomes",
    "RunLog",
    "is_cached_hit", "has_existing_content", "existing_file_count", "prior_failures",
]
