"""Core functionality"""
from .api_client import ApiClient
from .session import SessionMode, ResumeChoice, SessionPlan, plan_session
from .sync_engine import TreeWalker, run_download, retry_failed_pass

__all__ = [
    "ApiClient",
    "SessionMode", "ResumeChoice", "SessionPlan", "plan_session",
    "TreeWalker", "run_download", "retry_failed_pass",
]
