"""Service layer exports."""

from .analysis_workflow import AnalysisWorkflow, WorkflowState
from .auth import AuthController, RegistrationResult
from .session import SessionState, SessionStore
from .statistics import monthly_histogram, recent, summarize

__all__ = [
    "AnalysisWorkflow",
    "AuthController",
    "RegistrationResult",
    "SessionState",
    "SessionStore",
    "WorkflowState",
    "monthly_histogram",
    "recent",
    "summarize",
]
