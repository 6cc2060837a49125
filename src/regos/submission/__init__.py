"""
Submission module - respondents' answers and the host review workflow
"""

from regos.submission.models import StatusChange, Submission, SubmissionStatus
from regos.submission.store import SubmissionStore

__all__ = [
    "StatusChange",
    "Submission",
    "SubmissionStatus",
    "SubmissionStore",
]
