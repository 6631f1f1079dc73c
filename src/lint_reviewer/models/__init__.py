"""
Data Models

Lint Reviewer 시스템의 핵심 데이터 모델들
"""

from .pr_diff import ChangedFile, DiffHunk, DiffLine, DiffLineKind, PositionMap, PullRequestEvent
from .review import CommentCandidate, Diagnostic, ExistingComment, ReviewSubmission

__all__ = [
    "ChangedFile",
    "DiffHunk",
    "DiffLine",
    "DiffLineKind",
    "PositionMap",
    "PullRequestEvent",
    "CommentCandidate",
    "Diagnostic",
    "ExistingComment",
    "ReviewSubmission",
]
