"""
Review Data Models

Lint diagnostics and review comment models
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class Diagnostic:
    """A single lint finding on one line of a file"""
    line: int
    rule_id: str
    message: str
    severity: str  # 'error', 'warning'

    def __post_init__(self):
        """데이터 검증"""
        if self.line <= 0:
            raise ValueError("Line number must be positive")

        valid_severities = {'error', 'warning'}
        if self.severity not in valid_severities:
            raise ValueError(f"Invalid severity: {self.severity}")

    def format(self) -> str:
        return f"**{self.rule_id}**: {self.message}"


@dataclass(frozen=True)
class CommentCandidate:
    """A review comment anchored to a diff position"""
    path: str
    position: int
    body: str

    def __post_init__(self):
        """데이터 검증"""
        if self.position <= 0:
            raise ValueError("Diff position must be positive")

        if not self.body.strip():
            raise ValueError("Comment body cannot be empty")

    @property
    def key(self) -> Tuple[str, int, str]:
        return (self.path, self.position, self.body)

    def to_payload(self) -> Dict[str, Any]:
        return {'path': self.path, 'position': self.position, 'body': self.body}


@dataclass(frozen=True)
class ExistingComment:
    """A comment previously posted by the bot"""
    path: str
    position: int
    body: str

    @property
    def key(self) -> Tuple[str, int, str]:
        return (self.path, self.position, self.body)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ExistingComment":
        # outdated comments come back with position null
        return cls(
            path=data.get('path', ''),
            position=data.get('position') or 0,
            body=data.get('body', ''),
        )


@dataclass
class ReviewSubmission:
    """A complete review to submit to a pull request"""
    event: str
    body: str
    comments: List[CommentCandidate] = field(default_factory=list)

    def __post_init__(self):
        """데이터 검증"""
        valid_events = {'APPROVE', 'REQUEST_CHANGES', 'COMMENT'}
        if self.event not in valid_events:
            raise ValueError(f"Invalid review event: {self.event}")

    def to_payload(self) -> Dict[str, Any]:
        return {
            'event': self.event,
            'body': self.body,
            'comments': [comment.to_payload() for comment in self.comments],
        }
