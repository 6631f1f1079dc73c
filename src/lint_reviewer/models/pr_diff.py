"""
PR Diff Data Models

Pull request diff and webhook event models
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, field_validator


# new-file line number -> 1-based diff position
PositionMap = Dict[int, int]


class DiffLineKind(Enum):
    """Tag of a physical line inside a hunk."""
    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"


@dataclass
class DiffLine:
    """One physical diff line with its position and new-file line number."""
    kind: DiffLineKind
    content: str
    position: int
    new_line: Optional[int] = None


@dataclass
class DiffHunk:
    """A hunk of a unified diff"""
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: List[DiffLine] = field(default_factory=list)

    def __post_init__(self):
        """데이터 검증"""
        if self.old_start < 0 or self.new_start < 0:
            raise ValueError("Line numbers must be non-negative")
        if self.old_lines < 0 or self.new_lines < 0:
            raise ValueError("Line counts must be non-negative")

    @property
    def added_lines(self) -> List[DiffLine]:
        return [line for line in self.lines if line.kind is DiffLineKind.ADDED]

    @property
    def removed_lines(self) -> List[DiffLine]:
        return [line for line in self.lines if line.kind is DiffLineKind.REMOVED]


@dataclass
class ChangedFile:
    """A file entry from the compare API"""
    filename: str
    status: str  # 'added', 'modified', 'removed', 'renamed', 'copied', 'changed', 'unchanged'
    patch: Optional[str] = None
    additions: int = 0
    deletions: int = 0

    def __post_init__(self):
        """데이터 검증"""
        if not self.filename:
            raise ValueError("filename must not be empty")
        if self.additions < 0 or self.deletions < 0:
            raise ValueError("Addition and deletion counts must be non-negative")

    @property
    def is_removed(self) -> bool:
        return self.status == 'removed'

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ChangedFile":
        return cls(
            filename=data['filename'],
            status=data.get('status', 'modified'),
            patch=data.get('patch'),
            additions=data.get('additions', 0),
            deletions=data.get('deletions', 0),
        )


# Pydantic models for webhook validation
class PullRequestEvent(BaseModel):
    """Validated view of a pull_request webhook payload"""
    action: str
    repository: str
    pr_number: int
    state: str
    draft: bool = False
    merged: bool = False
    base_sha: str
    head_sha: str

    @field_validator('repository')
    @classmethod
    def validate_repository(cls, v):
        if v.count('/') != 1 or v.startswith('/') or v.endswith('/'):
            raise ValueError('Repository must be in format "owner/repo"')
        return v

    @field_validator('pr_number')
    @classmethod
    def validate_pr_number(cls, v):
        if v <= 0:
            raise ValueError('PR number must be positive')
        return v

    @classmethod
    def from_webhook(cls, payload: Dict[str, Any]) -> "PullRequestEvent":
        """
        Build an event from a raw webhook payload.

        For ``synchronize`` events the ``before``/``after`` revisions replace
        the pull request's base/head so that only the pushed commits are diffed.
        """
        pull_request = payload.get('pull_request') or {}
        action = payload.get('action', '')

        base_sha = (pull_request.get('base') or {}).get('sha', '')
        head_sha = (pull_request.get('head') or {}).get('sha', '')
        if action == 'synchronize' and payload.get('before') and payload.get('after'):
            base_sha = payload['before']
            head_sha = payload['after']

        return cls(
            action=action,
            repository=(payload.get('repository') or {}).get('full_name', ''),
            pr_number=pull_request.get('number', 0),
            state=pull_request.get('state', ''),
            draft=bool(pull_request.get('draft', False)),
            merged=bool(pull_request.get('merged', False)),
            base_sha=base_sha,
            head_sha=head_sha,
        )

    @property
    def owner(self) -> str:
        return self.repository.split('/')[0]

    @property
    def repo(self) -> str:
        return self.repository.split('/')[1]

    @property
    def is_reviewable(self) -> bool:
        """Only open, non-draft, unmerged pull requests are reviewed."""
        return self.state == 'open' and not self.draft and not self.merged
