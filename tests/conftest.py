"""
Shared fixtures for Lint Reviewer tests.
"""

import asyncio
import os
import shutil
import sys
from typing import Dict, List, Optional, Tuple

import pytest

from lint_reviewer.config import AppConfig, GitHubConfig, ReviewConfig
from lint_reviewer.github.client import NotFoundError
from lint_reviewer.models.pr_diff import ChangedFile
from lint_reviewer.models.review import Diagnostic


class FakeGateway:
    """
    In-memory stand-in for PullRequestGateway.

    ``files`` maps a path to its content at every revision, or a
    ``(path, revision)`` pair to the content at that revision only.
    Every call is recorded so tests can assert on network access.
    """

    def __init__(
        self,
        files: Optional[Dict] = None,
        changed_files: Optional[List[ChangedFile]] = None,
        reviews: Optional[List[Dict]] = None,
        review_comments: Optional[Dict[int, List[Dict]]] = None
    ):
        self.files = dict(files or {})
        self.changed_files = list(changed_files or [])
        self.reviews = list(reviews or [])
        self.review_comments = dict(review_comments or {})

        self.calls: List[str] = []
        self.reads: List[Tuple[str, str]] = []
        self.created_reviews: List[Dict] = []
        self.dismissed: List[Tuple[int, int, str]] = []

    async def compare_revisions(self, base: str, head: str) -> List[ChangedFile]:
        self.calls.append('compare_revisions')
        return list(self.changed_files)

    async def read_file(self, path: str, revision: str) -> str:
        self.calls.append('read_file')
        self.reads.append((path, revision))
        # let concurrent readers interleave
        await asyncio.sleep(0)

        if (path, revision) in self.files:
            return self.files[(path, revision)]
        if path in self.files:
            return self.files[path]
        raise NotFoundError(f"Not found: {path}@{revision}", status_code=404)

    async def list_reviews(self, pr_number: int) -> List[Dict]:
        self.calls.append('list_reviews')
        return list(self.reviews)

    async def list_review_comments(self, pr_number: int, review_id: int) -> List[Dict]:
        self.calls.append('list_review_comments')
        return list(self.review_comments.get(review_id, []))

    async def create_review(self, pr_number: int, submission, commit_id: Optional[str] = None) -> Dict:
        self.calls.append('create_review')
        review_id = 1000 + len(self.created_reviews)
        payload = submission.to_payload()
        self.created_reviews.append({'pr_number': pr_number, 'commit_id': commit_id, **payload})

        # later cycles see this review like the real API would
        self.reviews.append({'id': review_id, 'user': {'login': 'lint-review-bot[bot]'}, 'state': 'CHANGES_REQUESTED'})
        self.review_comments[review_id] = payload['comments']
        return {'id': review_id, 'state': 'CHANGES_REQUESTED'}

    async def dismiss_review(self, pr_number: int, review_id: int, message: str) -> Dict:
        self.calls.append('dismiss_review')
        self.dismissed.append((pr_number, review_id, message))
        return {'id': review_id, 'state': 'DISMISSED'}


class StubLinter:
    """Lint engine returning canned diagnostics per path."""

    def __init__(self, diagnostics: Optional[Dict[str, List[Diagnostic]]] = None):
        self.diagnostics = dict(diagnostics or {})
        self.calls: List[Tuple[str, str, object]] = []

    def lint(self, file_path: str, code_content: str, config) -> List[Diagnostic]:
        self.calls.append((file_path, code_content, config))
        return list(self.diagnostics.get(file_path, []))


@pytest.fixture(scope="session")
def fake_gateway_cls():
    return FakeGateway


@pytest.fixture(scope="session")
def stub_linter_cls():
    return StubLinter


@pytest.fixture
def app_config():
    return AppConfig(
        github=GitHubConfig(token="ghp_test_token_123456789"),
        review=ReviewConfig(),
    )


@pytest.fixture
def pull_request_payload():
    return {
        'action': 'opened',
        'number': 7,
        'pull_request': {
            'number': 7,
            'state': 'open',
            'draft': False,
            'merged': False,
            'base': {'sha': 'base0000000000000000000000000000000000000'},
            'head': {'sha': 'head1111111111111111111111111111111111111'},
        },
        'repository': {'full_name': 'octo/widgets'},
    }


@pytest.fixture(scope="session")
def ruff_binary():
    """Path of the installed Ruff executable; skips when there is none."""
    binary = shutil.which("ruff") or os.path.join(os.path.dirname(sys.executable), "ruff")
    if not os.path.exists(binary):
        pytest.skip("ruff executable not available")
    return binary
