"""
Pull Request Gateway

Async facade over GitHubClient bound to one repository. The blocking
client calls run in worker threads so per-file work can overlap.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from .client import GitHubClient
from .parser import PatchParser
from ..models.pr_diff import ChangedFile
from ..models.review import ReviewSubmission


logger = logging.getLogger(__name__)


class PullRequestGateway:
    """Repository-scoped platform operations used by a review cycle."""

    def __init__(self, client: GitHubClient, owner: str, repo: str):
        self.client = client
        self.owner = owner
        self.repo = repo
        self.parser = PatchParser()

    async def compare_revisions(self, base: str, head: str) -> List[ChangedFile]:
        files = await asyncio.to_thread(self.client.compare_commits, self.owner, self.repo, base, head)
        return self.parser.parse_changed_files(files)

    async def read_file(self, path: str, revision: str) -> str:
        """Raises NotFoundError when the path is missing at the revision."""
        return await asyncio.to_thread(self.client.get_file_content, self.owner, self.repo, path, revision)

    async def list_reviews(self, pr_number: int) -> List[Dict]:
        return await asyncio.to_thread(self.client.list_reviews, self.owner, self.repo, pr_number)

    async def list_review_comments(self, pr_number: int, review_id: int) -> List[Dict]:
        return await asyncio.to_thread(
            self.client.list_review_comments, self.owner, self.repo, pr_number, review_id
        )

    async def create_review(
        self,
        pr_number: int,
        submission: ReviewSubmission,
        commit_id: Optional[str] = None
    ) -> Dict:
        payload = submission.to_payload()
        return await asyncio.to_thread(
            self.client.create_review,
            self.owner,
            self.repo,
            pr_number,
            payload['event'],
            payload['body'],
            payload['comments'],
            commit_id,
        )

    async def dismiss_review(self, pr_number: int, review_id: int, message: str) -> Dict:
        return await asyncio.to_thread(
            self.client.dismiss_review, self.owner, self.repo, pr_number, review_id, message
        )
