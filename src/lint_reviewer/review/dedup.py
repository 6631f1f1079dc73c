"""
Comment Deduplicator

Filters comment candidates against the comments the bot already posted
on the pull request, so repeated runs never post the same finding twice.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Set

from ..models.review import CommentCandidate, ExistingComment


logger = logging.getLogger(__name__)


class CommentDeduplicator:
    """Exact (path, position, body) deduplication against prior bot reviews."""

    def __init__(self, gateway, bot_name: str):
        """
        Initialize deduplicator.

        Args:
            gateway: Object with async ``list_reviews`` and ``list_review_comments``
            bot_name: Login prefix identifying the bot's own reviews
        """
        self.gateway = gateway
        self.bot_name = bot_name

    def is_bot_review(self, review: Dict) -> bool:
        login = (review.get('user') or {}).get('login') or ''
        return login.startswith(self.bot_name)

    async def fetch_bot_reviews(self, pr_number: int) -> List[Dict]:
        reviews = await self.gateway.list_reviews(pr_number)
        bot_reviews = [review for review in reviews if self.is_bot_review(review)]
        logger.info(f"Found {len(bot_reviews)} bot reviews out of {len(reviews)} on #{pr_number}")
        return bot_reviews

    async def fetch_existing_comments(self, pr_number: int, bot_reviews: List[Dict]) -> Set[ExistingComment]:
        results = await asyncio.gather(
            *(self.gateway.list_review_comments(pr_number, review['id']) for review in bot_reviews)
        )

        existing: Set[ExistingComment] = set()
        for comments in results:
            existing.update(ExistingComment.from_api(comment) for comment in comments)
        return existing

    @staticmethod
    def filter_candidates(
        candidates: List[CommentCandidate],
        existing: Iterable[ExistingComment]
    ) -> List[CommentCandidate]:
        """Keep candidates with no identical existing comment, preserving order."""
        posted = {comment.key for comment in existing}
        return [candidate for candidate in candidates if candidate.key not in posted]

    async def deduplicate(
        self,
        pr_number: int,
        candidates: List[CommentCandidate],
        bot_reviews: Optional[List[Dict]] = None
    ) -> List[CommentCandidate]:
        """
        Remove candidates the bot has already posted.

        Args:
            pr_number: Pull request number
            candidates: Newly computed comment candidates
            bot_reviews: Bot reviews if already fetched

        Returns:
            Candidates not yet posted
        """
        if not candidates:
            return []

        if bot_reviews is None:
            bot_reviews = await self.fetch_bot_reviews(pr_number)

        existing = await self.fetch_existing_comments(pr_number, bot_reviews)
        remaining = self.filter_candidates(candidates, existing)

        logger.info(f"Deduplicated {len(candidates)} candidates to {len(remaining)} new comments")
        return remaining
