"""
Review Publisher

Submits the surviving comments as one review. Comments are never posted
individually, so a failed submission leaves nothing behind.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ..config import ReviewConfig
from ..models.review import CommentCandidate, ReviewSubmission


logger = logging.getLogger(__name__)

STALE_REVIEW_MESSAGE = "Outdated."


class ReviewPublisher:
    """Builds and submits the bot's review."""

    def __init__(self, gateway, review_config: ReviewConfig):
        self.gateway = gateway
        self.review_config = review_config

    def build_submission(
        self,
        comments: List[CommentCandidate],
        warnings: Sequence[str] = ()
    ) -> ReviewSubmission:
        body = self.review_config.review_body
        if warnings:
            lines = '\n'.join(f"- {warning}" for warning in warnings)
            body = f"{body}\n\nConfiguration warnings:\n{lines}"

        return ReviewSubmission(
            event=self.review_config.review_event,
            body=body,
            comments=list(comments),
        )

    async def dismiss_stale_reviews(self, pr_number: int, bot_reviews: Sequence[Dict]) -> int:
        """Dismiss the bot's earlier change requests. Returns the number dismissed."""
        dismissed = 0
        for review in bot_reviews:
            if review.get('state') != 'CHANGES_REQUESTED':
                continue
            await self.gateway.dismiss_review(pr_number, review['id'], STALE_REVIEW_MESSAGE)
            dismissed += 1
        return dismissed

    async def publish(
        self,
        pr_number: int,
        comments: List[CommentCandidate],
        commit_id: Optional[str] = None,
        warnings: Sequence[str] = (),
        bot_reviews: Sequence[Dict] = ()
    ) -> Optional[Dict]:
        """
        Submit one review with all comments.

        Args:
            pr_number: Pull request number
            comments: Deduplicated comments
            commit_id: Head revision the positions refer to
            warnings: Configuration warnings to list in the review body
            bot_reviews: Earlier bot reviews, used for stale dismissal

        Returns:
            Created review data, or None when nothing was submitted
        """
        if not comments:
            return None

        submission = self.build_submission(comments, warnings)

        if self.review_config.dry_run:
            logger.info(f"Dry run: would submit {submission.event} review on #{pr_number} "
                        f"with {len(comments)} comments")
            return None

        if self.review_config.dismiss_stale_reviews:
            dismissed = await self.dismiss_stale_reviews(pr_number, bot_reviews)
            if dismissed:
                logger.info(f"Dismissed {dismissed} stale reviews on #{pr_number}")

        return await self.gateway.create_review(pr_number, submission, commit_id)
