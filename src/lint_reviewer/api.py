"""
Review Cycle API

Main interface that runs one lint review of a pull request, from the
event guard to the submitted review.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from .config import AppConfig, get_config
from .github.client import GitHubClient
from .github.gateway import PullRequestGateway
from .github.parser import PatchParser, build_position_map
from .models.pr_diff import ChangedFile, PullRequestEvent
from .models.review import CommentCandidate
from .review.dedup import CommentDeduplicator
from .review.linter import RuffLinter
from .review.orchestrator import LintOrchestrator, LintTarget
from .review.publisher import ReviewPublisher
from .review.ruleset import ConfigResolver, RulesetCache


logger = logging.getLogger(__name__)


class CycleState(Enum):
    """States of one review cycle."""
    IDLE = "idle"
    TRIGGERED = "triggered"
    ABORTED = "aborted"
    DIFFED = "diffed"
    CONFIGURED = "configured"
    LINTED = "linted"
    DEDUPLICATED = "deduplicated"
    PUBLISHED = "published"
    NOOP = "noop"


@dataclass
class CycleResult:
    """Outcome of one review cycle."""
    event: PullRequestEvent
    transitions: List[CycleState]
    comments: List[CommentCandidate] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    review: Optional[Dict] = None
    processing_time: float = 0.0

    @property
    def state(self) -> CycleState:
        return self.transitions[-1]

    @property
    def published(self) -> bool:
        return self.state is CycleState.PUBLISHED


class ReviewCycle:
    """
    One evaluation of one pull request.

    A cycle owns its ruleset cache; nothing resolved here outlives it.
    Once past the initial guard the cycle runs to completion or failure.
    Platform and linter errors propagate and nothing is published.
    """

    def __init__(self, gateway, config: AppConfig, linter=None):
        """
        Initialize review cycle.

        Args:
            gateway: Repository-bound platform gateway
            config: Application configuration
            linter: Lint engine (defaults to Ruff from config)
        """
        self.gateway = gateway
        self.config = config
        review = config.review
        linter = linter or RuffLinter(config.lint.ruff_binary, config.lint.timeout_seconds)

        self.cache = RulesetCache()
        self.parser = PatchParser(review.linted_extensions)
        self.resolver = ConfigResolver(
            gateway,
            self.cache,
            directory_config_file=review.directory_config_file,
            base_config_file=review.base_config_file,
            format_preferences_file=review.format_preferences_file,
            settings_validator=getattr(linter, "validate_settings", None),
        )
        self.orchestrator = LintOrchestrator(
            linter,
            max_concurrency=review.max_concurrent_files,
        )
        self.deduplicator = CommentDeduplicator(gateway, review.bot_name)
        self.publisher = ReviewPublisher(gateway, review)
        self.transitions: List[CycleState] = [CycleState.IDLE]

    def _advance(self, state: CycleState) -> None:
        logger.debug(f"Cycle {self.transitions[-1].value} -> {state.value}")
        self.transitions.append(state)

    def _finish(self, event: PullRequestEvent, start_time: datetime, **kwargs) -> CycleResult:
        processing_time = (datetime.now() - start_time).total_seconds()
        result = CycleResult(
            event=event,
            transitions=list(self.transitions),
            processing_time=processing_time,
            **kwargs
        )
        logger.info(f"Review cycle for {event.repository}#{event.pr_number} ended "
                    f"{result.state.value} ({processing_time:.2f}s)")
        return result

    async def run(self, event: PullRequestEvent) -> CycleResult:
        """
        Run the cycle for a pull request event.

        Args:
            event: Validated pull request event

        Returns:
            CycleResult with the transitions taken and the posted comments
        """
        start_time = datetime.now()
        self._advance(CycleState.TRIGGERED)

        if not event.is_reviewable:
            logger.info(f"Skipping {event.repository}#{event.pr_number}: "
                        f"state={event.state} draft={event.draft} merged={event.merged}")
            self._advance(CycleState.ABORTED)
            return self._finish(event, start_time)

        changed_files = await self.gateway.compare_revisions(event.base_sha, event.head_sha)
        self._advance(CycleState.DIFFED)

        lintable = self.parser.filter_lintable_files(changed_files)
        if not lintable:
            self._advance(CycleState.NOOP)
            return self._finish(event, start_time)

        targets = await self._prepare_targets(lintable, event.head_sha)
        self._advance(CycleState.CONFIGURED)

        candidates = await self.orchestrator.lint_targets(targets)
        self._advance(CycleState.LINTED)

        warnings = self._collect_warnings(targets)

        bot_reviews: List[Dict] = []
        if candidates:
            bot_reviews = await self.deduplicator.fetch_bot_reviews(event.pr_number)
        comments = await self.deduplicator.deduplicate(event.pr_number, candidates, bot_reviews)
        self._advance(CycleState.DEDUPLICATED)

        if not comments:
            self._advance(CycleState.NOOP)
            return self._finish(event, start_time, warnings=warnings)

        review = await self.publisher.publish(
            event.pr_number,
            comments,
            commit_id=event.head_sha,
            warnings=warnings,
            bot_reviews=bot_reviews,
        )
        self._advance(CycleState.PUBLISHED)
        return self._finish(event, start_time, comments=comments, warnings=warnings, review=review)

    async def _prepare_targets(self, changed_files: List[ChangedFile], revision: str) -> List[LintTarget]:
        """Build position maps, fetch contents and resolve rulesets concurrently."""
        semaphore = asyncio.Semaphore(self.config.review.max_concurrent_files)

        async def prepare(changed_file: ChangedFile) -> LintTarget:
            position_map = build_position_map(changed_file.patch)
            if not position_map:
                # nothing to anchor comments to
                return LintTarget(changed_file, '', position_map, None)

            async with semaphore:
                content, config = await asyncio.gather(
                    self.gateway.read_file(changed_file.filename, revision),
                    self.resolver.resolve(changed_file.filename, revision),
                )
            return LintTarget(changed_file, content, position_map, config)

        return list(await asyncio.gather(*(prepare(changed_file) for changed_file in changed_files)))

    @staticmethod
    def _collect_warnings(targets: List[LintTarget]) -> List[str]:
        warnings: List[str] = []
        for target in targets:
            if target.config is None:
                continue
            for warning in target.config.warnings:
                if warning not in warnings:
                    warnings.append(warning)
        return warnings


class ReviewBot:
    """
    Main Lint Reviewer interface.

    Holds the configuration, the GitHub client and the linter, and runs
    a fresh ReviewCycle for every pull request event.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        client: Optional[GitHubClient] = None,
        linter=None
    ):
        """
        Initialize review bot.

        Args:
            config: Optional configuration object
            client: Optional GitHub client (built from config when omitted)
            linter: Optional lint engine (Ruff from config when omitted)
        """
        self.config = config or get_config()
        self.client = client or GitHubClient(
            self.config.github.token,
            base_url=self.config.github.api_base_url,
            timeout=self.config.github.timeout_seconds,
        )
        self.linter = linter or RuffLinter(self.config.lint.ruff_binary, self.config.lint.timeout_seconds)

    def gateway_for(self, event: PullRequestEvent) -> PullRequestGateway:
        return PullRequestGateway(self.client, event.owner, event.repo)

    async def event_for(self, owner: str, repo: str, pr_number: int) -> PullRequestEvent:
        """Build an ``opened`` event from the pull request's current state, for manual runs."""
        pull_request = await asyncio.to_thread(self.client.get_pull_request, owner, repo, pr_number)
        return PullRequestEvent.from_webhook({
            'action': 'opened',
            'pull_request': pull_request,
            'repository': {'full_name': f"{owner}/{repo}"},
        })

    async def review_pull_request(self, event: PullRequestEvent) -> CycleResult:
        """
        Run one review cycle for an event.

        Raises:
            GitHubAPIError: Platform failures abort the cycle
            LinterError: Lint engine failures abort the cycle
        """
        logger.info(f"Starting review cycle: {event.repository}#{event.pr_number} ({event.action})")

        cycle = ReviewCycle(self.gateway_for(event), self.config, self.linter)
        try:
            return await cycle.run(event)
        except Exception as e:
            logger.error(f"Review cycle failed for {event.repository}#{event.pr_number}: {e}")
            raise
