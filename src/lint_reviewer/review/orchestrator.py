"""
Lint Orchestrator

Runs the linter on each changed file and turns diagnostics on newly
added lines into review comment candidates.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models.pr_diff import ChangedFile, PositionMap
from ..models.review import CommentCandidate, Diagnostic
from .ruleset import ResolvedConfig


logger = logging.getLogger(__name__)


@dataclass
class LintTarget:
    """A changed file ready to be linted."""
    changed_file: ChangedFile
    content: str
    position_map: PositionMap
    config: Optional[ResolvedConfig]

    @property
    def path(self) -> str:
        return self.changed_file.filename


def build_comment_candidates(
    path: str,
    diagnostics: List[Diagnostic],
    position_map: PositionMap
) -> List[CommentCandidate]:
    """
    Join diagnostics with a position map.

    Diagnostics are grouped per line in reported order; one candidate
    per line, ascending. Lines that are not added in the diff are dropped.
    """
    by_line: Dict[int, List[Diagnostic]] = {}
    for diagnostic in diagnostics:
        by_line.setdefault(diagnostic.line, []).append(diagnostic)

    candidates = []
    for line in sorted(by_line):
        position = position_map.get(line)
        if position is None:
            continue
        body = '\n'.join(diagnostic.format() for diagnostic in by_line[line])
        candidates.append(CommentCandidate(path=path, position=position, body=body))

    return candidates


class LintOrchestrator:
    """
    Lints changed files concurrently and collects comment candidates.

    Output order follows the input order of targets and, within a file,
    ascending line numbers, regardless of completion order.
    """

    def __init__(self, linter, max_concurrency: int = 8):
        """
        Initialize orchestrator.

        Args:
            linter: Object with ``lint(path, content, config) -> List[Diagnostic]``
            max_concurrency: Maximum files linted at once
        """
        self.linter = linter
        self.max_concurrency = max_concurrency

    async def lint_target(self, target: LintTarget) -> List[CommentCandidate]:
        if not target.position_map or target.config is None:
            logger.debug(f"{target.path}: no added lines, skipping")
            return []

        diagnostics = await asyncio.to_thread(self.linter.lint, target.path, target.content, target.config)
        candidates = build_comment_candidates(target.path, diagnostics, target.position_map)

        logger.info(f"{target.path}: {len(diagnostics)} diagnostics, {len(candidates)} on added lines")
        return candidates

    async def lint_targets(self, targets: List[LintTarget]) -> List[CommentCandidate]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(target: LintTarget) -> List[CommentCandidate]:
            async with semaphore:
                return await self.lint_target(target)

        results = await asyncio.gather(*(run(target) for target in targets))

        candidates: List[CommentCandidate] = []
        for file_candidates in results:
            candidates.extend(file_candidates)
        return candidates
