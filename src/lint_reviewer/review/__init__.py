"""
Review Pipeline

This module provides ruleset resolution, linting, comment
deduplication and review publishing.
"""

from .ruleset import ConfigResolver, ResolvedConfig, RulesetCache
from .linter import LinterError, RuffLinter
from .orchestrator import LintOrchestrator, LintTarget
from .dedup import CommentDeduplicator
from .publisher import ReviewPublisher

__all__ = [
    'ConfigResolver',
    'ResolvedConfig',
    'RulesetCache',
    'LinterError',
    'RuffLinter',
    'LintOrchestrator',
    'LintTarget',
    'CommentDeduplicator',
    'ReviewPublisher',
]
