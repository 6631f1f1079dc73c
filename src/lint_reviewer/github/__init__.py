"""
GitHub Integration Layer

This module provides GitHub API integration for revision comparison,
file retrieval, patch position mapping and review submission.
"""

from .client import GitHubAPIError, GitHubClient, NotFoundError, RateLimitExceeded
from .gateway import PullRequestGateway
from .parser import PatchParser, build_position_map

__all__ = [
    'GitHubAPIError',
    'GitHubClient',
    'NotFoundError',
    'RateLimitExceeded',
    'PullRequestGateway',
    'PatchParser',
    'build_position_map',
]
