#!/usr/bin/env python3
"""
Review Pull Request Demo

Runs one dry-run review cycle against a live pull request and prints the
comments the bot would post.

Usage:
    python examples/review_pull_request_demo.py <owner> <repo> <pr_number>

Example:
    GITHUB_TOKEN=... python examples/review_pull_request_demo.py octocat hello-world 42
"""

import asyncio
import logging
import sys

from lint_reviewer.api import ReviewBot
from lint_reviewer.config import AppConfig
from lint_reviewer.github.client import GitHubAPIError
from lint_reviewer.review.linter import LinterError


def setup_logging():
    """Set up logging configuration."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def main():
    """Main demo function."""
    setup_logging()

    if len(sys.argv) != 4:
        print("Usage: python review_pull_request_demo.py <owner> <repo> <pr_number>")
        sys.exit(1)

    owner, repo = sys.argv[1], sys.argv[2]
    try:
        pr_number = int(sys.argv[3])
    except ValueError:
        print("Error: PR number must be an integer")
        sys.exit(1)

    config = AppConfig.from_env()
    if not config.github.token:
        print("Error: GitHub token not found. Set GITHUB_TOKEN environment variable.")
        sys.exit(1)
    config.review.dry_run = True

    bot = ReviewBot(config)

    async def run():
        event = await bot.event_for(owner, repo, pr_number)
        return await bot.review_pull_request(event)

    try:
        result = asyncio.run(run())
    except (GitHubAPIError, LinterError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"\n📊 Cycle: {' -> '.join(state.value for state in result.transitions)}")
    print(f"⏱️  Processing time: {result.processing_time:.2f}s")

    for warning in result.warnings:
        print(f"⚠️  {warning}")

    if not result.comments:
        print("✅ Nothing new to report")
        return

    print(f"\n💬 {len(result.comments)} comments would be posted:")
    for comment in result.comments:
        print(f"\n📄 {comment.path} (position {comment.position})")
        for line in comment.body.splitlines():
            print(f"   {line}")


if __name__ == "__main__":
    main()
