"""
Lint Reviewer

GitHub Pull Request 변경 라인에 Ruff 진단을 리뷰 코멘트로 남기는 봇
"""

__version__ = "1.0.0"

from .api import CycleResult, CycleState, ReviewBot, ReviewCycle

__all__ = ["ReviewBot", "ReviewCycle", "CycleResult", "CycleState"]
