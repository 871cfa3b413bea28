"""Judging system implementations."""

from .base import BaseJudge
from .ai_judge import AIJudge
from .factory import create_judge

__all__ = [
    "BaseJudge",
    "AIJudge",
    "create_judge",
]
