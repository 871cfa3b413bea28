"""Base classes and interfaces for feedback judges."""

from abc import ABC, abstractmethod

from debate_engine.models import Feedback
from debate_engine.transcript import RoomTranscript


class BaseJudge(ABC):
    """Abstract base class for all judges."""

    @abstractmethod
    async def evaluate_room(self, transcript: RoomTranscript) -> list[Feedback]:
        """Return one feedback entry per seat that spoke."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Judge name/identifier."""
        pass

    @staticmethod
    def average_score(feedback: list[Feedback]) -> float:
        """Mean score across feedback entries."""
        return sum(f.score for f in feedback) / len(feedback) if feedback else 0.0
