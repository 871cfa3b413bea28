"""Debate room orchestration and speech tracking."""

from .types import (
    Difficulty,
    RoomPhase,
    RoomStatus,
    SpeakerRole,
    SpeechType,
    Team,
    TopicArea,
)
from .models import (
    AdvanceResult,
    CreatedRoom,
    Feedback,
    GeneratedMotion,
    Motion,
    Participant,
    PointOfInformation,
    Room,
    RoomSnapshot,
    Speech,
    TranscriptSegment,
)

__all__ = [
    "Difficulty",
    "RoomPhase",
    "RoomStatus",
    "SpeakerRole",
    "SpeechType",
    "Team",
    "TopicArea",
    "AdvanceResult",
    "CreatedRoom",
    "Feedback",
    "GeneratedMotion",
    "Motion",
    "Participant",
    "PointOfInformation",
    "Room",
    "RoomSnapshot",
    "Speech",
    "TranscriptSegment",
]
