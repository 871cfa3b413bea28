"""Data models for debate rooms."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .types import (
    Difficulty,
    RoomPhase,
    RoomStatus,
    SpeakerRole,
    SpeechType,
    Team,
    TopicArea,
)


class Room(BaseModel):
    """A debate room."""

    id: int | None = None
    room_code: str
    creator_id: int
    format: str = "asian_parliamentary"
    status: RoomStatus = RoomStatus.WAITING
    current_phase: RoomPhase = RoomPhase.SETUP
    current_speaker_index: int = 0
    motion_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None


class Participant(BaseModel):
    """A user occupying one seat in a room."""

    id: int | None = None
    room_id: int
    user_id: int
    team: Team
    speaker_role: SpeakerRole
    is_ready: bool = False
    joined_at: datetime | None = None


class Motion(BaseModel):
    """The proposition under debate. Never modified once stored."""

    id: int | None = None
    room_id: int
    motion: str
    background_context: str
    key_stakeholders: list[str] = Field(default_factory=list)
    topic_area: TopicArea
    difficulty: Difficulty
    created_at: datetime | None = None


class TranscriptSegment(BaseModel):
    """Transcribed text tagged with seconds elapsed in the speech."""

    text: str
    timestamp: float


class Speech(BaseModel):
    """One speaker's turn at the podium."""

    id: int | None = None
    room_id: int
    speaker_role: SpeakerRole
    speech_type: SpeechType
    speaker_user_id: int | None = None
    duration: int | None = None  # NULL until the speech ends
    transcript: list[TranscriptSegment] = Field(default_factory=list)
    started_at: datetime | None = None
    ended_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @property
    def transcript_text(self) -> str:
        return " ".join(segment.text.strip() for segment in self.transcript if segment.text.strip())


class PointOfInformation(BaseModel):
    """A POI offered by the opposing team during a speech."""

    id: int | None = None
    room_id: int
    speech_id: int
    offered_by: int
    timestamp: float
    created_at: datetime | None = None


class Feedback(BaseModel):
    """Post-debate feedback for one speaking role."""

    id: int | None = None
    room_id: int
    user_id: int | None = None
    speaker_role: SpeakerRole
    score: float = Field(ge=0, le=100)
    strengths: str
    improvements: str
    summary: str
    created_at: datetime | None = None


class GeneratedMotion(BaseModel):
    """Motion content returned by the motion generator."""

    motion: str
    background_context: str
    key_stakeholders: list[str] = Field(default_factory=list)


class CreatedRoom(BaseModel):
    """Result of creating a room."""

    room_id: int
    room_code: str


class AdvanceResult(BaseModel):
    """Result of moving to the next speaker."""

    completed: bool
    next_speaker_index: int | None = None


class RoomSnapshot(BaseModel):
    """Everything a client needs to render a room."""

    room: Room
    participants: list[Participant]
    motion: Motion | None = None
    speaking_order: list[dict[str, Any]]
    active_speaking_order: list[dict[str, Any]]
    current_slot: dict[str, Any] | None = None
    current_speaker: Participant | None = None
    open_speech: Speech | None = None
