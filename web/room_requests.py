from pydantic import BaseModel, Field, field_validator

from debate_engine.types import Difficulty, SpeakerRole, SpeechType, Team, TopicArea


class CreateRoomRequest(BaseModel):
    """Request model for creating a new room."""

    format: str = "asian_parliamentary"


class JoinRoomRequest(BaseModel):
    """Request model for taking a seat in a room."""

    room_code: str
    team: Team
    speaker_role: SpeakerRole

    @field_validator("room_code")
    @classmethod
    def strip_room_code(cls, v: str) -> str:
        return v.strip().upper()


class ReadyRequest(BaseModel):
    is_ready: bool


class MotionRequest(BaseModel):
    """Request model for generating the room's motion."""

    topic_area: TopicArea
    difficulty: Difficulty = Difficulty.INTERMEDIATE


class StartSpeechRequest(BaseModel):
    speaker_role: SpeakerRole
    speech_type: SpeechType | None = None


class EndSpeechRequest(BaseModel):
    duration: int = Field(..., description="Seconds spoken, measured by the speaker's client")


class TranscribeChunkRequest(BaseModel):
    """Request model for one recorded audio chunk."""

    audio_base64: str
    timestamp: float = Field(..., ge=0, description="Seconds elapsed in the speech")
    mime_type: str = "audio/webm"
    language: str | None = None


class PoiRequest(BaseModel):
    speech_id: int
    timestamp: float = Field(..., description="Seconds elapsed in the speech when offered")
