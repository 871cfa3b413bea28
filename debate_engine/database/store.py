"""The CRUD interface the room orchestrator relies on."""

from typing import Any, Protocol

from debate_engine.models import (
    Feedback,
    Motion,
    Participant,
    PointOfInformation,
    Room,
    Speech,
    TranscriptSegment,
)
from debate_engine.types import RoomStatus


class RoomStore(Protocol):
    """Persistence for rooms and everything they own.

    Implementations raise `ConflictError` when a write would break a
    uniqueness rule (room code, seat, user per room, open speech per room).
    """

    def create_room(self, room: Room) -> int: ...

    def get_room(self, room_id: int) -> Room | None: ...

    def get_room_by_code(self, room_code: str) -> Room | None: ...

    def list_rooms_by_status(
        self, status: RoomStatus, limit: int | None = None, offset: int = 0
    ) -> list[Room]: ...

    def update_room(self, room_id: int, **fields: Any) -> bool: ...

    def add_participant(self, participant: Participant) -> int: ...

    def remove_participant(self, participant_id: int) -> bool: ...

    def get_participant(self, room_id: int, user_id: int) -> Participant | None: ...

    def list_participants(self, room_id: int) -> list[Participant]: ...

    def update_participant_ready(self, participant_id: int, is_ready: bool) -> bool: ...

    def create_motion(self, motion: Motion) -> int: ...

    def get_motion(self, motion_id: int) -> Motion | None: ...

    def create_speech(self, speech: Speech) -> int: ...

    def get_speech(self, speech_id: int) -> Speech | None: ...

    def get_open_speech(self, room_id: int) -> Speech | None: ...

    def update_speech(self, speech_id: int, **fields: Any) -> bool: ...

    def append_transcript_segment(self, speech_id: int, segment: TranscriptSegment) -> bool: ...

    def list_speeches(self, room_id: int) -> list[Speech]: ...

    def create_poi(self, poi: PointOfInformation) -> int: ...

    def list_pois(self, room_id: int, speech_id: int | None = None) -> list[PointOfInformation]: ...

    def create_feedback(self, feedback: Feedback) -> int: ...

    def list_feedback(self, room_id: int) -> list[Feedback]: ...
