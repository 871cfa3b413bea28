"""Assembling a finished room into a readable transcript."""

import logging
from dataclasses import dataclass, field

from formats.base import DebateFormat
from .database.store import RoomStore
from .exceptions import RoomNotFoundError
from .models import Motion
from .speaking_order import seat_for_slot
from .types import SpeakerRole, Team

logger = logging.getLogger(__name__)


@dataclass
class SpeechRecord:
    """One delivered speech with what the judge needs to know about it."""

    role: SpeakerRole
    team: Team
    label: str
    allotted_time: int
    user_id: int | None
    duration: int | None
    text: str
    poi_count: int = 0

    @property
    def seat(self) -> SpeakerRole:
        return seat_for_slot(self.role)

    @property
    def word_count(self) -> int:
        return len(self.text.split())


@dataclass
class RoomTranscript:
    room_id: int
    motion: Motion | None
    speeches: list[SpeechRecord] = field(default_factory=list)

    @property
    def word_count(self) -> int:
        return sum(speech.word_count for speech in self.speeches)

    def speakers(self) -> dict[SpeakerRole, int | None]:
        """Map each seat that spoke to its user, in speaking order."""
        seats: dict[SpeakerRole, int | None] = {}
        for speech in self.speeches:
            seats.setdefault(speech.seat, speech.user_id)
        return seats

    def to_text(self) -> str:
        lines = []
        if self.motion is not None:
            lines.append(f"MOTION: {self.motion.motion}")
            lines.append("")

        for speech in self.speeches:
            timing = f"{speech.duration}s of {speech.allotted_time}s" if speech.duration is not None else "unfinished"
            lines.append(f"[{speech.label} | {speech.team.value} | {timing} | POIs offered: {speech.poi_count}]")
            lines.append(speech.text or "(no transcript captured)")
            lines.append("")

        return "\n".join(lines).strip()


class TranscriptBuilder:
    """Reads a room's speeches, POIs and motion from the store."""

    def __init__(self, store: RoomStore, debate_format: DebateFormat):
        self.store = store
        self.format = debate_format

    def build(self, room_id: int) -> RoomTranscript:
        room = self.store.get_room(room_id)
        if room is None:
            raise RoomNotFoundError()

        motion = self.store.get_motion(room.motion_id) if room.motion_id else None
        pois = self.store.list_pois(room_id)

        transcript = RoomTranscript(room_id=room_id, motion=motion)
        for speech in self.store.list_speeches(room_id):
            slot = self.format.get_slot_for_role(speech.speaker_role)
            transcript.speeches.append(
                SpeechRecord(
                    role=speech.speaker_role,
                    team=slot.team,
                    label=slot.label,
                    allotted_time=slot.allotted_time,
                    user_id=speech.speaker_user_id,
                    duration=speech.duration,
                    text=speech.transcript_text,
                    poi_count=sum(1 for poi in pois if poi.speech_id == speech.id),
                )
            )

        logger.debug(
            f"Built transcript for room {room_id}: {len(transcript.speeches)} speeches, {transcript.word_count} words"
        )
        return transcript
