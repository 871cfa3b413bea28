"""Speech and point-of-information tracking for rooms in progress."""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Protocol

from models.transcription import TranscriptionResult
from .capabilities import AudioCapture
from .exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    TranscriptionError,
    ValidationError,
)
from .models import PointOfInformation, Speech, TranscriptSegment
from .orchestrator import RoomOrchestrator
from .types import RoomStatus, SpeakerRole, SpeechType

logger = logging.getLogger(__name__)

SegmentCallback = Callable[[Speech, TranscriptSegment], Awaitable[None]]


class Transcriber(Protocol):
    async def transcribe(
        self,
        audio: bytes,
        mime_type: str,
        language: str | None = None,
        prompt: str | None = None,
    ) -> TranscriptionResult:
        ...


class SpeechSessionTracker:
    """Opens and closes speeches, records POIs and collects transcript segments.

    Shares the orchestrator's per-room locks so speech writes never interleave
    with turn advancement.
    """

    def __init__(
        self,
        orchestrator: RoomOrchestrator,
        transcriber: Transcriber | None = None,
        duration_grace_seconds: int = 30,
        late_chunk_seconds: int = 10,
        on_segment: SegmentCallback | None = None,
    ):
        self.orchestrator = orchestrator
        self.store = orchestrator.store
        self.format = orchestrator.format
        self.locks = orchestrator.locks
        self.transcriber = transcriber
        self.duration_grace_seconds = duration_grace_seconds
        self.late_chunk_seconds = late_chunk_seconds
        self.on_segment = on_segment

    async def start_speech(
        self,
        user_id: int,
        room_id: int,
        speaker_role: SpeakerRole,
        speech_type: SpeechType | None = None,
    ) -> Speech:
        """Open a speech for the current slot on behalf of its speaker."""
        expected_type = SpeechType.for_role(speaker_role)
        if speech_type is not None and speech_type != expected_type:
            raise ValidationError(
                f"Speech type for {speaker_role.value} must be {expected_type.value}"
            )

        async with self.locks.lock(room_id):
            room = self.orchestrator.get_room(room_id)
            if room.status != RoomStatus.IN_PROGRESS:
                raise InvalidStateError("Debate is not in progress")

            slot = self.orchestrator.current_slot(room)
            if slot is None or slot.role != speaker_role:
                raise InvalidStateError("Speaker role does not match the current speaker")

            speaker = self.orchestrator.current_speaker(room)
            if speaker is None or speaker.user_id != user_id:
                raise ForbiddenError("It is not your turn to speak")

            if self.store.get_open_speech(room_id) is not None:
                raise ConflictError("A speech is already in progress")

            speech = Speech(
                room_id=room_id,
                speaker_role=speaker_role,
                speech_type=expected_type,
                speaker_user_id=user_id,
                started_at=datetime.now(),
            )
            speech.id = self.store.create_speech(speech)
            return speech

    async def end_speech(self, user_id: int, speech_id: int, duration: int) -> Speech:
        """Close a speech with the duration measured by the speaker's client."""
        speech = self._require_speech(speech_id)

        async with self.locks.lock(speech.room_id):
            speech = self._require_speech(speech_id)
            if not speech.is_open:
                raise InvalidStateError("Speech has already ended")
            if speech.speaker_user_id != user_id:
                raise ForbiddenError("Only the speaker can end this speech")

            allotted = self.format.get_slot_for_role(speech.speaker_role).allotted_time
            limit = allotted + self.duration_grace_seconds
            if not 0 <= duration <= limit:
                raise ValidationError(f"Speech duration must be between 0 and {limit} seconds")

            ended_at = datetime.now()
            self.store.update_speech(speech_id, duration=duration, ended_at=ended_at)
            speech.duration = duration
            speech.ended_at = ended_at
            logger.info(f"Speech {speech_id} ended after {duration}s")
            return speech

    async def offer_poi(
        self, user_id: int, room_id: int, speech_id: int, timestamp: float
    ) -> PointOfInformation:
        """Record a point of information offered during an open speech.

        The speech timer keeps running; a POI is only a record.
        """
        async with self.locks.lock(room_id):
            self.orchestrator.get_room(room_id)
            speech = self.store.get_speech(speech_id)
            if speech is None or speech.room_id != room_id:
                raise NotFoundError("Speech not found")
            if not speech.is_open:
                raise InvalidStateError("Speech is not in progress")

            participant = self.store.get_participant(room_id, user_id)
            if participant is None:
                raise ForbiddenError("Only debate participants can offer points of information")

            slot = self.format.get_slot_for_role(speech.speaker_role)
            if participant.team == slot.team:
                raise ForbiddenError("Cannot offer a point of information to your own team")

            poi_rules = self.format.poi_rules
            if not poi_rules.is_allowed(timestamp, slot.allotted_time):
                earliest, latest = poi_rules.window(slot.allotted_time)
                raise ValidationError(
                    f"Points of information are only allowed between {earliest}s and {latest}s"
                )

            poi = PointOfInformation(
                room_id=room_id,
                speech_id=speech_id,
                offered_by=user_id,
                timestamp=timestamp,
            )
            poi.id = self.store.create_poi(poi)
            logger.info(
                f"User {user_id} offered a POI at {timestamp}s during speech {speech_id}"
            )
            return poi

    async def transcribe_chunk(
        self,
        user_id: int,
        speech_id: int,
        audio: bytes,
        timestamp: float,
        mime_type: str,
        language: str | None = None,
    ) -> TranscriptSegment | None:
        """Transcribe one audio chunk from the speaker and append it to the speech transcript.

        The speech must be open, or have ended less than `late_chunk_seconds`
        ago, in a room that is still in progress. Returns None when
        transcription fails or yields no text.
        """
        speech = self._require_transcribable(user_id, speech_id)
        if self.transcriber is None:
            logger.warning(f"No transcriber configured, dropping audio for speech {speech_id}")
            return None

        try:
            result = await self.transcriber.transcribe(audio, mime_type, language)
        except TranscriptionError as e:
            logger.warning(f"Transcription failed for speech {speech_id}: {e}")
            return None

        text = result.text.strip()
        if not text:
            return None

        segment = TranscriptSegment(text=text, timestamp=timestamp)
        self.store.append_transcript_segment(speech_id, segment)
        if self.on_segment is not None:
            await self.on_segment(speech, segment)
        return segment

    async def record_speech(
        self,
        user_id: int,
        speech_id: int,
        capture: AudioCapture,
        language: str | None = None,
    ) -> int:
        """Transcribe every chunk from `capture` until it stops; return segments kept.

        Recording also stops once the speech can no longer take transcript text.
        """
        self._require_transcribable(user_id, speech_id)
        kept = 0
        while (chunk := await capture.read_chunk()) is not None:
            audio, elapsed = chunk
            try:
                segment = await self.transcribe_chunk(
                    user_id, speech_id, audio, elapsed, capture.mime_type, language
                )
            except InvalidStateError as e:
                logger.info(f"Recording for speech {speech_id} stopped: {e}")
                break
            if segment is not None:
                kept += 1
        logger.info(f"Recording for speech {speech_id} finished with {kept} segments")
        return kept

    def list_speeches(self, room_id: int) -> list[Speech]:
        self.orchestrator.get_room(room_id)
        return self.store.list_speeches(room_id)

    def _require_speech(self, speech_id: int) -> Speech:
        speech = self.store.get_speech(speech_id)
        if speech is None:
            raise NotFoundError("Speech not found")
        return speech

    def _require_transcribable(self, user_id: int, speech_id: int) -> Speech:
        speech = self._require_speech(speech_id)
        if speech.speaker_user_id != user_id:
            raise ForbiddenError("Only the speaker can transcribe this speech")

        room = self.orchestrator.get_room(speech.room_id)
        if room.status != RoomStatus.IN_PROGRESS:
            raise InvalidStateError("Debate is not in progress")

        if speech.ended_at is not None:
            cutoff = speech.ended_at + timedelta(seconds=self.late_chunk_seconds)
            if datetime.now() > cutoff:
                raise InvalidStateError("Speech is not in progress")
        return speech
