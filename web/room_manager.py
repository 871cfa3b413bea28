"""Wires the room services together and pushes updates to WebSocket clients."""

import logging
from typing import Any

from fastapi import WebSocket

from config.settings import AppConfig
from debate_engine.capabilities import AudioCapture
from debate_engine.database import RoomDatabaseManager, RoomStore
from debate_engine.exceptions import FeedbackGenerationError
from debate_engine.models import (
    AdvanceResult,
    CreatedRoom,
    Feedback,
    Motion,
    Participant,
    PointOfInformation,
    Room,
    Speech,
    TranscriptSegment,
)
from debate_engine.motions import MotionGenerator
from debate_engine.orchestrator import MotionSource, RoomOrchestrator
from debate_engine.session import SpeechSessionTracker, Transcriber
from debate_engine.transcript import TranscriptBuilder
from debate_engine.types import (
    Difficulty,
    RoomEventData,
    SpeakerRole,
    SpeechType,
    Team,
    TopicArea,
)
from formats import format_registry
from judges import create_judge
from judges.base import BaseJudge
from models.manager import ModelManager
from models.transcription import TranscriptionService

logger = logging.getLogger(__name__)


class RoomManager:
    """Owns the store, orchestrator, speech tracker, AI collaborators and WebSocket connections."""

    def __init__(
        self,
        config: AppConfig,
        store: RoomStore | None = None,
        motion_source: MotionSource | None = None,
        transcriber: Transcriber | None = None,
        judge: BaseJudge | None = None,
    ):
        self.config = config
        self.format = format_registry.get_format(config.rooms.format)
        self.store: RoomStore = store or RoomDatabaseManager(config.system.database_path)

        model_manager: ModelManager | None = None
        if motion_source is None or (judge is None and config.feedback.enabled):
            model_manager = ModelManager(config.system)

        if motion_source is None:
            assert model_manager is not None
            motion_source = MotionGenerator(model_manager, config.motions.model, self.format)
        self.motion_source = motion_source

        if judge is None and model_manager is not None:
            judge = create_judge(config.feedback, model_manager, self.format)
        self.judge = judge

        self.orchestrator = RoomOrchestrator(
            self.store,
            debate_format=self.format,
            announcer=self,
            feedback_runner=self.run_feedback if self.judge else None,
            on_event=self._on_room_event,
            code_generation_attempts=config.rooms.code_generation_attempts,
        )
        self.tracker = SpeechSessionTracker(
            self.orchestrator,
            transcriber=transcriber or TranscriptionService(config.transcription),
            duration_grace_seconds=config.rooms.duration_grace_seconds,
            late_chunk_seconds=config.rooms.late_chunk_seconds,
            on_segment=self._on_transcript_segment,
        )
        self.transcripts = TranscriptBuilder(self.store, self.format)
        self.connections: dict[int, list[WebSocket]] = {}

    # Room setup

    async def create_room(self, user_id: int, format_name: str | None = None) -> CreatedRoom:
        return await self.orchestrator.create_room(user_id, format_name)

    async def join_room(
        self, user_id: int, room_code: str, team: Team, speaker_role: SpeakerRole
    ) -> Participant:
        participant = await self.orchestrator.join_room(user_id, room_code, team, speaker_role)
        await self.broadcast_snapshot(participant.room_id)
        return participant

    async def leave_room(self, user_id: int, room_id: int) -> None:
        await self.orchestrator.leave_room(user_id, room_id)
        await self.broadcast_snapshot(room_id)

    async def set_ready(self, user_id: int, room_id: int, is_ready: bool) -> Participant:
        participant = await self.orchestrator.set_ready(user_id, room_id, is_ready)
        await self.broadcast_snapshot(room_id)
        return participant

    async def generate_motion(
        self, user_id: int, room_id: int, topic_area: TopicArea, difficulty: Difficulty
    ) -> Motion:
        motion = await self.orchestrator.generate_motion(
            user_id, room_id, topic_area, difficulty, self.motion_source
        )
        await self.broadcast_snapshot(room_id)
        return motion

    async def cancel_room(self, user_id: int, room_id: int) -> Room:
        room = await self.orchestrator.cancel_room(user_id, room_id)
        await self.broadcast_snapshot(room_id)
        return room

    # Debate

    async def start_debate(self, user_id: int, room_id: int) -> Room:
        room = await self.orchestrator.start_debate(user_id, room_id)
        await self.broadcast_snapshot(room_id)
        return room

    async def advance_speaker(self, user_id: int, room_id: int) -> AdvanceResult:
        result = await self.orchestrator.advance_speaker(room_id, user_id=user_id)
        await self.broadcast_snapshot(room_id)
        return result

    async def start_speech(
        self,
        user_id: int,
        room_id: int,
        speaker_role: SpeakerRole,
        speech_type: SpeechType | None = None,
    ) -> Speech:
        speech = await self.tracker.start_speech(user_id, room_id, speaker_role, speech_type)
        await self.broadcast_snapshot(room_id)
        return speech

    async def end_speech(self, user_id: int, speech_id: int, duration: int) -> Speech:
        speech = await self.tracker.end_speech(user_id, speech_id, duration)
        await self.broadcast_snapshot(speech.room_id)
        return speech

    async def offer_poi(
        self, user_id: int, room_id: int, speech_id: int, timestamp: float
    ) -> PointOfInformation:
        poi = await self.tracker.offer_poi(user_id, room_id, speech_id, timestamp)
        await self._broadcast_to_room(
            room_id,
            {"type": "poi_offered", "room_id": room_id, "payload": poi.model_dump(mode="json")},
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
        return await self.tracker.transcribe_chunk(
            user_id, speech_id, audio, timestamp, mime_type, language
        )

    async def record_speech(
        self,
        user_id: int,
        speech_id: int,
        capture: AudioCapture,
        language: str | None = None,
    ) -> int:
        """Transcribe a live audio stream for the caller's speech."""
        return await self.tracker.record_speech(user_id, speech_id, capture, language)

    async def _on_transcript_segment(self, speech: Speech, segment: TranscriptSegment) -> None:
        await self._broadcast_to_room(
            speech.room_id,
            {
                "type": "transcript_segment",
                "room_id": speech.room_id,
                "payload": {"speech_id": speech.id, **segment.model_dump()},
            },
        )

    # Feedback

    async def run_feedback(self, room_id: int) -> None:
        """Judge the finished debate and store one feedback entry per speaker."""
        if self.judge is None:
            return

        await self._broadcast_to_room(
            room_id, {"type": "feedback_started", "room_id": room_id, "payload": {}}
        )
        transcript = self.transcripts.build(room_id)
        try:
            feedback = await self.judge.evaluate_room(transcript)
        except FeedbackGenerationError as e:
            await self._broadcast_to_room(
                room_id,
                {"type": "feedback_error", "room_id": room_id, "payload": {"error": e.message}},
            )
            raise

        for entry in feedback:
            entry.id = self.store.create_feedback(entry)
        logger.info(f"Stored {len(feedback)} feedback entries for room {room_id}")

        await self._broadcast_to_room(
            room_id,
            {
                "type": "feedback_ready",
                "room_id": room_id,
                "payload": {"feedback": [f.model_dump(mode="json") for f in feedback]},
            },
        )

    def list_feedback(self, room_id: int) -> list[Feedback]:
        self.orchestrator.get_room(room_id)
        return self.store.list_feedback(room_id)

    async def shutdown(self) -> None:
        await self.orchestrator.drain_background_tasks()

    # Broadcasting

    async def announce(self, room_id: int, text: str) -> None:
        """Moderator announcements go out to every client in the room."""
        logger.info(f"Room {room_id} announcement: {text}")
        await self._broadcast_to_room(
            room_id, {"type": "announcement", "room_id": room_id, "payload": {"text": text}}
        )

    async def broadcast_snapshot(self, room_id: int) -> None:
        if not self.connections.get(room_id):
            return
        snapshot = self.orchestrator.get_snapshot(room_id)
        await self._broadcast_to_room(
            room_id,
            {"type": "room_updated", "room_id": room_id, "payload": snapshot.model_dump(mode="json")},
        )

    async def _on_room_event(self, room_id: int, event: dict[str, Any]) -> None:
        logger.debug(f"Room {room_id} event: {event}")
        await self.broadcast_snapshot(room_id)

    async def _broadcast_to_room(self, room_id: int, message: RoomEventData) -> None:
        """Broadcast message to all connected clients for a room."""
        if room_id not in self.connections:
            return

        dead_connections = []
        for websocket in self.connections[room_id]:
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.debug(f"WebSocket send failed: {e}")
                dead_connections.append(websocket)

        for conn in dead_connections:
            self.connections[room_id].remove(conn)

    def add_connection(self, room_id: int, websocket: WebSocket) -> None:
        """Add WebSocket connection for a room."""
        self.connections.setdefault(room_id, []).append(websocket)

    def remove_connection(self, room_id: int, websocket: WebSocket) -> None:
        """Remove WebSocket connection."""
        if room_id in self.connections and websocket in self.connections[room_id]:
            self.connections[room_id].remove(websocket)
