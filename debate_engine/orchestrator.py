"""Room lifecycle, seat assignment and turn advancement."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Protocol, assert_never

from formats import format_registry
from formats.base import DebateFormat, SpeakingSlot
from .capabilities import AnnouncementSink, LoggingAnnouncementSink
from .database.store import RoomStore
from .exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NoMotionError,
    NotCreatorError,
    NotFoundError,
    NotReadyError,
    RoleConflictError,
    RoomNotFoundError,
)
from .models import (
    AdvanceResult,
    CreatedRoom,
    GeneratedMotion,
    Motion,
    Participant,
    Room,
    RoomSnapshot,
)
from .room_codes import generate_room_code, normalize_room_code
from .speaking_order import active_speaking_order, find_slot_speaker
from . import speaking_order
from .types import (
    Difficulty,
    FeedbackRunner,
    RoomEventCallback,
    RoomPhase,
    RoomStatus,
    SpeakerRole,
    Team,
    TopicArea,
)

logger = logging.getLogger(__name__)


class MotionSource(Protocol):
    """Anything that can produce a motion for a topic and difficulty."""

    async def generate(self, topic_area: TopicArea, difficulty: Difficulty) -> GeneratedMotion:
        ...


class RoomLockRegistry:
    """One asyncio lock per room; state transitions for a room run one at a time."""

    def __init__(self):
        self._locks: dict[int, asyncio.Lock] = {}

    def lock(self, room_id: int) -> asyncio.Lock:
        if room_id not in self._locks:
            self._locks[room_id] = asyncio.Lock()
        return self._locks[room_id]

    def discard(self, room_id: int) -> None:
        """Forget a room that can no longer change state."""
        self._locks.pop(room_id, None)

    def __contains__(self, room_id: int) -> bool:
        return room_id in self._locks


def team_name(team: Team) -> str:
    match team:
        case Team.GOVERNMENT:
            return "Government"
        case Team.OPPOSITION:
            return "Opposition"
        case _:
            assert_never(team)


class RoomOrchestrator:
    """Validates and applies every room state transition.

    Status and phase move together:
    waiting/setup -> in_progress/debate -> completed/feedback -> completed/completed,
    with waiting/setup -> cancelled/completed as the only other exit.
    """

    def __init__(
        self,
        store: RoomStore,
        debate_format: DebateFormat | None = None,
        announcer: AnnouncementSink | None = None,
        feedback_runner: FeedbackRunner | None = None,
        on_event: RoomEventCallback | None = None,
        code_generation_attempts: int = 10,
        code_generator: Callable[[], str] = generate_room_code,
        locks: RoomLockRegistry | None = None,
    ):
        self.store = store
        self.format = debate_format or format_registry.get_format("asian_parliamentary")
        self.announcer = announcer or LoggingAnnouncementSink()
        self.feedback_runner = feedback_runner
        self.on_event = on_event
        self.code_generation_attempts = code_generation_attempts
        self.code_generator = code_generator
        self.locks = locks or RoomLockRegistry()
        self._background_tasks: set[asyncio.Task[None]] = set()

    # Reads

    def get_room(self, room_id: int) -> Room:
        room = self.store.get_room(room_id)
        if room is None:
            raise RoomNotFoundError()
        return room

    def get_room_by_code(self, room_code: str) -> Room:
        room = self.store.get_room_by_code(normalize_room_code(room_code))
        if room is None:
            raise RoomNotFoundError()
        return room

    def list_active_rooms(self, limit: int | None = None, offset: int = 0) -> list[Room]:
        """Rooms still accepting participants, newest first."""
        return self.store.list_rooms_by_status(RoomStatus.WAITING, limit, offset)

    def current_slot(self, room: Room) -> SpeakingSlot | None:
        if room.status != RoomStatus.IN_PROGRESS:
            return None
        return speaking_order.current_slot(self.format, room.current_speaker_index)

    def current_speaker(
        self, room: Room, participants: list[Participant] | None = None
    ) -> Participant | None:
        """Participant delivering the current slot, if that seat is filled."""
        slot = self.current_slot(room)
        if slot is None or room.id is None:
            return None
        if participants is None:
            participants = self.store.list_participants(room.id)
        return find_slot_speaker(slot, participants)

    def get_snapshot(self, room_id: int) -> RoomSnapshot:
        room = self.get_room(room_id)
        participants = self.store.list_participants(room_id)
        motion = self.store.get_motion(room.motion_id) if room.motion_id else None
        slot = self.current_slot(room)

        return RoomSnapshot(
            room=room,
            participants=participants,
            motion=motion,
            speaking_order=[
                dict(slot.to_dict(index))
                for index, slot in enumerate(self.format.speaking_order)
            ],
            active_speaking_order=[
                dict(active.to_dict(index))
                for index, active in active_speaking_order(self.format, participants)
            ],
            current_slot=dict(slot.to_dict(room.current_speaker_index)) if slot else None,
            current_speaker=find_slot_speaker(slot, participants) if slot else None,
            open_speech=self.store.get_open_speech(room_id),
        )

    # Setup

    async def create_room(self, creator_id: int, format_name: str | None = None) -> CreatedRoom:
        """Create a waiting room with a fresh, unique room code."""
        format_name = format_name or self.format.name
        if format_name != self.format.name:
            raise InvalidStateError(f"Unsupported debate format: {format_name}")

        for attempt in range(1, self.code_generation_attempts + 1):
            room_code = self.code_generator()
            try:
                room_id = self.store.create_room(
                    Room(room_code=room_code, creator_id=creator_id, format=format_name)
                )
            except ConflictError:
                logger.info(f"Room code collision on attempt {attempt}, regenerating")
                continue

            logger.info(f"User {creator_id} created room {room_id} ({room_code})")
            return CreatedRoom(room_id=room_id, room_code=room_code)

        raise ConflictError("Could not generate a unique room code, please try again")

    async def join_room(
        self, user_id: int, room_code: str, team: Team, speaker_role: SpeakerRole
    ) -> Participant:
        """Seat `user_id` in the room identified by `room_code`."""
        room = self.get_room_by_code(room_code)
        assert room.id is not None

        async with self.locks.lock(room.id):
            room = self.get_room(room.id)
            if room.status != RoomStatus.WAITING:
                raise InvalidStateError("Room is not accepting participants")

            if speaker_role not in self.format.get_seat_roles(team):
                raise RoleConflictError(f"Invalid role for {team_name(team)} team")

            if self.store.get_participant(room.id, user_id) is not None:
                raise RoleConflictError("You have already joined this room")

            participants = self.store.list_participants(room.id)
            if any(p.speaker_role == speaker_role for p in participants):
                raise RoleConflictError("This speaker role is already taken")

            participant = Participant(
                room_id=room.id,
                user_id=user_id,
                team=team,
                speaker_role=speaker_role,
                is_ready=False,
            )
            try:
                participant.id = self.store.add_participant(participant)
            except ConflictError as e:
                raise RoleConflictError(e.message) from e

        return participant

    async def leave_room(self, user_id: int, room_id: int) -> None:
        async with self.locks.lock(room_id):
            room = self.get_room(room_id)
            if room.status != RoomStatus.WAITING:
                raise InvalidStateError("Cannot leave a debate that has already started")

            participant = self._require_participant(room_id, user_id)
            assert participant.id is not None
            self.store.remove_participant(participant.id)
            logger.info(f"User {user_id} left room {room_id}")

    async def set_ready(self, user_id: int, room_id: int, is_ready: bool) -> Participant:
        """Set the caller's ready flag; repeating the same value is a no-op."""
        async with self.locks.lock(room_id):
            self.get_room(room_id)
            participant = self._require_participant(room_id, user_id)
            assert participant.id is not None
            if participant.is_ready != is_ready:
                self.store.update_participant_ready(participant.id, is_ready)
                participant.is_ready = is_ready
            return participant

    async def attach_motion(
        self,
        user_id: int,
        room_id: int,
        generated: GeneratedMotion,
        topic_area: TopicArea,
        difficulty: Difficulty,
    ) -> Motion:
        """Store a new motion and point the room at it.

        Motions are immutable; regenerating creates a new row.
        """
        async with self.locks.lock(room_id):
            self._check_motion_permission(user_id, self.get_room(room_id))

            motion = Motion(
                room_id=room_id,
                motion=generated.motion,
                background_context=generated.background_context,
                key_stakeholders=generated.key_stakeholders,
                topic_area=topic_area,
                difficulty=difficulty,
            )
            motion.id = self.store.create_motion(motion)
            self.store.update_room(room_id, motion_id=motion.id)
            logger.info(f"Room {room_id} motion set: {motion.motion}")
            return motion

    async def generate_motion(
        self,
        user_id: int,
        room_id: int,
        topic_area: TopicArea,
        difficulty: Difficulty,
        source: MotionSource,
    ) -> Motion:
        """Generate a motion with `source` and attach it to the room."""
        # Checked up front so a refused caller never triggers a model call
        self._check_motion_permission(user_id, self.get_room(room_id))
        generated = await source.generate(topic_area, difficulty)
        return await self.attach_motion(user_id, room_id, generated, topic_area, difficulty)

    def _check_motion_permission(self, user_id: int, room: Room) -> None:
        if room.creator_id != user_id:
            raise ForbiddenError("Only the room creator can set the motion")
        if room.status != RoomStatus.WAITING:
            raise InvalidStateError("The motion can only be changed before the debate starts")

    async def cancel_room(self, user_id: int, room_id: int) -> Room:
        async with self.locks.lock(room_id):
            room = self.get_room(room_id)
            if room.creator_id != user_id:
                raise NotCreatorError("Only the room creator can cancel the debate")
            if room.status != RoomStatus.WAITING:
                raise InvalidStateError("Only rooms that have not started can be cancelled")

            ended_at = datetime.now()
            self.store.update_room(
                room_id,
                status=RoomStatus.CANCELLED,
                current_phase=RoomPhase.COMPLETED,
                ended_at=ended_at,
            )
            logger.info(f"Room {room_id} cancelled by user {user_id}")

        self.locks.discard(room_id)
        return self.get_room(room_id)

    # Debate

    async def start_debate(self, user_id: int, room_id: int) -> Room:
        """Start the debate once the creator has a motion and everyone present is ready."""
        async with self.locks.lock(room_id):
            room = self.get_room(room_id)
            if room.creator_id != user_id:
                raise NotCreatorError()
            if room.status != RoomStatus.WAITING:
                raise InvalidStateError("Debate has already started")
            if room.motion_id is None:
                raise NoMotionError()

            participants = self.store.list_participants(room_id)
            if len(participants) < self.format.get_min_participants():
                raise NotReadyError("At least one participant must join before starting")
            # Empty seats are allowed; only people who joined need to be ready
            if not all(p.is_ready for p in participants):
                raise NotReadyError()

            self.store.update_room(
                room_id,
                status=RoomStatus.IN_PROGRESS,
                current_phase=RoomPhase.DEBATE,
                current_speaker_index=0,
                started_at=datetime.now(),
            )
            logger.info(f"Room {room_id} debate started with {len(participants)} participants")

        first = self.format.get_slot(0)
        if first is not None:
            await self._announce(
                room_id, f"The debate has begun. {first.label}, you have the floor."
            )
        return self.get_room(room_id)

    async def advance_speaker(self, room_id: int, user_id: int | None = None) -> AdvanceResult:
        """Move to the next slot, or finish the debate after the last one.

        When `user_id` is given it must be the room creator or the participant
        delivering the current slot.

        Without a feedback runner the room goes straight to completed/completed.
        """
        async with self.locks.lock(room_id):
            room = self.get_room(room_id)
            if room.status != RoomStatus.IN_PROGRESS:
                raise InvalidStateError("Debate is not in progress")
            if user_id is not None:
                self._check_advance_permission(user_id, room)

            self._close_dangling_speech(room_id)

            next_index = room.current_speaker_index + 1
            if next_index > self.format.last_slot_index:
                final_phase = RoomPhase.FEEDBACK if self.feedback_runner else RoomPhase.COMPLETED
                self.store.update_room(
                    room_id,
                    status=RoomStatus.COMPLETED,
                    current_phase=final_phase,
                    ended_at=datetime.now(),
                )
                logger.info(f"Room {room_id} debate completed ({final_phase.value})")
                result = AdvanceResult(completed=True, next_speaker_index=None)
            else:
                self.store.update_room(room_id, current_speaker_index=next_index)
                logger.info(f"Room {room_id} advanced to speaker {next_index}")
                result = AdvanceResult(completed=False, next_speaker_index=next_index)

        if result.completed:
            if self.feedback_runner is None:
                self.locks.discard(room_id)
                await self._announce(
                    room_id, "The debate has concluded. Thank you all for participating."
                )
            else:
                await self._announce(
                    room_id,
                    "The debate has concluded. Thank you all for participating. Generating feedback now.",
                )
                self._launch_feedback(room_id)
        else:
            slot = self.format.get_slot(next_index)
            if slot is not None:
                await self._announce(room_id, f"Thank you. {slot.label}, you have the floor.")
        return result

    async def finish_feedback(self, room_id: int) -> Room:
        """Close the feedback phase."""
        async with self.locks.lock(room_id):
            room = self.get_room(room_id)
            if room.current_phase != RoomPhase.FEEDBACK:
                raise InvalidStateError("Room is not collecting feedback")
            self.store.update_room(room_id, current_phase=RoomPhase.COMPLETED)
            logger.info(f"Room {room_id} feedback phase finished")

        self.locks.discard(room_id)
        return self.get_room(room_id)

    async def drain_background_tasks(self) -> None:
        """Wait for any feedback runs still in flight."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    def _launch_feedback(self, room_id: int) -> None:
        task = asyncio.create_task(self._run_feedback(room_id))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _run_feedback(self, room_id: int) -> None:
        assert self.feedback_runner is not None
        try:
            await self.feedback_runner(room_id)
        except Exception as e:
            logger.error(f"Feedback generation failed for room {room_id}: {e}")
        finally:
            await self.finish_feedback(room_id)

        if self.on_event is not None:
            await self.on_event(room_id, {"type": "feedback_finished"})

    def _close_dangling_speech(self, room_id: int) -> None:
        """Close a speech the client never ended, charging wall-clock time up to the allotment."""
        speech = self.store.get_open_speech(room_id)
        if speech is None or speech.id is None:
            return

        slot = self.format.get_slot_for_role(speech.speaker_role)
        ended_at = datetime.now()
        elapsed = 0
        if speech.started_at is not None:
            elapsed = int((ended_at - speech.started_at).total_seconds())
        duration = max(0, min(elapsed, slot.allotted_time))

        self.store.update_speech(speech.id, duration=duration, ended_at=ended_at)
        logger.warning(
            f"Speech {speech.id} in room {room_id} was still open when advancing; closed at {duration}s"
        )

    def _check_advance_permission(self, user_id: int, room: Room) -> None:
        if user_id == room.creator_id:
            return
        speaker = self.current_speaker(room)
        if speaker is None or speaker.user_id != user_id:
            raise ForbiddenError(
                "Only the room creator or the current speaker can advance the debate"
            )

    def _require_participant(self, room_id: int, user_id: int) -> Participant:
        participant = self.store.get_participant(room_id, user_id)
        if participant is None:
            raise NotFoundError("You are not a participant in this room")
        return participant

    async def _announce(self, room_id: int, text: str) -> None:
        try:
            await self.announcer.announce(room_id, text)
        except Exception as e:
            logger.warning(f"Announcement failed for room {room_id}: {e}")
