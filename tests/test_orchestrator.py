"""Tests for room lifecycle, seat assignment and turn advancement."""

import asyncio
from datetime import datetime, timedelta

import pytest

from debate_engine.database import RoomDatabaseManager
from debate_engine.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NoMotionError,
    NotCreatorError,
    NotFoundError,
    NotReadyError,
    RoleConflictError,
    RoomNotFoundError,
    ValidationError,
)
from debate_engine.models import Speech
from debate_engine.orchestrator import RoomOrchestrator
from debate_engine.types import (
    Difficulty,
    RoomPhase,
    RoomStatus,
    SpeakerRole,
    SpeechType,
    Team,
    TopicArea,
)
from formats.asian_parliamentary import AsianParliamentaryFormat

from conftest import CREATOR_ID, SAMPLE_MOTION, FakeMotionSource, RecordingAnnouncer

PM_ONLY = [(Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER, 101)]


class TestCreateRoom:
    def test_new_room_is_waiting_in_setup(self, orchestrator: RoomOrchestrator):
        created = asyncio.run(orchestrator.create_room(CREATOR_ID))

        room = orchestrator.get_room(created.room_id)
        assert room.room_code == created.room_code
        assert room.creator_id == CREATOR_ID
        assert room.status == RoomStatus.WAITING
        assert room.current_phase == RoomPhase.SETUP
        assert room.current_speaker_index == 0
        assert room.motion_id is None

    def test_code_collision_regenerates(self, store: RoomDatabaseManager, ap_format):
        codes = iter(["AAAAAA", "AAAAAA", "BBBBBB"])
        orchestrator = RoomOrchestrator(store, ap_format, code_generator=lambda: next(codes))

        async def scenario():
            first = await orchestrator.create_room(CREATOR_ID)
            second = await orchestrator.create_room(2)
            return first, second

        first, second = asyncio.run(scenario())

        assert first.room_code == "AAAAAA"
        assert second.room_code == "BBBBBB"

    def test_gives_up_after_repeated_collisions(self, store: RoomDatabaseManager, ap_format):
        orchestrator = RoomOrchestrator(
            store, ap_format, code_generation_attempts=3, code_generator=lambda: "AAAAAA"
        )

        async def scenario():
            await orchestrator.create_room(CREATOR_ID)
            await orchestrator.create_room(2)

        with pytest.raises(ConflictError, match="unique room code"):
            asyncio.run(scenario())

    def test_rejects_unknown_format(self, orchestrator: RoomOrchestrator):
        with pytest.raises(InvalidStateError, match="Unsupported debate format"):
            asyncio.run(orchestrator.create_room(CREATOR_ID, "oxford"))

    def test_active_rooms_excludes_started(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            waiting = await setup_room(seats=[])
            started = await setup_room(seats=PM_ONLY, start=True)
            return waiting, started

        waiting, started = asyncio.run(scenario())

        ids = [room.id for room in orchestrator.list_active_rooms()]
        assert waiting in ids
        assert started not in ids


class TestJoinRoom:
    def test_join_by_code_any_case(self, orchestrator: RoomOrchestrator):
        async def scenario():
            created = await orchestrator.create_room(CREATOR_ID)
            return await orchestrator.join_room(
                101, created.room_code.lower(), Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER
            )

        participant = asyncio.run(scenario())

        assert participant.id is not None
        assert participant.is_ready is False
        assert participant.speaker_role == SpeakerRole.PRIME_MINISTER

    def test_unknown_code(self, orchestrator: RoomOrchestrator):
        with pytest.raises(RoomNotFoundError, match="Room not found"):
            asyncio.run(
                orchestrator.join_room(101, "ZZZZZZ", Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER)
            )

    def test_malformed_code(self, orchestrator: RoomOrchestrator):
        with pytest.raises(ValidationError):
            asyncio.run(
                orchestrator.join_room(101, "ABC", Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER)
            )

    @pytest.mark.parametrize(
        "team, role",
        [
            (Team.GOVERNMENT, SpeakerRole.LEADER_OF_OPPOSITION),
            (Team.OPPOSITION, SpeakerRole.PRIME_MINISTER),
            (Team.GOVERNMENT, SpeakerRole.GOVERNMENT_REPLY),
            (Team.OPPOSITION, SpeakerRole.OPPOSITION_REPLY),
        ],
    )
    def test_role_must_belong_to_team_and_be_a_seat(self, orchestrator, team, role):
        async def scenario():
            created = await orchestrator.create_room(CREATOR_ID)
            await orchestrator.join_room(101, created.room_code, team, role)

        with pytest.raises(RoleConflictError, match="Invalid role"):
            asyncio.run(scenario())

    def test_seat_taken(self, orchestrator: RoomOrchestrator):
        async def scenario():
            created = await orchestrator.create_room(CREATOR_ID)
            await orchestrator.join_room(
                101, created.room_code, Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER
            )
            await orchestrator.join_room(
                102, created.room_code, Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER
            )

        with pytest.raises(RoleConflictError, match="already taken"):
            asyncio.run(scenario())

    def test_cannot_join_twice(self, orchestrator: RoomOrchestrator):
        async def scenario():
            created = await orchestrator.create_room(CREATOR_ID)
            await orchestrator.join_room(
                101, created.room_code, Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER
            )
            await orchestrator.join_room(
                101, created.room_code, Team.OPPOSITION, SpeakerRole.LEADER_OF_OPPOSITION
            )

        with pytest.raises(RoleConflictError, match="already joined"):
            asyncio.run(scenario())

    def test_concurrent_joins_for_one_seat(self, orchestrator: RoomOrchestrator):
        async def scenario():
            created = await orchestrator.create_room(CREATOR_ID)
            return await asyncio.gather(
                *[
                    orchestrator.join_room(
                        user_id, created.room_code, Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER
                    )
                    for user_id in (101, 102, 103)
                ],
                return_exceptions=True,
            ), created.room_id

        results, room_id = asyncio.run(scenario())

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert all(isinstance(e, RoleConflictError) for e in losers)
        assert len(orchestrator.store.list_participants(room_id)) == 1

    def test_cannot_join_started_room(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(seats=PM_ONLY, start=True)
            room = orchestrator.get_room(room_id)
            await orchestrator.join_room(
                102, room.room_code, Team.OPPOSITION, SpeakerRole.LEADER_OF_OPPOSITION
            )

        with pytest.raises(InvalidStateError, match="not accepting participants"):
            asyncio.run(scenario())


class TestLeaveAndReady:
    def test_leave_frees_the_seat(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(seats=PM_ONLY, ready=False)
            await orchestrator.leave_room(101, room_id)
            room = orchestrator.get_room(room_id)
            await orchestrator.join_room(
                202, room.room_code, Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER
            )
            return room_id

        room_id = asyncio.run(scenario())

        assert [p.user_id for p in orchestrator.store.list_participants(room_id)] == [202]

    def test_leave_requires_membership(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(seats=[])
            await orchestrator.leave_room(999, room_id)

        with pytest.raises(NotFoundError, match="not a participant"):
            asyncio.run(scenario())

    def test_cannot_leave_after_start(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(seats=PM_ONLY, start=True)
            await orchestrator.leave_room(101, room_id)

        with pytest.raises(InvalidStateError):
            asyncio.run(scenario())

    def test_set_ready_is_idempotent(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(seats=PM_ONLY, ready=False)
            await orchestrator.set_ready(101, room_id, True)
            await orchestrator.set_ready(101, room_id, True)
            return room_id

        room_id = asyncio.run(scenario())

        assert orchestrator.store.get_participant(room_id, 101).is_ready is True

    def test_set_ready_requires_membership(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(seats=[])
            await orchestrator.set_ready(999, room_id, True)

        with pytest.raises(NotFoundError):
            asyncio.run(scenario())


class TestMotion:
    def test_regenerating_creates_a_new_motion(self, orchestrator: RoomOrchestrator, setup_room):
        source = FakeMotionSource()

        async def scenario():
            room_id = await setup_room(seats=[])
            first_id = orchestrator.get_room(room_id).motion_id
            motion = await orchestrator.generate_motion(
                CREATOR_ID, room_id, TopicArea.HEALTH, Difficulty.ADVANCED, source
            )
            return room_id, first_id, motion

        room_id, first_id, motion = asyncio.run(scenario())

        assert motion.id != first_id
        assert orchestrator.get_room(room_id).motion_id == motion.id
        assert orchestrator.store.get_motion(first_id).motion == SAMPLE_MOTION.motion
        assert motion.topic_area == TopicArea.HEALTH
        assert source.calls == [(TopicArea.HEALTH, Difficulty.ADVANCED)]

    def test_only_creator_can_generate(self, orchestrator: RoomOrchestrator, setup_room):
        source = FakeMotionSource()

        async def scenario():
            room_id = await setup_room(seats=[], with_motion=False)
            await orchestrator.generate_motion(
                101, room_id, TopicArea.HEALTH, Difficulty.NOVICE, source
            )

        with pytest.raises(ForbiddenError, match="Only the room creator"):
            asyncio.run(scenario())
        assert source.calls == []

    def test_motion_is_fixed_once_started(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(seats=PM_ONLY, start=True)
            await orchestrator.attach_motion(
                CREATOR_ID, room_id, SAMPLE_MOTION, TopicArea.ETHICS, Difficulty.NOVICE
            )

        with pytest.raises(InvalidStateError, match="before the debate starts"):
            asyncio.run(scenario())


class TestStartDebate:
    def test_start_moves_to_debate(
        self, orchestrator: RoomOrchestrator, setup_room, announcer: RecordingAnnouncer
    ):
        async def scenario():
            room_id = await setup_room()
            return await orchestrator.start_debate(CREATOR_ID, room_id)

        room = asyncio.run(scenario())

        assert room.status == RoomStatus.IN_PROGRESS
        assert room.current_phase == RoomPhase.DEBATE
        assert room.current_speaker_index == 0
        assert room.started_at is not None
        assert announcer.announcements == [
            (room.id, "The debate has begun. Prime Minister, you have the floor.")
        ]

    def test_only_creator_can_start(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room()
            await orchestrator.start_debate(101, room_id)

        with pytest.raises(NotCreatorError):
            asyncio.run(scenario())

    def test_requires_motion(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(with_motion=False)
            await orchestrator.start_debate(CREATOR_ID, room_id)

        with pytest.raises(NoMotionError):
            asyncio.run(scenario())

    def test_requires_a_participant(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(seats=[])
            await orchestrator.start_debate(CREATOR_ID, room_id)

        with pytest.raises(NotReadyError, match="At least one participant"):
            asyncio.run(scenario())

    def test_requires_everyone_ready(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(ready=False)
            await orchestrator.set_ready(101, room_id, True)
            await orchestrator.start_debate(CREATOR_ID, room_id)

        with pytest.raises(NotReadyError, match="All participants must be ready"):
            asyncio.run(scenario())

    def test_partial_room_can_start(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(seats=PM_ONLY)
            return await orchestrator.start_debate(CREATOR_ID, room_id)

        assert asyncio.run(scenario()).status == RoomStatus.IN_PROGRESS

    def test_cannot_start_twice(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(start=True)
            await orchestrator.start_debate(CREATOR_ID, room_id)

        with pytest.raises(InvalidStateError, match="already started"):
            asyncio.run(scenario())

    def test_failed_announcement_does_not_block_start(self, store, ap_format):
        class BrokenAnnouncer:
            async def announce(self, room_id, text):
                raise RuntimeError("speaker offline")

        orchestrator = RoomOrchestrator(store, ap_format, announcer=BrokenAnnouncer())

        async def scenario():
            created = await orchestrator.create_room(CREATOR_ID)
            await orchestrator.join_room(
                101, created.room_code, Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER
            )
            await orchestrator.set_ready(101, created.room_id, True)
            await orchestrator.attach_motion(
                CREATOR_ID, created.room_id, SAMPLE_MOTION, TopicArea.SOCIAL, Difficulty.NOVICE
            )
            return await orchestrator.start_debate(CREATOR_ID, created.room_id)

        assert asyncio.run(scenario()).status == RoomStatus.IN_PROGRESS


class TestCancelRoom:
    def test_creator_cancels_waiting_room(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(seats=[])
            return await orchestrator.cancel_room(CREATOR_ID, room_id)

        room = asyncio.run(scenario())

        assert room.status == RoomStatus.CANCELLED
        assert room.current_phase == RoomPhase.COMPLETED
        assert room.ended_at is not None
        assert room.id not in orchestrator.locks

    def test_only_creator_can_cancel(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(seats=[])
            await orchestrator.cancel_room(101, room_id)

        with pytest.raises(NotCreatorError, match="cancel"):
            asyncio.run(scenario())

    def test_started_room_cannot_be_cancelled(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(start=True)
            await orchestrator.cancel_room(CREATOR_ID, room_id)

        with pytest.raises(InvalidStateError):
            asyncio.run(scenario())


class TestAdvanceSpeaker:
    def test_walks_all_slots_then_completes(
        self, orchestrator: RoomOrchestrator, setup_room, announcer: RecordingAnnouncer
    ):
        async def scenario():
            room_id = await setup_room(start=True)
            results = [await orchestrator.advance_speaker(room_id) for _ in range(8)]
            return room_id, results

        room_id, results = asyncio.run(scenario())

        assert [r.next_speaker_index for r in results[:7]] == [1, 2, 3, 4, 5, 6, 7]
        assert not any(r.completed for r in results[:7])
        assert results[7].completed is True
        assert results[7].next_speaker_index is None

        room = orchestrator.get_room(room_id)
        assert room.status == RoomStatus.COMPLETED
        assert room.current_phase == RoomPhase.COMPLETED
        assert room.ended_at is not None
        assert room_id not in orchestrator.locks

        texts = [text for _, text in announcer.announcements]
        assert texts[1] == "Thank you. Leader of Opposition, you have the floor."
        assert texts[-1] == "The debate has concluded. Thank you all for participating."

    def test_partial_room_still_walks_every_slot(
        self, orchestrator: RoomOrchestrator, setup_room
    ):
        async def scenario():
            room_id = await setup_room(seats=PM_ONLY, start=True)
            for _ in range(7):
                await orchestrator.advance_speaker(room_id)
            return room_id

        room_id = asyncio.run(scenario())

        room = orchestrator.get_room(room_id)
        assert room.current_speaker_index == 7
        assert orchestrator.current_speaker(room).user_id == 101

    def test_requires_debate_in_progress(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room()
            await orchestrator.advance_speaker(room_id)

        with pytest.raises(InvalidStateError, match="not in progress"):
            asyncio.run(scenario())

    def test_cannot_advance_after_completion(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(start=True)
            for _ in range(9):
                await orchestrator.advance_speaker(room_id)

        with pytest.raises(InvalidStateError):
            asyncio.run(scenario())

    def test_closes_a_dangling_speech(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(start=True)
            speech_id = orchestrator.store.create_speech(
                Speech(
                    room_id=room_id,
                    speaker_role=SpeakerRole.PRIME_MINISTER,
                    speech_type=SpeechType.SUBSTANTIVE,
                    speaker_user_id=101,
                    started_at=datetime.now() - timedelta(minutes=20),
                )
            )
            await orchestrator.advance_speaker(room_id)
            return room_id, speech_id

        room_id, speech_id = asyncio.run(scenario())

        speech = orchestrator.store.get_speech(speech_id)
        assert speech.ended_at is not None
        assert speech.duration == 420
        assert orchestrator.store.get_open_speech(room_id) is None

    def test_concurrent_advances_never_skip_or_repeat(
        self, orchestrator: RoomOrchestrator, setup_room
    ):
        async def scenario():
            room_id = await setup_room(start=True)
            results = await asyncio.gather(
                *[orchestrator.advance_speaker(room_id) for _ in range(3)]
            )
            return room_id, results

        room_id, results = asyncio.run(scenario())

        assert sorted(r.next_speaker_index for r in results) == [1, 2, 3]
        assert orchestrator.get_room(room_id).current_speaker_index == 3

    def test_creator_or_current_speaker_may_advance(
        self, orchestrator: RoomOrchestrator, setup_room
    ):
        async def scenario():
            room_id = await setup_room(
                seats=[
                    (Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER, 101),
                    (Team.OPPOSITION, SpeakerRole.LEADER_OF_OPPOSITION, 102),
                ],
                start=True,
            )
            await orchestrator.advance_speaker(room_id, user_id=101)
            await orchestrator.advance_speaker(room_id, user_id=CREATOR_ID)
            return room_id

        room_id = asyncio.run(scenario())

        assert orchestrator.get_room(room_id).current_speaker_index == 2

    @pytest.mark.parametrize("user_id", [102, 999])
    def test_others_cannot_advance(self, orchestrator: RoomOrchestrator, setup_room, user_id):
        async def scenario():
            room_id = await setup_room(
                seats=[
                    (Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER, 101),
                    (Team.OPPOSITION, SpeakerRole.LEADER_OF_OPPOSITION, 102),
                ],
                start=True,
            )
            await orchestrator.advance_speaker(room_id, user_id=user_id)

        with pytest.raises(ForbiddenError, match="creator or the current speaker"):
            asyncio.run(scenario())


class TestFeedbackPhase:
    def test_runner_result_closes_feedback_phase(self, store, ap_format):
        ran: list[int] = []
        events: list[tuple[int, dict]] = []

        async def runner(room_id: int) -> None:
            ran.append(room_id)

        async def on_event(room_id: int, event: dict) -> None:
            events.append((room_id, event))

        orchestrator = RoomOrchestrator(
            store, ap_format, announcer=RecordingAnnouncer(), feedback_runner=runner, on_event=on_event
        )

        async def scenario():
            created = await orchestrator.create_room(CREATOR_ID)
            await orchestrator.join_room(
                101, created.room_code, Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER
            )
            await orchestrator.set_ready(101, created.room_id, True)
            await orchestrator.attach_motion(
                CREATOR_ID, created.room_id, SAMPLE_MOTION, TopicArea.SOCIAL, Difficulty.NOVICE
            )
            await orchestrator.start_debate(CREATOR_ID, created.room_id)
            for _ in range(8):
                await orchestrator.advance_speaker(created.room_id)
            await orchestrator.drain_background_tasks()
            return created.room_id

        room_id = asyncio.run(scenario())

        assert ran == [room_id]
        assert events == [(room_id, {"type": "feedback_finished"})]
        room = orchestrator.get_room(room_id)
        assert room.status == RoomStatus.COMPLETED
        assert room.current_phase == RoomPhase.COMPLETED
        assert room_id not in orchestrator.locks

    def test_failing_runner_still_completes(self, store, ap_format):
        async def runner(room_id: int) -> None:
            raise RuntimeError("judge unavailable")

        orchestrator = RoomOrchestrator(store, ap_format, feedback_runner=runner)

        async def scenario():
            created = await orchestrator.create_room(CREATOR_ID)
            await orchestrator.join_room(
                101, created.room_code, Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER
            )
            await orchestrator.set_ready(101, created.room_id, True)
            await orchestrator.attach_motion(
                CREATOR_ID, created.room_id, SAMPLE_MOTION, TopicArea.SOCIAL, Difficulty.NOVICE
            )
            await orchestrator.start_debate(CREATOR_ID, created.room_id)
            for _ in range(8):
                await orchestrator.advance_speaker(created.room_id)
            await orchestrator.drain_background_tasks()
            return created.room_id

        room_id = asyncio.run(scenario())

        assert orchestrator.get_room(room_id).current_phase == RoomPhase.COMPLETED

    def test_finish_requires_feedback_phase(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            room_id = await setup_room(start=True)
            await orchestrator.finish_feedback(room_id)

        with pytest.raises(InvalidStateError, match="not collecting feedback"):
            asyncio.run(scenario())

    def test_without_runner_room_skips_feedback_phase(
        self, orchestrator: RoomOrchestrator, setup_room
    ):
        async def scenario():
            room_id = await setup_room(seats=PM_ONLY, start=True)
            for _ in range(8):
                await orchestrator.advance_speaker(room_id)
            await orchestrator.drain_background_tasks()
            return room_id

        room_id = asyncio.run(scenario())

        room = orchestrator.get_room(room_id)
        assert room.status == RoomStatus.COMPLETED
        assert room.current_phase == RoomPhase.COMPLETED
        with pytest.raises(InvalidStateError, match="not collecting feedback"):
            asyncio.run(orchestrator.finish_feedback(room_id))


class TestSnapshot:
    def test_snapshot_of_partial_room(self, orchestrator: RoomOrchestrator, setup_room):
        async def scenario():
            return await setup_room(
                seats=[
                    (Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER, 101),
                    (Team.OPPOSITION, SpeakerRole.LEADER_OF_OPPOSITION, 102),
                ],
                start=True,
            )

        room_id = asyncio.run(scenario())
        snapshot = orchestrator.get_snapshot(room_id)

        assert snapshot.motion.motion == SAMPLE_MOTION.motion
        assert len(snapshot.speaking_order) == 8
        assert [slot["index"] for slot in snapshot.active_speaking_order] == [0, 1, 6, 7]
        assert snapshot.current_slot["role"] == "prime_minister"
        assert snapshot.current_speaker.user_id == 101
        assert snapshot.open_speech is None

    def test_waiting_room_has_no_current_slot(self, orchestrator: RoomOrchestrator, setup_room):
        room_id = asyncio.run(setup_room(seats=[]))
        snapshot = orchestrator.get_snapshot(room_id)

        assert snapshot.current_slot is None
        assert snapshot.current_speaker is None

    def test_unknown_room(self, orchestrator: RoomOrchestrator):
        with pytest.raises(RoomNotFoundError):
            orchestrator.get_snapshot(12345)


def test_format_fixture_matches_default(store: RoomDatabaseManager):
    assert isinstance(RoomOrchestrator(store).format, AsianParliamentaryFormat)
