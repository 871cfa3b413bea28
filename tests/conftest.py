"""Pytest configuration and shared fixtures.

Async code is driven with asyncio.run inside plain test functions; each test
gets its own SQLite file under tmp_path.
"""

from collections.abc import Awaitable, Callable
from pathlib import Path

import pytest

from debate_engine.database import RoomDatabaseManager
from debate_engine.exceptions import TranscriptionError, TranscriptionErrorCode
from debate_engine.models import GeneratedMotion
from debate_engine.orchestrator import RoomOrchestrator
from debate_engine.session import SpeechSessionTracker
from debate_engine.types import Difficulty, SpeakerRole, Team, TopicArea
from formats.asian_parliamentary import AsianParliamentaryFormat
from models.transcription import TranscriptionResult

CREATOR_ID = 1

FULL_SEATS: list[tuple[Team, SpeakerRole, int]] = [
    (Team.GOVERNMENT, SpeakerRole.PRIME_MINISTER, 101),
    (Team.OPPOSITION, SpeakerRole.LEADER_OF_OPPOSITION, 102),
    (Team.GOVERNMENT, SpeakerRole.DEPUTY_PRIME_MINISTER, 103),
    (Team.OPPOSITION, SpeakerRole.DEPUTY_LEADER_OF_OPPOSITION, 104),
    (Team.GOVERNMENT, SpeakerRole.GOVERNMENT_WHIP, 105),
    (Team.OPPOSITION, SpeakerRole.OPPOSITION_WHIP, 106),
]

SAMPLE_MOTION = GeneratedMotion(
    motion="This House Would ban social media for minors",
    background_context="Several countries are debating age limits for social platforms.",
    key_stakeholders=["Parents", "Teenagers", "Platforms"],
)


# =============================================================================
# TEST DOUBLES
# =============================================================================


class RecordingAnnouncer:
    """Announcement sink that keeps everything it is told."""

    def __init__(self):
        self.announcements: list[tuple[int, str]] = []

    async def announce(self, room_id: int, text: str) -> None:
        self.announcements.append((room_id, text))


class FakeTranscriber:
    """Returns queued texts in order; an exception in the queue is raised instead."""

    def __init__(self, *results: str | Exception):
        self._results = list(results)
        self.calls: list[dict] = []

    async def transcribe(self, audio, mime_type, language=None, prompt=None):
        self.calls.append({"audio": audio, "mime_type": mime_type, "language": language})
        if not self._results:
            raise TranscriptionError(
                "Transcription failed", TranscriptionErrorCode.SERVICE_ERROR, "no fake results left"
            )
        item = self._results.pop(0)
        if isinstance(item, Exception):
            raise item
        return TranscriptionResult(text=item, language="en", duration=5.0)


class FakeMotionSource:
    def __init__(self, motion: GeneratedMotion = SAMPLE_MOTION):
        self.motion = motion
        self.calls: list[tuple[TopicArea, Difficulty]] = []

    async def generate(self, topic_area: TopicArea, difficulty: Difficulty) -> GeneratedMotion:
        self.calls.append((topic_area, difficulty))
        return self.motion


class FakeModelManager:
    """Stands in for ModelManager; replies with queued responses."""

    def __init__(self, *responses: str | Exception):
        self._responses = list(responses)
        self.registered: dict[str, object] = {}
        self.requests: list[tuple[str, list[dict[str, str]]]] = []

    def register_model(self, model_id, config):
        self.registered[model_id] = config

    async def generate_response(self, model_id, messages, **overrides):
        self.requests.append((model_id, messages))
        if not self._responses:
            raise AssertionError("No fake responses left")
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


# =============================================================================
# SHARED FIXTURES
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    return str(tmp_path / "rooms.db")


@pytest.fixture
def store(db_path: str) -> RoomDatabaseManager:
    """A fresh SQLite-backed store per test."""
    return RoomDatabaseManager(db_path)


@pytest.fixture
def ap_format() -> AsianParliamentaryFormat:
    return AsianParliamentaryFormat()


@pytest.fixture
def announcer() -> RecordingAnnouncer:
    return RecordingAnnouncer()


@pytest.fixture
def orchestrator(
    store: RoomDatabaseManager,
    ap_format: AsianParliamentaryFormat,
    announcer: RecordingAnnouncer,
) -> RoomOrchestrator:
    return RoomOrchestrator(store, debate_format=ap_format, announcer=announcer)


@pytest.fixture
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def tracker(orchestrator: RoomOrchestrator, transcriber: FakeTranscriber) -> SpeechSessionTracker:
    return SpeechSessionTracker(orchestrator, transcriber=transcriber)


@pytest.fixture
def setup_room(
    orchestrator: RoomOrchestrator,
) -> Callable[..., Awaitable[int]]:
    """Create a room, optionally seat, ready, give it a motion and start it.

    Returns the room id.
    """

    async def _setup(
        seats: list[tuple[Team, SpeakerRole, int]] = FULL_SEATS,
        ready: bool = True,
        with_motion: bool = True,
        start: bool = False,
    ) -> int:
        created = await orchestrator.create_room(CREATOR_ID)
        for team, role, user_id in seats:
            await orchestrator.join_room(user_id, created.room_code, team, role)
            if ready:
                await orchestrator.set_ready(user_id, created.room_id, True)
        if with_motion:
            await orchestrator.attach_motion(
                CREATOR_ID,
                created.room_id,
                SAMPLE_MOTION,
                TopicArea.TECHNOLOGY,
                Difficulty.INTERMEDIATE,
            )
        if start:
            await orchestrator.start_debate(CREATOR_ID, created.room_id)
        return created.room_id

    return _setup


# =============================================================================
# PYTEST CONFIGURATION HOOKS
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
