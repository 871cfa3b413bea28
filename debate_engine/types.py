"""Shared types and enums for debate rooms."""

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeAlias, TypedDict


class SpeakingSlotData(TypedDict):
    """Serialized speaking slot sent to clients."""

    index: int
    role: str
    team: str
    label: str
    allotted_time: int
    speech_type: str


class RoomEventData(TypedDict):
    """Data structure for room broadcast events."""

    type: str
    room_id: int
    payload: dict[str, Any]


# Callback type aliases for room events
RoomEventCallback: TypeAlias = Callable[[int, dict[str, Any]], Awaitable[None]]
FeedbackRunner: TypeAlias = Callable[[int], Awaitable[None]]


class Team(Enum):
    """Debate teams."""

    GOVERNMENT = "government"
    OPPOSITION = "opposition"


class SpeakerRole(Enum):
    """Roles in the speaking order.

    The six substantive roles are seats a participant can hold. The two reply
    roles are slots only; they are delivered by the team's first speaker.
    """

    PRIME_MINISTER = "prime_minister"
    LEADER_OF_OPPOSITION = "leader_of_opposition"
    DEPUTY_PRIME_MINISTER = "deputy_prime_minister"
    DEPUTY_LEADER_OF_OPPOSITION = "deputy_leader_of_opposition"
    GOVERNMENT_WHIP = "government_whip"
    OPPOSITION_WHIP = "opposition_whip"
    OPPOSITION_REPLY = "opposition_reply"
    GOVERNMENT_REPLY = "government_reply"

    @property
    def is_reply(self) -> bool:
        return "reply" in self.value


class SpeechType(Enum):
    """Kinds of speech."""

    SUBSTANTIVE = "substantive"
    REPLY = "reply"

    @classmethod
    def for_role(cls, role: SpeakerRole) -> "SpeechType":
        return cls.REPLY if role.is_reply else cls.SUBSTANTIVE


class RoomStatus(Enum):
    """Room lifecycle status."""

    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RoomPhase(Enum):
    """Phase within the room lifecycle; moves together with RoomStatus."""

    SETUP = "setup"
    DEBATE = "debate"
    FEEDBACK = "feedback"
    COMPLETED = "completed"


class TopicArea(Enum):
    """Topic areas for motion generation."""

    POLITICS = "politics"
    ETHICS = "ethics"
    TECHNOLOGY = "technology"
    ECONOMICS = "economics"
    SOCIAL = "social"
    ENVIRONMENT = "environment"
    EDUCATION = "education"
    HEALTH = "health"


class Difficulty(Enum):
    """Motion difficulty levels."""

    NOVICE = "novice"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
