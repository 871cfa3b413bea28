"""Base classes and interfaces for debate formats."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from debate_engine.types import (
    Difficulty,
    SpeakerRole,
    SpeakingSlotData,
    SpeechType,
    Team,
    TopicArea,
)


@dataclass(frozen=True)
class SpeakingSlot:
    """A single turn in a format's fixed speaking order."""

    role: SpeakerRole
    team: Team
    label: str
    allotted_time: int  # Seconds
    speech_type: SpeechType

    def to_dict(self, index: int) -> SpeakingSlotData:
        return {
            "index": index,
            "role": self.role.value,
            "team": self.team.value,
            "label": self.label,
            "allotted_time": self.allotted_time,
            "speech_type": self.speech_type.value,
        }


@dataclass(frozen=True)
class PoiRules:
    """Point of Information timing rules."""

    protected_time_start: int  # Seconds at the start of a speech with no POIs
    protected_time_end: int  # Seconds at the end of a speech with no POIs
    min_duration: int
    max_duration: int

    def window(self, allotted_time: int) -> tuple[int, int]:
        """Return the (earliest, latest) elapsed second a POI may be offered."""
        return self.protected_time_start, allotted_time - self.protected_time_end

    def is_allowed(self, elapsed_seconds: float, allotted_time: int) -> bool:
        earliest, latest = self.window(allotted_time)
        return earliest <= elapsed_seconds <= latest


@dataclass(frozen=True)
class ReplyRules:
    """Reply speech policy.

    Documented for display and prompts; the reply slots already map to the
    team's first speaker so nothing checks these flags at runtime.
    """

    no_new_arguments: bool
    speaker_must_be_previous_speaker: bool


class DebateFormat(ABC):
    """Abstract base class for debate formats."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Format name."""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable format name for display in UI."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Format description."""
        pass

    @property
    @abstractmethod
    def speaking_order(self) -> tuple[SpeakingSlot, ...]:
        """Every slot in the order they are spoken, reply slots included."""
        pass

    @property
    @abstractmethod
    def poi_rules(self) -> PoiRules:
        pass

    @property
    @abstractmethod
    def reply_rules(self) -> ReplyRules:
        pass

    @abstractmethod
    def get_seat_roles(self, team: Team) -> frozenset[SpeakerRole]:
        """Roles a participant of `team` may occupy."""
        pass

    @abstractmethod
    def get_team_label(self, team: Team) -> str:
        pass

    @abstractmethod
    def get_format_instructions(self) -> str:
        """Get format-specific instructions for system prompts."""
        pass

    def get_slot(self, index: int) -> SpeakingSlot | None:
        """Return the slot at `index`, or None past the end of the order."""
        if 0 <= index < len(self.speaking_order):
            return self.speaking_order[index]
        return None

    def get_slot_for_role(self, role: SpeakerRole) -> SpeakingSlot:
        for slot in self.speaking_order:
            if slot.role == role:
                return slot
        raise ValueError(f"Role {role.value} is not part of the {self.name} speaking order")

    @property
    def last_slot_index(self) -> int:
        return len(self.speaking_order) - 1

    def get_max_participants(self) -> int:
        """Maximum number of participants supported."""
        return sum(len(self.get_seat_roles(team)) for team in Team)

    def get_min_participants(self) -> int:
        """Minimum number of participants required to start."""
        return 1

    def get_motion_generation_messages(
        self, topic_area: TopicArea, difficulty: Difficulty
    ) -> list[dict[str, str]]:
        """Get format-specific messages for AI motion generation."""
        return [
            {
                "role": "system",
                "content": "You are an expert debate motion writer. Create balanced, debatable motions with a clear proposition and opposition side. Respond only with JSON.",
            },
            {
                "role": "user",
                "content": (
                    f"Write one debate motion about {topic_area.value} at {difficulty.value} difficulty. "
                    'Respond with JSON: {"motion": "...", "backgroundContext": "...", "keyStakeholders": ["..."]}'
                ),
            },
        ]
