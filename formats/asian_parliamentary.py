"""Asian Parliamentary debate format implementation."""

from typing import assert_never

from debate_engine.types import Difficulty, SpeakerRole, SpeechType, Team, TopicArea
from .base import DebateFormat, PoiRules, ReplyRules, SpeakingSlot

SUBSTANTIVE_SPEECH_SECONDS = 420
REPLY_SPEECH_SECONDS = 240

_SPEAKING_ORDER: tuple[SpeakingSlot, ...] = (
    SpeakingSlot(SpeakerRole.PRIME_MINISTER, Team.GOVERNMENT, "Prime Minister", SUBSTANTIVE_SPEECH_SECONDS, SpeechType.SUBSTANTIVE),
    SpeakingSlot(SpeakerRole.LEADER_OF_OPPOSITION, Team.OPPOSITION, "Leader of Opposition", SUBSTANTIVE_SPEECH_SECONDS, SpeechType.SUBSTANTIVE),
    SpeakingSlot(SpeakerRole.DEPUTY_PRIME_MINISTER, Team.GOVERNMENT, "Deputy Prime Minister", SUBSTANTIVE_SPEECH_SECONDS, SpeechType.SUBSTANTIVE),
    SpeakingSlot(SpeakerRole.DEPUTY_LEADER_OF_OPPOSITION, Team.OPPOSITION, "Deputy Leader of Opposition", SUBSTANTIVE_SPEECH_SECONDS, SpeechType.SUBSTANTIVE),
    SpeakingSlot(SpeakerRole.GOVERNMENT_WHIP, Team.GOVERNMENT, "Government Whip", SUBSTANTIVE_SPEECH_SECONDS, SpeechType.SUBSTANTIVE),
    SpeakingSlot(SpeakerRole.OPPOSITION_WHIP, Team.OPPOSITION, "Opposition Whip", SUBSTANTIVE_SPEECH_SECONDS, SpeechType.SUBSTANTIVE),
    SpeakingSlot(SpeakerRole.OPPOSITION_REPLY, Team.OPPOSITION, "Opposition Reply", REPLY_SPEECH_SECONDS, SpeechType.REPLY),
    SpeakingSlot(SpeakerRole.GOVERNMENT_REPLY, Team.GOVERNMENT, "Government Reply", REPLY_SPEECH_SECONDS, SpeechType.REPLY),
)

_POI_RULES = PoiRules(
    protected_time_start=60,  # First minute protected
    protected_time_end=60,  # Last minute protected
    min_duration=15,
    max_duration=15,
)

_REPLY_RULES = ReplyRules(
    no_new_arguments=True,
    speaker_must_be_previous_speaker=True,  # First or second speaker only
)

_DIFFICULTY_GUIDANCE: dict[Difficulty, str] = {
    Difficulty.NOVICE: "Simple, clear-cut issues with obvious stakeholders",
    Difficulty.INTERMEDIATE: "Nuanced topics requiring balanced analysis",
    Difficulty.ADVANCED: "Complex issues with multiple competing interests",
}

_TOPIC_LABELS: dict[TopicArea, str] = {
    TopicArea.POLITICS: "Politics & Governance",
    TopicArea.ETHICS: "Ethics & Philosophy",
    TopicArea.TECHNOLOGY: "Technology & Innovation",
    TopicArea.ECONOMICS: "Economics & Business",
    TopicArea.SOCIAL: "Social Issues",
    TopicArea.ENVIRONMENT: "Environment & Climate",
    TopicArea.EDUCATION: "Education",
    TopicArea.HEALTH: "Health & Medicine",
}


class AsianParliamentaryFormat(DebateFormat):
    """Three-on-three parliamentary debate with two reply speeches."""

    @property
    def name(self) -> str:
        return "asian_parliamentary"

    @property
    def display_name(self) -> str:
        return "Asian Parliamentary"

    @property
    def description(self) -> str:
        return "Government and Opposition teams of three deliver six 7-minute substantive speeches followed by two 4-minute reply speeches"

    @property
    def speaking_order(self) -> tuple[SpeakingSlot, ...]:
        return _SPEAKING_ORDER

    @property
    def poi_rules(self) -> PoiRules:
        return _POI_RULES

    @property
    def reply_rules(self) -> ReplyRules:
        return _REPLY_RULES

    def get_seat_roles(self, team: Team) -> frozenset[SpeakerRole]:
        return frozenset(
            slot.role
            for slot in _SPEAKING_ORDER
            if slot.team == team and slot.speech_type == SpeechType.SUBSTANTIVE
        )

    def get_team_label(self, team: Team) -> str:
        match team:
            case Team.GOVERNMENT:
                return "Government (Proposition)"
            case Team.OPPOSITION:
                return "Opposition"
            case _:
                assert_never(team)

    def get_topic_label(self, topic_area: TopicArea) -> str:
        return _TOPIC_LABELS[topic_area]

    def get_format_instructions(self) -> str:
        """Asian Parliamentary format-specific instructions."""
        return """ASIAN PARLIAMENTARY DEBATE FORMAT:
- Government defends the motion, Opposition opposes it; three speakers per team
- Speaking order: PM, LO, DPM, DLO, Government Whip, Opposition Whip, Opposition Reply, Government Reply
- Substantive speeches are 7 minutes, reply speeches are 4 minutes
- Points of Information may be offered by the opposing team outside the first and last minute
- Reply speeches are delivered by the first or second speaker and introduce no new arguments
- Whips rebut and summarise; new material late in the debate should be minimal"""

    def get_motion_generation_messages(
        self, topic_area: TopicArea, difficulty: Difficulty
    ) -> list[dict[str, str]]:
        """Get Asian Parliamentary messages for AI motion generation."""
        return [
            {
                "role": "system",
                "content": "You are an expert Asian Parliamentary debate adjudicator who writes tournament motions. Motions use the conventional 'This House' phrasing, are balanced so both Government and Opposition have strong cases, and are accessible to speakers without specialist knowledge. You respond only with valid JSON.",
            },
            {
                "role": "user",
                "content": f"""Generate one debate motion.

TOPIC AREA: {self.get_topic_label(topic_area)}
DIFFICULTY: {difficulty.value} - {_DIFFICULTY_GUIDANCE[difficulty]}

Respond with JSON in exactly this shape:
{{
  "motion": "This House Would ...",
  "backgroundContext": "2-3 sentences of neutral context both teams can rely on",
  "keyStakeholders": ["stakeholder", "stakeholder", "stakeholder"]
}}""",
            },
        ]
