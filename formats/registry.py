"""Lookup of the debate formats a room can be played in."""

from typing import Any

from .base import DebateFormat
from .asian_parliamentary import AsianParliamentaryFormat


class FormatRegistry:
    """Formats keyed by `DebateFormat.name`; formats are stateless so one instance is shared."""

    def __init__(self, *formats: DebateFormat):
        self._formats: dict[str, DebateFormat] = {}
        for debate_format in formats:
            self.register(debate_format)

    def register(self, debate_format: DebateFormat) -> None:
        if debate_format.name in self._formats:
            raise ValueError(f"Format already registered: {debate_format.name}")
        self._formats[debate_format.name] = debate_format

    def get_format(self, name: str) -> DebateFormat:
        try:
            return self._formats[name]
        except KeyError:
            raise ValueError(
                f"Unknown format: {name}. Available: {self.list_formats()}"
            ) from None

    def list_formats(self) -> list[str]:
        return list(self._formats)

    def get_format_descriptions(self) -> dict[str, dict[str, Any]]:
        """Short listing for format pickers."""
        return {
            name: {
                "display_name": debate_format.display_name,
                "description": debate_format.description,
                "speeches": len(debate_format.speaking_order),
                "max_participants": debate_format.get_max_participants(),
            }
            for name, debate_format in self._formats.items()
        }

    def describe(self, name: str) -> dict[str, Any]:
        """Full rules of one format: speaking order, POI window and reply rules."""
        debate_format = self.get_format(name)
        poi_rules = debate_format.poi_rules
        reply_rules = debate_format.reply_rules
        return {
            "name": debate_format.name,
            "display_name": debate_format.display_name,
            "description": debate_format.description,
            "speaking_order": [
                slot.to_dict(index) for index, slot in enumerate(debate_format.speaking_order)
            ],
            "poi_rules": {
                "protected_time_start": poi_rules.protected_time_start,
                "protected_time_end": poi_rules.protected_time_end,
                "min_duration": poi_rules.min_duration,
                "max_duration": poi_rules.max_duration,
            },
            "reply_rules": {
                "no_new_arguments": reply_rules.no_new_arguments,
                "speaker_must_be_previous_speaker": reply_rules.speaker_must_be_previous_speaker,
            },
            "max_participants": debate_format.get_max_participants(),
        }


format_registry = FormatRegistry(AsianParliamentaryFormat())
