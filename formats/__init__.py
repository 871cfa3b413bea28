"""Debate formats: speaking order, POI rules and the prompts that depend on them."""

from .base import DebateFormat, PoiRules, ReplyRules, SpeakingSlot
from .asian_parliamentary import AsianParliamentaryFormat
from .registry import FormatRegistry, format_registry

__all__ = [
    "DebateFormat",
    "PoiRules",
    "ReplyRules",
    "SpeakingSlot",
    "AsianParliamentaryFormat",
    "FormatRegistry",
    "format_registry",
]
