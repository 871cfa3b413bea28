"""Capability interfaces injected into the room and speech layers."""

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class AnnouncementSink(Protocol):
    """Somewhere to send moderator announcements (speech synthesis, chat, logs)."""

    async def announce(self, room_id: int, text: str) -> None:
        ...


@runtime_checkable
class AudioCapture(Protocol):
    """A source of recorded audio chunks for the open speech."""

    mime_type: str

    async def read_chunk(self) -> tuple[bytes, float] | None:
        """Return the next (audio, elapsed_seconds) pair, or None when recording stops."""
        ...


class LoggingAnnouncementSink:
    """Announcement sink that only writes to the log."""

    async def announce(self, room_id: int, text: str) -> None:
        logger.info(f"Room {room_id} announcement: {text}")
