"""Human-shareable room codes."""

import secrets

from .exceptions import ValidationError

# No 0/O or 1/I so codes can be read aloud and typed without ambiguity
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 6


def generate_room_code() -> str:
    """Return a random room code.

    Uniqueness is not guaranteed here; the store rejects duplicates and the
    caller regenerates.
    """
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def normalize_room_code(code: str) -> str:
    """Upper-case and length-check a user-entered room code.

    Characters outside the alphabet are left for the lookup to reject as
    "Room not found".
    """
    normalized = code.strip().upper()
    if len(normalized) != ROOM_CODE_LENGTH:
        raise ValidationError(f"Room code must be {ROOM_CODE_LENGTH} characters")
    return normalized
