"""Pure lookups between speaking slots and the seats that deliver them."""

from collections.abc import Iterable
from typing import assert_never

from formats.base import DebateFormat, SpeakingSlot
from .models import Participant
from .types import SpeakerRole


def seat_for_slot(role: SpeakerRole) -> SpeakerRole:
    """Return the seat whose holder delivers the speech for `role`.

    Reply speeches have no seat of their own: the Leader of Opposition gives
    the opposition reply and the Prime Minister the government reply.
    """
    match role:
        case SpeakerRole.OPPOSITION_REPLY:
            return SpeakerRole.LEADER_OF_OPPOSITION
        case SpeakerRole.GOVERNMENT_REPLY:
            return SpeakerRole.PRIME_MINISTER
        case (
            SpeakerRole.PRIME_MINISTER
            | SpeakerRole.LEADER_OF_OPPOSITION
            | SpeakerRole.DEPUTY_PRIME_MINISTER
            | SpeakerRole.DEPUTY_LEADER_OF_OPPOSITION
            | SpeakerRole.GOVERNMENT_WHIP
            | SpeakerRole.OPPOSITION_WHIP
        ):
            return role
        case _:
            assert_never(role)


def find_slot_speaker(
    slot: SpeakingSlot, participants: Iterable[Participant]
) -> Participant | None:
    """Find the participant who speaks in `slot`, if the seat is filled."""
    seat = seat_for_slot(slot.role)
    for participant in participants:
        if participant.speaker_role == seat:
            return participant
    return None


def active_speaking_order(
    debate_format: DebateFormat, participants: Iterable[Participant]
) -> list[tuple[int, SpeakingSlot]]:
    """Slots whose underlying seat is occupied, paired with their fixed index.

    Used for display only; turn advancement always walks every slot.
    """
    occupied = {participant.speaker_role for participant in participants}
    return [
        (index, slot)
        for index, slot in enumerate(debate_format.speaking_order)
        if seat_for_slot(slot.role) in occupied
    ]


def current_slot(debate_format: DebateFormat, index: int) -> SpeakingSlot | None:
    return debate_format.get_slot(index)
