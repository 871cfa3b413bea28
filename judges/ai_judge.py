"""AI-powered speaker feedback using language models."""

import logging
import uuid
from typing import Any

from config.settings import ModelConfig
from debate_engine.exceptions import FeedbackGenerationError
from debate_engine.models import Feedback
from debate_engine.transcript import RoomTranscript
from debate_engine.types import SpeakerRole
from debate_engine.utils import extract_json_object
from formats.base import DebateFormat
from models.manager import ModelManager
from .base import BaseJudge

logger = logging.getLogger(__name__)


class AIJudge(BaseJudge):
    """AI judge using a dedicated language model to write speaker feedback."""

    def __init__(
        self,
        model_manager: ModelManager,
        model_config: ModelConfig,
        debate_format: DebateFormat,
    ):
        self.model_manager = model_manager
        self.model_config = model_config
        self.format = debate_format

        # Generate unique judge ID for model manager registration
        self.judge_id = f"judge-{uuid.uuid4()}"
        self.model_manager.register_model(self.judge_id, model_config)

    @property
    def name(self) -> str:
        return f"AI Judge ({self.model_config.name})"

    async def evaluate_room(self, transcript: RoomTranscript) -> list[Feedback]:
        """Evaluate every seat that spoke in the room."""
        speakers = transcript.speakers()
        if not speakers:
            logger.info(f"Room {transcript.room_id} has no speeches; nothing to judge")
            return []

        logger.info(f"AI judge evaluating room {transcript.room_id} ({len(speakers)} speakers)")

        try:
            evaluation = await self._generate_evaluation(transcript, list(speakers))
        except Exception as e:
            logger.error(f"AI judge evaluation failed: {e}")
            raise FeedbackGenerationError("Failed to generate feedback") from e

        feedback = self._parse_evaluation(evaluation, transcript.room_id, speakers)
        logger.info(
            f"AI judge scored room {transcript.room_id}: average {self.average_score(feedback):.1f}"
        )
        return feedback

    async def _generate_evaluation(
        self, transcript: RoomTranscript, seats: list[SpeakerRole]
    ) -> str:
        messages = [
            {"role": "system", "content": self._get_judge_system_prompt()},
            {"role": "user", "content": self._create_evaluation_prompt(transcript, seats)},
        ]

        return await self.model_manager.generate_response(self.judge_id, messages)

    def _get_judge_system_prompt(self) -> str:
        return f"""You are an experienced Asian Parliamentary debate adjudicator giving individual feedback to each speaker after a practice round.

ADJUDICATION PRINCIPLES:
1. Judge matter (argument quality and evidence), manner (delivery and clarity) and method (structure and role fulfilment)
2. Credit engagement with the other team's arguments
3. Reply speeches must not introduce new arguments
4. Be specific and constructive; speakers should know exactly what to practise next
5. Score each speaker from 0 to 100

{self.format.get_format_instructions()}

You must respond with JSON that can be parsed programmatically."""

    def _create_evaluation_prompt(
        self, transcript: RoomTranscript, seats: list[SpeakerRole]
    ) -> str:
        labels = {seat: self.format.get_slot_for_role(seat).label for seat in seats}
        speaker_list = "\n".join(f"- {seat.value} ({labels[seat]})" for seat in seats)
        examples = ",\n".join(
            f"""    {{
      "role": "{seat.value}",
      "score": 72,
      "strengths": "what {labels[seat]} did well",
      "improvements": "what {labels[seat]} should work on",
      "summary": "one or two sentences on the overall performance"
    }}"""
            for seat in seats
        )

        return f"""Evaluate each speaker in this debate. A speaker who also gave a reply speech is judged on both speeches together.

SPEAKERS:
{speaker_list}

Respond with JSON in exactly this shape, with exactly {len(seats)} entries:
{{
  "speakers": [
{examples}
  ]
}}

DEBATE TRANSCRIPT:
{transcript.to_text()}

Provide your evaluation as valid JSON only, no additional text:"""

    def _parse_evaluation(
        self,
        evaluation: str,
        room_id: int,
        speakers: dict[SpeakerRole, int | None],
    ) -> list[Feedback]:
        """Parse the judge response into one Feedback per seat."""
        logger.debug(f"Raw judge evaluation: {evaluation}")
        try:
            data = extract_json_object(evaluation)
            entries: list[dict[str, Any]] = data["speakers"]
            if not isinstance(entries, list):
                raise ValueError("'speakers' must be a list")

            by_role: dict[SpeakerRole, Feedback] = {}
            for entry in entries:
                role = SpeakerRole(entry["role"])
                if role not in speakers or role in by_role:
                    logger.warning(f"Ignoring feedback for unexpected or repeated role {role.value}")
                    continue

                score = float(entry["score"])
                if not 0 <= score <= 100:
                    raise ValueError(f"Score {score} for {role.value} is outside 0-100")

                by_role[role] = Feedback(
                    room_id=room_id,
                    user_id=speakers[role],
                    speaker_role=role,
                    score=score,
                    strengths=str(entry.get("strengths", "")).strip(),
                    improvements=str(entry.get("improvements", "")).strip(),
                    summary=str(entry.get("summary", "")).strip(),
                )
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to parse AI judge evaluation: {e}")
            raise FeedbackGenerationError(f"Failed to parse judge evaluation: {e}") from e

        missing = [seat.value for seat in speakers if seat not in by_role]
        if missing:
            raise FeedbackGenerationError(f"Judge did not evaluate: {', '.join(missing)}")

        return [by_role[seat] for seat in speakers]
