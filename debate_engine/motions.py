"""AI motion generation."""

import logging
import uuid

from config.settings import ModelConfig
from formats.base import DebateFormat
from models.manager import ModelManager
from .exceptions import MotionGenerationError
from .models import GeneratedMotion
from .types import Difficulty, TopicArea
from .utils import extract_json_object

logger = logging.getLogger(__name__)


def _clean_motion_text(text: str) -> str:
    return text.strip().strip("\"'").strip()


class MotionGenerator:
    """Writes a motion for a topic area and difficulty with a language model."""

    def __init__(
        self,
        model_manager: ModelManager,
        model_config: ModelConfig,
        debate_format: DebateFormat,
    ):
        self.model_manager = model_manager
        self.model_config = model_config
        self.format = debate_format

        self.model_id = f"motion-{uuid.uuid4()}"
        self.model_manager.register_model(self.model_id, model_config)

    async def generate(self, topic_area: TopicArea, difficulty: Difficulty) -> GeneratedMotion:
        """Generate one motion.

        Raises:
            MotionGenerationError: If the model call fails or its output has no
                usable motion.
        """
        messages = self.format.get_motion_generation_messages(topic_area, difficulty)

        try:
            response = await self.model_manager.generate_response(self.model_id, messages)
        except Exception as e:
            logger.error(f"Motion generation failed for {topic_area.value}/{difficulty.value}: {e}")
            raise MotionGenerationError("Failed to generate motion") from e

        return self.parse_response(response)

    def parse_response(self, response: str) -> GeneratedMotion:
        try:
            data = extract_json_object(response)
        except ValueError as e:
            logger.error(f"Unparseable motion response: {response}")
            raise MotionGenerationError("Motion generator returned invalid output") from e

        motion = data.get("motion")
        background = data.get("backgroundContext", data.get("background_context"))
        stakeholders = data.get("keyStakeholders", data.get("key_stakeholders", []))

        if not isinstance(motion, str) or not _clean_motion_text(motion):
            raise MotionGenerationError("Motion generator returned an empty motion")
        if not isinstance(background, str):
            raise MotionGenerationError("Motion generator did not return background context")
        if not isinstance(stakeholders, list):
            stakeholders = []

        generated = GeneratedMotion(
            motion=_clean_motion_text(motion),
            background_context=background.strip(),
            key_stakeholders=[str(s).strip() for s in stakeholders if str(s).strip()],
        )
        logger.info(f"Generated motion: {generated.motion}")
        return generated
