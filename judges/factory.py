"""Factory for creating the feedback judge."""

import logging

from config.settings import FeedbackConfig
from formats.base import DebateFormat
from models.manager import ModelManager
from .ai_judge import AIJudge
from .base import BaseJudge

logger = logging.getLogger(__name__)


def create_judge(
    feedback_config: FeedbackConfig,
    model_manager: ModelManager,
    debate_format: DebateFormat,
) -> BaseJudge | None:
    """Create the configured judge, or None when feedback is disabled."""
    if not feedback_config.enabled:
        logger.info("Feedback disabled - debates will complete without evaluation")
        return None

    logger.info(f"Creating AI judge with model: {feedback_config.model.name}")
    return AIJudge(
        model_manager=model_manager,
        model_config=feedback_config.model,
        debate_format=debate_format,
    )
