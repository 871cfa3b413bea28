"""Shared interface for the chat-completion backends used by the AI collaborators."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from config.settings import SystemConfig, ModelConfig


class BaseModelProvider(ABC):
    """A chat-completion backend that turns messages into one text reply."""

    def __init__(self, system_config: "SystemConfig"):
        self.system_config = system_config

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def generate_response(
        self, model_config: "ModelConfig", messages: list[dict[str, str]], **overrides: Any
    ) -> str:
        """Return the assistant reply, stripped of surrounding whitespace."""
        pass

    def chat_params(
        self, model_config: "ModelConfig", messages: list[dict[str, str]], overrides: dict[str, Any]
    ) -> dict[str, Any]:
        """Request fields every OpenAI-compatible chat endpoint accepts."""
        return {
            "model": model_config.name,
            "messages": messages,
            "max_tokens": overrides.get("max_tokens", model_config.max_tokens),
            "temperature": overrides.get("temperature", model_config.temperature),
        }

    def validate_model_config(self, model_config: "ModelConfig") -> bool:
        return model_config.provider == self.provider_name and bool(model_config.name.strip())
