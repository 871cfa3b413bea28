import asyncio
import logging
from typing import TYPE_CHECKING, Any

from openai import OpenAI

from .base import BaseModelProvider

if TYPE_CHECKING:
    from openai.types.chat import ChatCompletion
    from config.settings import SystemConfig, ModelConfig

logger = logging.getLogger(__name__)


class OllamaProvider(BaseModelProvider):
    """Local models served by Ollama through its OpenAI-compatible endpoint."""

    def __init__(self, system_config: "SystemConfig"):
        super().__init__(system_config)
        self._client = OpenAI(
            base_url=f"{system_config.ollama_base_url.rstrip('/')}/v1",
            api_key="ollama",  # Ignored by Ollama but required by the client
            timeout=120.0,  # Cold model loads are slow
        )

    @property
    def provider_name(self) -> str:
        return "ollama"

    def _extra_body(self) -> dict[str, Any]:
        ollama_config = self.system_config.ollama
        extra_body: dict[str, Any] = {}
        if ollama_config.keep_alive is not None:
            extra_body["keep_alive"] = ollama_config.keep_alive
        if ollama_config.repeat_penalty is not None:
            extra_body["repeat_penalty"] = ollama_config.repeat_penalty
        return extra_body

    async def generate_response(
        self, model_config: "ModelConfig", messages: list[dict[str, str]], **overrides: Any
    ) -> str:
        params = self.chat_params(model_config, messages, overrides)
        extra_body = self._extra_body()
        if extra_body:
            params["extra_body"] = extra_body

        try:
            # The sync client keeps Ollama's keep_alive semantics; run it off the loop
            response: "ChatCompletion" = await asyncio.to_thread(
                self._client.chat.completions.create, **params
            )
        except Exception as e:
            logger.error(f"Ollama generation failed for {model_config.name}: {e}")
            raise

        content = response.choices[0].message.content or ""
        logger.debug(f"Ollama model {model_config.name} returned {len(content)} chars")
        return content.strip()
