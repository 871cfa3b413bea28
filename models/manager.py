"""Routes generation requests for registered models to their providers."""

from __future__ import annotations

import logging
import time
from typing import TypeAlias

from config.settings import ModelConfig, SystemConfig

from .providers import BaseModelProvider, create_provider

MessageList: TypeAlias = list[dict[str, str]]

logger = logging.getLogger(__name__)


class ModelManager:
    """Holds model registrations and one lazily built provider per backend."""

    def __init__(self, system_config: SystemConfig):
        self._system_config = system_config
        self._model_configs: dict[str, ModelConfig] = {}
        self._providers: dict[str, BaseModelProvider] = {}

    def _provider_for(self, config: ModelConfig) -> BaseModelProvider:
        provider = self._providers.get(config.provider)
        if provider is None:
            provider = create_provider(config.provider, self._system_config)
            self._providers[config.provider] = provider
        return provider

    def register_model(self, model_id: str, config: ModelConfig) -> None:
        provider = self._provider_for(config)
        if not provider.validate_model_config(config):
            logger.error("Rejected model %s: %s (%s)", model_id, config.name, config.provider)
            raise ValueError(f"Invalid model config for provider {config.provider}")

        self._model_configs[model_id] = config
        logger.info("Registered model %s: %s (%s)", model_id, config.name, config.provider)

    def is_registered(self, model_id: str) -> bool:
        return model_id in self._model_configs

    async def generate_response(
        self, model_id: str, messages: MessageList, **overrides: object
    ) -> str:
        """Generate a reply from a registered model.

        Raises ValueError for unknown model ids; provider errors propagate unchanged.
        """
        config = self._model_configs.get(model_id)
        if config is None:
            raise ValueError(f"Model {model_id} not registered")

        started = time.perf_counter()
        response = await self._provider_for(config).generate_response(
            config, messages, **overrides
        )
        logger.debug(
            "%s (%s) produced %s chars in %.0f ms",
            model_id,
            config.provider,
            len(response),
            (time.perf_counter() - started) * 1000,
        )
        return response
