"""Chat-completion providers, looked up by the `provider` field of a model config."""

from typing import TYPE_CHECKING

from .base import BaseModelProvider
from .ollama_provider import OllamaProvider
from .open_router_provider import OpenRouterProvider

if TYPE_CHECKING:
    from config.settings import SystemConfig

PROVIDERS: dict[str, type[BaseModelProvider]] = {
    "ollama": OllamaProvider,
    "openrouter": OpenRouterProvider,
}


def create_provider(provider_name: str, system_config: "SystemConfig") -> BaseModelProvider:
    if provider_name not in PROVIDERS:
        raise ValueError(f"Unknown provider: {provider_name}. Available: {list(PROVIDERS)}")
    return PROVIDERS[provider_name](system_config)


__all__ = [
    "BaseModelProvider",
    "OllamaProvider",
    "OpenRouterProvider",
    "PROVIDERS",
    "create_provider",
]
