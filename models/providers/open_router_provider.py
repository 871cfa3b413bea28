import asyncio
import logging
import os
import time
from typing import TYPE_CHECKING, Any, ClassVar

import httpx

from .base import BaseModelProvider

if TYPE_CHECKING:
    from config.settings import SystemConfig, ModelConfig

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class OpenRouterProvider(BaseModelProvider):
    """Hosted models through the OpenRouter chat completions API."""

    # Shared across instances; motion and judge calls go through the same key
    _last_request_time: ClassVar[float | None] = None
    _request_lock: ClassVar[asyncio.Lock | None] = None
    _min_request_interval: ClassVar[float] = 3.0

    def __init__(
        self,
        system_config: "SystemConfig",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(system_config)
        self.config = system_config.openrouter
        self._api_key = self.config.api_key or os.getenv("OPENROUTER_API_KEY")
        self._transport = transport
        if not self._api_key:
            logger.warning(
                "No OpenRouter API key found. Set OPENROUTER_API_KEY or configure it in system settings."
            )

    @property
    def provider_name(self) -> str:
        return "openrouter"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if self.config.site_url:
            headers["HTTP-Referer"] = self.config.site_url
        if self.config.app_name:
            headers["X-Title"] = self.config.app_name
        return headers

    async def _rate_limit_request(self) -> None:
        """Space requests at least `_min_request_interval` seconds apart."""
        if OpenRouterProvider._request_lock is None:
            OpenRouterProvider._request_lock = asyncio.Lock()

        async with OpenRouterProvider._request_lock:
            if self._last_request_time is not None:
                wait = self._min_request_interval - (time.monotonic() - self._last_request_time)
                if wait > 0:
                    logger.debug(f"Rate limiting: waiting {wait:.2f}s before next OpenRouter request")
                    await asyncio.sleep(wait)
            OpenRouterProvider._last_request_time = time.monotonic()

    async def generate_response(
        self, model_config: "ModelConfig", messages: list[dict[str, str]], **overrides: Any
    ) -> str:
        if not self._api_key:
            raise RuntimeError("OpenRouter API key is not configured")

        payload = self.chat_params(model_config, messages, overrides)
        payload["reasoning"] = {"exclude": True}
        url = f"{self.config.base_url.rstrip('/')}/chat/completions"

        attempts = max(1, self.config.max_retries)
        for attempt in range(1, attempts + 1):
            await self._rate_limit_request()
            try:
                async with httpx.AsyncClient(
                    transport=self._transport, timeout=self.config.timeout
                ) as client:
                    response = await client.post(url, json=payload, headers=self._headers())
            except httpx.TransportError as e:
                if attempt == attempts:
                    logger.error(f"OpenRouter request failed for {model_config.name}: {e}")
                    raise
                logger.warning(f"OpenRouter request error (attempt {attempt}/{attempts}): {e}")
                continue

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < attempts:
                logger.warning(
                    f"OpenRouter returned {response.status_code} for {model_config.name} "
                    f"(attempt {attempt}/{attempts}), retrying"
                )
                continue

            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"] or ""
            if not content.strip():
                logger.warning(f"OpenRouter model {model_config.name} returned empty content")
            return content.strip()

        raise RuntimeError("unreachable")
