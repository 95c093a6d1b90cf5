"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import os
import time

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from debatesim.models import ProviderRequest, ProviderResponse, TokenUsage
from debatesim.providers.base import (
    AIProvider,
    ProviderRequestFailed,
    ProviderTimeout,
    ProviderUnavailable,
    first_text,
)

logger = logging.getLogger(__name__)


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider. The system prompt travels in its own field."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderUnavailable(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key, max_retries=0)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def build_payload(self, request: ProviderRequest) -> dict:
        return {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "system": request.system_prompt,
            "messages": [{"role": e.role.value, "content": e.content} for e in request.history],
        }

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(**self.build_payload(request)),
                timeout=self._config.timeout_sec,
            )
        except (TimeoutError, anthropic_sdk.APITimeoutError) as exc:
            raise ProviderTimeout(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderRequestFailed(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        usage: TokenUsage | None = None
        if response.usage:
            usage = TokenUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            )

        logger.info(
            "Anthropic reply %s: %.2fs, %s tokens",
            response.id,
            latency,
            usage.total_tokens if usage else None,
        )

        return ProviderResponse(
            content=first_text(response.content),
            provider_id=self._config.name,
            model_id=response.model or self._config.model,
            usage=usage,
            latency_sec=latency,
            response_id=response.id,
        )
