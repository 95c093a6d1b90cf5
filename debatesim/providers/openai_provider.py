"""OpenAI provider using openai SDK with native async."""

import asyncio
import logging
import os
import time

import openai
from openai import AsyncOpenAI

from config.config_loader import ModelConfig
from debatesim.models import ProviderRequest, ProviderResponse, TokenUsage
from debatesim.providers.base import (
    AIProvider,
    ProviderRequestFailed,
    ProviderTimeout,
    ProviderUnavailable,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    """OpenAI (or OpenAI-compatible) provider. The system prompt is the first message."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderUnavailable(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url, max_retries=0)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def build_payload(self, request: ProviderRequest) -> dict:
        messages = [{"role": "system", "content": request.system_prompt}]
        messages += [{"role": e.role.value, "content": e.content} for e in request.history]
        return {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "messages": messages,
        }

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(**self.build_payload(request)),
                timeout=self._config.timeout_sec,
            )
        except (TimeoutError, openai.APITimeoutError) as exc:
            raise ProviderTimeout(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderRequestFailed(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        content = (choice.message.content if choice else None) or ""

        usage: TokenUsage | None = None
        if response.usage:
            usage = TokenUsage(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        logger.info(
            "OpenAI reply %s: %.2fs, %s tokens",
            response.id,
            latency,
            usage.total_tokens if usage else None,
        )

        return ProviderResponse(
            content=content,
            provider_id=self._config.name,
            model_id=response.model or self._config.model,
            usage=usage,
            latency_sec=latency,
            response_id=response.id,
        )
