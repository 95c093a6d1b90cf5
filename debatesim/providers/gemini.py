"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from debatesim.models import ProviderRequest, ProviderResponse, Role, TokenUsage
from debatesim.providers.base import (
    AIProvider,
    ProviderRequestFailed,
    ProviderTimeout,
    ProviderUnavailable,
)

logger = logging.getLogger(__name__)

# Gemini calls the assistant side of a conversation "model".
_ROLE_MAP = {Role.USER: "user", Role.ASSISTANT: "model"}


def first_part_text(response) -> str:
    """Text of the first text part of the first candidate, or "". Thought parts are skipped."""
    candidates = getattr(response, "candidates", None) or ()
    content = getattr(candidates[0], "content", None) if candidates else None
    for part in getattr(content, "parts", None) or ():
        if getattr(part, "text", None) and not getattr(part, "thought", False):
            return part.text
    return ""


class GeminiProvider(AIProvider):
    """Google Gemini provider. The system prompt goes in system_instruction."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderUnavailable(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def build_contents(self, request: ProviderRequest) -> list[genai_types.Content]:
        return [
            genai_types.Content(role=_ROLE_MAP[e.role], parts=[genai_types.Part(text=e.content)])
            for e in request.history
        ]

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=self.build_contents(request),
                    config=genai_types.GenerateContentConfig(
                        system_instruction=request.system_prompt,
                        max_output_tokens=self._config.max_tokens,
                    ),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderTimeout(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise ProviderRequestFailed(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        usage: TokenUsage | None = None
        if response.usage_metadata:
            usage = TokenUsage(
                input_tokens=response.usage_metadata.prompt_token_count,
                output_tokens=response.usage_metadata.candidates_token_count,
                total_tokens=response.usage_metadata.total_token_count,
            )

        logger.info(
            "Gemini reply: %.2fs, %s tokens",
            latency,
            usage.total_tokens if usage else None,
        )

        return ProviderResponse(
            content=first_part_text(response),
            provider_id=self._config.name,
            model_id=self._config.model,
            usage=usage,
            latency_sec=latency,
        )
