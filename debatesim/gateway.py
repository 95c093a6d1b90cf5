"""One request/response contract over whichever provider was selected at startup."""

import logging
import time

from config.config_loader import AppConfig, ModelConfig, ProviderKind
from debatesim.errors import ValidationError
from debatesim.models import ProviderRequest, ProviderResponse
from debatesim.providers.anthropic import AnthropicProvider
from debatesim.providers.base import AIProvider, ProviderUnavailable
from debatesim.providers.gemini import GeminiProvider
from debatesim.providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[ProviderKind, type[AIProvider]] = {
    ProviderKind.ANTHROPIC: AnthropicProvider,
    ProviderKind.OPENAI: OpenAIProvider,
    ProviderKind.GEMINI: GeminiProvider,
}


def build_provider(config: ModelConfig) -> AIProvider:
    """Instantiate the provider variant for a model config.

    Raises:
        ProviderUnavailable: If the provider's API key is not set.
    """
    return PROVIDER_CLASSES[config.kind](config)


class ProviderGateway:
    """Holds the selected provider for the life of the process.

    A missing credential does not fail construction; every ``generate`` call
    then raises ProviderUnavailable so callers can absorb it per request.
    The gateway never retries.
    """

    def __init__(self, config: ModelConfig, provider: AIProvider | None = None) -> None:
        self._config = config
        self._unavailable: ProviderUnavailable | None = None
        if provider is None:
            try:
                provider = build_provider(config)
            except ProviderUnavailable as exc:
                logger.warning("Provider %s unavailable: %s", config.name, exc)
                self._unavailable = exc
        self._provider = provider
        logger.info(
            "Gateway ready: provider=%s model=%s max_tokens=%d timeout=%ss",
            config.name,
            config.model,
            config.max_tokens,
            config.timeout_sec,
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> "ProviderGateway":
        return cls(config.selected_model)

    @property
    def provider_id(self) -> str:
        return self._config.name

    @property
    def model_id(self) -> str:
        return self._config.model

    @property
    def max_output_tokens(self) -> int:
        return self._config.max_tokens

    @property
    def timeout_sec(self) -> float:
        return self._config.timeout_sec

    @property
    def available(self) -> bool:
        return self._provider is not None

    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        """Send one request to the selected provider.

        Raises:
            ValidationError: If the system prompt is empty.
            ProviderUnavailable: If no credential is configured.
            ProviderTimeout: If the call exceeds the bounded wait.
            ProviderRequestFailed: On transport or provider failure.
        """
        if not request.system_prompt.strip():
            raise ValidationError("System prompt is required")
        if self._provider is None:
            raise self._unavailable or ProviderUnavailable(self._config.name, "Provider not configured")

        logger.debug(
            "Generating with %s (%s), %d history entries",
            self.provider_id,
            self.model_id,
            len(request.history),
        )
        start = time.monotonic()
        try:
            return await self._provider.generate(request)
        finally:
            logger.debug("Provider call finished in %.2fs", time.monotonic() - start)
