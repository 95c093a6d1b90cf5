"""Abstract base for all generative-text providers."""

from abc import ABC, abstractmethod

from debatesim.models import ProviderRequest, ProviderResponse


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class ProviderUnavailable(ProviderError):
    """No credential is configured for the selected provider."""


class ProviderTimeout(ProviderError):
    """The provider did not answer within the configured timeout."""


class ProviderRequestFailed(ProviderError):
    """Transport failure or non-2xx response from the provider."""


def first_text(blocks) -> str:
    """Return the text of the first text-typed content block, or ""."""
    for block in blocks or ():
        if getattr(block, "type", None) == "text":
            return getattr(block, "text", "") or ""
    return ""


class AIProvider(ABC):
    """Abstract base for all generative-text providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the provider id (e.g. 'anthropic', 'openai')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(self, request: ProviderRequest) -> ProviderResponse:
        """Generate a reply for the given system prompt and history.

        Args:
            request: System prompt plus role/content history, oldest first.
                The last entry is the newest prompt to answer.

        Returns:
            ProviderResponse whose content is "" when no text came back.

        Raises:
            ProviderTimeout: When the call exceeds the configured timeout.
            ProviderRequestFailed: On transport or API failure.
        """
        ...
