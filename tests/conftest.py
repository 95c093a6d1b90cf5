"""Shared pytest fixtures."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, PromptsConfig, ServerConfig
from debatesim.gateway import ProviderGateway
from debatesim.models import Message, ProviderRequest, ProviderResponse, Sender, Session, Side, TokenUsage
from debatesim.prompts import PromptBuilder
from debatesim.providers.base import AIProvider


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="anthropic",
        sdk="anthropic",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1000,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        opening='You are arguing {side} the topic "{topic}". Stay under {limit} words.',
        rebuttal='You are arguing {side} the topic "{topic}". Rebut the latest point in under {limit} words.',
        opening_seed="Please provide your opening statement.",
        fallback_opening='I\'m here to debate the {side} side of: "{topic}".',
        fallback_rebuttal='I still stand {side} "{topic}". Please continue.',
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        provider="anthropic",
        word_limit=200,
        transcripts_dir=tmp_path / "transcripts",
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
    sample_model_config: ModelConfig,
) -> AppConfig:
    return AppConfig(
        defaults=sample_defaults_config,
        models={"anthropic": sample_model_config},
        prompts=sample_prompts_config,
        server=ServerConfig(),
        available_providers={"anthropic"},
    )


@pytest.fixture
def prompt_builder(sample_prompts_config: PromptsConfig) -> PromptBuilder:
    return PromptBuilder(sample_prompts_config, word_limit=200)


def make_response(content: str, provider: str = "mock") -> ProviderResponse:
    return ProviderResponse(
        content=content,
        provider_id=provider,
        model_id="mock-model",
        usage=TokenUsage(input_tokens=5, output_tokens=5, total_tokens=10),
        latency_sec=0.1,
    )


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=make_response(response_content, provider_name)
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(self, request: ProviderRequest) -> ProviderResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return make_response(self._response_content, self._name)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def gateway(sample_model_config: ModelConfig, mock_provider: MockProvider) -> ProviderGateway:
    return ProviderGateway(sample_model_config, provider=mock_provider)


@pytest.fixture
def finished_session() -> Session:
    start = datetime(2025, 3, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    messages = (
        Message.create(Sender.AI, "Regulation stifles innovation.", message_id="m1",
                       created_at=start + timedelta(seconds=5)),
        Message.create(Sender.HUMAN, "I disagree because safety matters.", message_id="m2",
                       created_at=start + timedelta(seconds=40)),
        Message.create(Sender.AI, "Safety can come from industry standards.", message_id="m3",
                       created_at=start + timedelta(seconds=55)),
    )
    return Session(
        id="session-1",
        topic="Should AI be regulated?",
        human_side=Side.FOR,
        turn=Sender.HUMAN,
        started_at=start,
        messages=messages,
        ended_at=start + timedelta(minutes=3, seconds=12),
    )
