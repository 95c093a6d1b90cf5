"""Unit tests for the provider variants, with the SDK clients mocked out."""

import asyncio
import dataclasses
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from debatesim.models import HistoryEntry, ProviderRequest, Role
from debatesim.providers.anthropic import AnthropicProvider
from debatesim.providers.base import ProviderRequestFailed, ProviderTimeout, ProviderUnavailable, first_text
from debatesim.providers.gemini import GeminiProvider, first_part_text
from debatesim.providers.openai_provider import OpenAIProvider

_REQUEST = ProviderRequest(
    system_prompt="You are arguing against the topic.",
    history=(
        HistoryEntry(Role.ASSISTANT, "Opening"),
        HistoryEntry(Role.USER, "I disagree because..."),
    ),
)


@pytest.fixture(autouse=True)
def _api_key(monkeypatch):
    monkeypatch.setenv("TEST_API_KEY", "sk-test")


def _config(sample_model_config, sdk: str, **overrides):
    return dataclasses.replace(sample_model_config, name=sdk, sdk=sdk, **overrides)


def _anthropic_message(blocks, model="test-model-1"):
    return SimpleNamespace(
        id="msg_1",
        model=model,
        content=blocks,
        usage=SimpleNamespace(input_tokens=10, output_tokens=20),
    )


def _openai_completion(content):
    return SimpleNamespace(
        id="chatcmpl_1",
        model="gpt-test",
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=20, total_tokens=30),
    )


# --- first_text ---


def test_first_text_picks_first_text_block():
    blocks = [
        SimpleNamespace(type="tool_use", id="t1"),
        SimpleNamespace(type="text", text="first"),
        SimpleNamespace(type="text", text="second"),
    ]
    assert first_text(blocks) == "first"


@pytest.mark.parametrize("blocks", [[], None, [SimpleNamespace(type="image")]])
def test_first_text_empty(blocks):
    assert first_text(blocks) == ""


# --- Anthropic ---


def test_anthropic_payload_sends_system_separately(sample_model_config):
    provider = AnthropicProvider(_config(sample_model_config, "anthropic"))
    payload = provider.build_payload(_REQUEST)

    assert payload["system"] == _REQUEST.system_prompt
    assert payload["max_tokens"] == 1000
    assert payload["model"] == "test-model-1"
    assert payload["messages"] == [
        {"role": "assistant", "content": "Opening"},
        {"role": "user", "content": "I disagree because..."},
    ]


async def test_anthropic_generate_returns_first_text(sample_model_config):
    provider = AnthropicProvider(_config(sample_model_config, "anthropic"))
    provider._client = MagicMock()
    provider._client.messages.create = AsyncMock(
        return_value=_anthropic_message([SimpleNamespace(type="text", text="Rebuttal text")])
    )

    response = await provider.generate(_REQUEST)

    assert response.content == "Rebuttal text"
    assert response.provider_id == "anthropic"
    assert response.usage.total_tokens == 30
    assert response.response_id == "msg_1"


async def test_anthropic_generate_without_text_block(sample_model_config):
    provider = AnthropicProvider(_config(sample_model_config, "anthropic"))
    provider._client = MagicMock()
    provider._client.messages.create = AsyncMock(return_value=_anthropic_message([]))

    response = await provider.generate(_REQUEST)
    assert response.content == ""


async def test_anthropic_timeout_maps_to_provider_timeout(sample_model_config):
    provider = AnthropicProvider(_config(sample_model_config, "anthropic", timeout_sec=0.05))

    async def hang(**kwargs):
        await asyncio.sleep(9999)

    provider._client = MagicMock()
    provider._client.messages.create = AsyncMock(side_effect=hang)

    with pytest.raises(ProviderTimeout):
        await provider.generate(_REQUEST)


async def test_anthropic_api_error_maps_to_request_failed(sample_model_config):
    provider = AnthropicProvider(_config(sample_model_config, "anthropic"))
    provider._client = MagicMock()
    provider._client.messages.create = AsyncMock(side_effect=RuntimeError("529 overloaded"))

    with pytest.raises(ProviderRequestFailed, match="529"):
        await provider.generate(_REQUEST)


def test_anthropic_missing_key(sample_model_config, monkeypatch):
    monkeypatch.delenv("TEST_API_KEY")
    with pytest.raises(ProviderUnavailable):
        AnthropicProvider(_config(sample_model_config, "anthropic"))


# --- OpenAI ---


def test_openai_payload_puts_system_first(sample_model_config):
    provider = OpenAIProvider(_config(sample_model_config, "openai"))
    payload = provider.build_payload(_REQUEST)

    assert "system" not in payload
    assert payload["messages"][0] == {"role": "system", "content": _REQUEST.system_prompt}
    assert [m["role"] for m in payload["messages"][1:]] == ["assistant", "user"]
    assert payload["max_tokens"] == 1000


async def test_openai_generate_returns_content(sample_model_config):
    provider = OpenAIProvider(_config(sample_model_config, "openai"))
    provider._client = MagicMock()
    provider._client.chat.completions.create = AsyncMock(return_value=_openai_completion("Counterpoint"))

    response = await provider.generate(_REQUEST)

    assert response.content == "Counterpoint"
    assert response.model_id == "gpt-test"
    assert response.usage.total_tokens == 30


async def test_openai_generate_null_content(sample_model_config):
    provider = OpenAIProvider(_config(sample_model_config, "openai"))
    provider._client = MagicMock()
    provider._client.chat.completions.create = AsyncMock(return_value=_openai_completion(None))

    response = await provider.generate(_REQUEST)
    assert response.content == ""


async def test_openai_error_maps_to_request_failed(sample_model_config):
    provider = OpenAIProvider(_config(sample_model_config, "openai"))
    provider._client = MagicMock()
    provider._client.chat.completions.create = AsyncMock(side_effect=ConnectionError("reset"))

    with pytest.raises(ProviderRequestFailed):
        await provider.generate(_REQUEST)


# --- Gemini ---


def test_gemini_contents_map_assistant_to_model(sample_model_config):
    provider = GeminiProvider(_config(sample_model_config, "gemini"))
    contents = provider.build_contents(_REQUEST)

    assert [c.role for c in contents] == ["model", "user"]
    assert contents[1].parts[0].text == "I disagree because..."


def _gemini_response(*parts):
    return SimpleNamespace(
        candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))],
        usage_metadata=SimpleNamespace(prompt_token_count=4, candidates_token_count=6, total_token_count=10),
    )


async def test_gemini_generate_returns_text(sample_model_config):
    provider = GeminiProvider(_config(sample_model_config, "gemini"))
    provider._client = MagicMock()
    provider._client.aio.models.generate_content = AsyncMock(
        return_value=_gemini_response(SimpleNamespace(text="Gemini says no", thought=None))
    )

    response = await provider.generate(_REQUEST)

    assert response.content == "Gemini says no"
    assert response.usage.total_tokens == 10
    kwargs = provider._client.aio.models.generate_content.await_args.kwargs
    assert kwargs["config"].system_instruction == _REQUEST.system_prompt


def test_gemini_first_part_text_takes_only_the_first_text_part():
    response = _gemini_response(
        SimpleNamespace(text=None, thought=None),
        SimpleNamespace(text="Planning the answer", thought=True),
        SimpleNamespace(text="first", thought=None),
        SimpleNamespace(text="second", thought=None),
    )
    assert first_part_text(response) == "first"


@pytest.mark.parametrize(
    "response",
    [
        SimpleNamespace(candidates=None),
        SimpleNamespace(candidates=[]),
        SimpleNamespace(candidates=[SimpleNamespace(content=None)]),
        SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=None))]),
    ],
)
def test_gemini_first_part_text_empty(response):
    assert first_part_text(response) == ""
