"""Tests for the tiered completion provider and its backends."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from focus_reports.core.config import Settings
from focus_reports.core.errors import GenerationError
from focus_reports.core.llm import (
    CompletionProvider,
    HuggingFaceBackend,
    ModelTier,
    OpenAIChatBackend,
    build_completion_provider,
)
from tests.fakes.fake_store import FakeCompletionBackend

LARGE = "gpt-4o"
SMALL = "gpt-4o-mini"


def _provider(backend) -> CompletionProvider:
    return CompletionProvider(backend, large_model=LARGE, small_model=SMALL)


@pytest.mark.asyncio
async def test_large_tier_success_uses_large_model():
    backend = FakeCompletionBackend(responses={LARGE: "deep analysis"})

    text = await _provider(backend).complete("prompt", ModelTier.LARGE, max_tokens=2000)

    assert text == "deep analysis"
    assert [c["model"] for c in backend.calls] == [LARGE]
    assert backend.calls[0]["max_tokens"] == 2000


@pytest.mark.asyncio
async def test_large_tier_failure_retries_once_on_small():
    backend = FakeCompletionBackend(responses={SMALL: "small model text"}, failing_models={LARGE})

    text = await _provider(backend).complete("prompt", ModelTier.LARGE, max_tokens=2000)

    assert text == "small model text"
    assert [c["model"] for c in backend.calls] == [LARGE, SMALL]
    assert backend.calls[1]["max_tokens"] == 2000


@pytest.mark.asyncio
async def test_empty_large_response_counts_as_failure():
    backend = FakeCompletionBackend(responses={LARGE: "   ", SMALL: "fallback"})

    text = await _provider(backend).complete("prompt", ModelTier.LARGE)

    assert text == "fallback"


@pytest.mark.asyncio
async def test_small_tier_failure_raises_without_retry():
    backend = FakeCompletionBackend(failing_models={SMALL})

    with pytest.raises(GenerationError, match="please try again later"):
        await _provider(backend).complete("prompt", ModelTier.SMALL)

    assert len(backend.calls) == 1


@pytest.mark.asyncio
async def test_failed_retry_raises_generation_error():
    backend = FakeCompletionBackend(failing_models={LARGE, SMALL})

    with pytest.raises(GenerationError) as exc_info:
        await _provider(backend).complete(
            "prompt", ModelTier.LARGE, failure_message="Memo content generation failed"
        )

    assert exc_info.value.message == "Memo content generation failed"
    assert len(backend.calls) == 2


@pytest.mark.asyncio
async def test_openai_backend_sends_system_and_user_messages():
    mock_llm = MagicMock()
    mock_llm.ainvoke = AsyncMock(return_value=MagicMock(content="report text"))

    with patch("focus_reports.core.llm.get_llm", return_value=mock_llm) as mock_get_llm:
        text = await OpenAIChatBackend().generate(
            "the prompt",
            model=SMALL,
            system_prompt="You are a goal-oriented AI assistant.",
            temperature=0.7,
            max_tokens=1000,
        )

    assert text == "report text"
    mock_get_llm.assert_called_once_with(model=SMALL, temperature=0.7, max_tokens=1000)
    messages = mock_llm.ainvoke.call_args[0][0]
    assert messages[0] == {"role": "system", "content": "You are a goal-oriented AI assistant."}
    assert messages[1] == {"role": "user", "content": "the prompt"}


@pytest.mark.asyncio
async def test_huggingface_backend_posts_inference_payload():
    mock_response = MagicMock()
    mock_response.json.return_value = [{"generated_text": "hf text"}]
    mock_response.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    mock_client.post.return_value = mock_response
    mock_client.__aenter__.return_value = mock_client
    mock_client.__aexit__.return_value = None

    with patch("focus_reports.core.llm.httpx.AsyncClient", return_value=mock_client):
        backend = HuggingFaceBackend("https://hf.example/models/", "hf-token")
        text = await backend.generate(
            "prompt",
            model="org/model",
            system_prompt="system",
            temperature=0.7,
            max_tokens=800,
        )

    assert text == "hf text"
    url = mock_client.post.call_args[0][0]
    payload = mock_client.post.call_args[1]["json"]
    headers = mock_client.post.call_args[1]["headers"]
    assert url == "https://hf.example/models/org/model"
    assert headers == {"Authorization": "Bearer hf-token"}
    assert payload["parameters"] == {
        "max_new_tokens": 800,
        "temperature": 0.7,
        "return_full_text": False,
    }


@pytest.mark.asyncio
async def test_huggingface_backend_requires_token():
    with pytest.raises(ValueError, match="HUGGINGFACE_API_TOKEN"):
        await HuggingFaceBackend("https://hf.example", None).generate(
            "prompt", model="m", system_prompt="s", temperature=0.7, max_tokens=10
        )


def test_build_provider_selects_backend_from_settings():
    openai_provider = build_completion_provider(Settings(COMPLETION_PROVIDER="openai"))
    hf_provider = build_completion_provider(
        Settings(COMPLETION_PROVIDER="huggingface", HUGGINGFACE_API_TOKEN="t")
    )

    assert isinstance(openai_provider.backend, OpenAIChatBackend)
    assert openai_provider.models[ModelTier.LARGE] == "gpt-4o"
    assert isinstance(hf_provider.backend, HuggingFaceBackend)
    assert hf_provider.models[ModelTier.SMALL] == "mistralai/Mistral-7B-Instruct-v0.2"
