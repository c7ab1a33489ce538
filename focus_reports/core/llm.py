"""Completion provider adapter: model tiers, backends and the small-tier fallback."""

import logging
from enum import Enum
from typing import Any, Protocol

import httpx
from langchain_openai import ChatOpenAI

from focus_reports.core.config import Settings, get_settings
from focus_reports.core.errors import GenerationError
from focus_reports.core.logging import get_logger, log_with_context

logger = get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a goal-oriented AI assistant."


class ModelTier(str, Enum):
    LARGE = "large"
    SMALL = "small"


def get_llm(
    model: str | None = None,
    temperature: float = 0.7,
    max_tokens: int | None = None,
) -> ChatOpenAI:
    """
    Get configured LLM instance for LangChain chains.

    Args:
        model: Model name override (defaults to the small-tier model)
        temperature: Temperature for generation
        max_tokens: Completion token cap

    Returns:
        ChatOpenAI instance configured with API key and model
    """
    settings = get_settings()

    return ChatOpenAI(
        api_key=settings.OPENAI_API_KEY,
        model=model or settings.SMALL_MODEL,
        temperature=temperature,
        max_tokens=max_tokens,
    )


class CompletionBackend(Protocol):
    async def generate(
        self,
        prompt: str,
        *,
        model: str,
        system_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str: ...


class OpenAIChatBackend:
    """Chat completions through langchain-openai."""

    async def generate(
        self,
        prompt: str,
        *,
        model: str,
        system_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        llm = get_llm(model=model, temperature=temperature, max_tokens=max_tokens)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        response = await llm.ainvoke(messages)
        content = response.content
        return content if isinstance(content, str) else ""


class HuggingFaceBackend:
    """Text generation through the HuggingFace Inference API."""

    def __init__(self, api_url: str, api_token: str | None, timeout: float = 60.0):
        self.api_url = api_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout

    async def generate(
        self,
        prompt: str,
        *,
        model: str,
        system_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        if not self.api_token:
            raise ValueError("HUGGINGFACE_API_TOKEN not configured")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.api_url}/{model}",
                headers={"Authorization": f"Bearer {self.api_token}"},
                json={
                    "inputs": f"{system_prompt}\n\n{prompt}",
                    "parameters": {
                        "max_new_tokens": max_tokens,
                        "temperature": temperature,
                        "return_full_text": False,
                    },
                },
            )
            response.raise_for_status()
            return _extract_generated_text(response.json())


def _extract_generated_text(data: Any) -> str:
    if isinstance(data, list) and data:
        data = data[0]
    if isinstance(data, dict):
        return str(data.get("generated_text") or "")
    return ""


class CompletionProvider:
    """
    Tiered text completion with a single downgrade-and-retry.

    A failed large-tier call (error or empty text) is retried once on the
    small tier. A failed small-tier call, or a failed retry, raises
    GenerationError. There are no other retries.
    """

    def __init__(self, backend: CompletionBackend, large_model: str, small_model: str):
        self.backend = backend
        self.models = {ModelTier.LARGE: large_model, ModelTier.SMALL: small_model}

    async def _attempt(
        self,
        prompt: str,
        tier: ModelTier,
        system_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        model = self.models[tier]
        log_with_context(
            logger,
            logging.INFO,
            f"Requesting completion on {tier.value} tier",
            model=model,
            max_tokens=max_tokens,
        )
        text = await self.backend.generate(
            prompt,
            model=model,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if not text or not text.strip():
            raise GenerationError(f"Empty completion from {model}")
        return text

    async def complete(
        self,
        prompt: str,
        tier: ModelTier,
        *,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        failure_message: str | None = None,
    ) -> str:
        """
        Generate text for a prompt.

        Raises:
            GenerationError: If the requested tier fails and, for the large
                tier, the small-tier retry also fails
        """
        try:
            return await self._attempt(prompt, tier, system_prompt, temperature, max_tokens)
        except Exception as first_error:
            if tier is not ModelTier.LARGE:
                logger.error(f"Completion failed on {tier.value} tier: {first_error}")
                raise _generation_error(failure_message, first_error) from first_error

            logger.warning(
                f"Completion failed on large tier, retrying on small tier: {first_error}"
            )

        try:
            return await self._attempt(
                prompt, ModelTier.SMALL, system_prompt, temperature, max_tokens
            )
        except Exception as retry_error:
            logger.error(f"Completion retry on small tier failed: {retry_error}")
            raise _generation_error(failure_message, retry_error) from retry_error


def _generation_error(message: str | None, cause: Exception) -> GenerationError:
    details = {"cause": str(cause)}
    if message:
        return GenerationError(message, details=details)
    return GenerationError(details=details)


def build_completion_provider(settings: Settings | None = None) -> CompletionProvider:
    """Build the completion provider for the configured backend."""
    settings = settings or get_settings()

    if settings.COMPLETION_PROVIDER == "huggingface":
        backend: CompletionBackend = HuggingFaceBackend(
            api_url=settings.HUGGINGFACE_API_URL,
            api_token=settings.HUGGINGFACE_API_TOKEN,
        )
        return CompletionProvider(
            backend,
            large_model=settings.HUGGINGFACE_LARGE_MODEL,
            small_model=settings.HUGGINGFACE_SMALL_MODEL,
        )

    if settings.COMPLETION_PROVIDER != "openai":
        logger.warning(
            f"Unknown COMPLETION_PROVIDER {settings.COMPLETION_PROVIDER!r}, using openai"
        )
    return CompletionProvider(
        OpenAIChatBackend(),
        large_model=settings.LARGE_MODEL,
        small_model=settings.SMALL_MODEL,
    )
