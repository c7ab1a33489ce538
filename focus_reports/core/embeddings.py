"""OpenAI embeddings adapter with dimension validation."""

import asyncio
import logging
from typing import Protocol, Sequence

from openai import OpenAI

from focus_reports.core.config import get_settings
from focus_reports.core.errors import EmbeddingError
from focus_reports.core.logging import get_logger, log_with_context

logger = get_logger(__name__)


class EmbeddingVector:
    """Fixed-length embedding. The length is checked on construction."""

    __slots__ = ("values",)

    def __init__(self, values: Sequence[float], dimension: int):
        if len(values) != dimension:
            raise EmbeddingError(
                f"Embedding dimension mismatch: expected {dimension}, got {len(values)}",
                details={"expected": dimension, "actual": len(values)},
            )
        self.values = [float(v) for v in values]

    def __len__(self) -> int:
        return len(self.values)

    def to_list(self) -> list[float]:
        return list(self.values)


class EmbeddingProvider(Protocol):
    async def embed(self, text: str) -> EmbeddingVector: ...


def _get_client(api_key: str) -> OpenAI:
    """Get OpenAI client instance."""
    return OpenAI(api_key=api_key)


class OpenAIEmbeddingProvider:
    """Embeds text with the OpenAI embeddings API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        dimension: int | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = model or settings.EMBEDDING_MODEL
        self.dimension = dimension or settings.EMBEDDING_DIM

    def embed_sync(self, text: str) -> EmbeddingVector:
        """
        Generate an embedding for a single text.

        Raises:
            EmbeddingError: If the text is empty, the API call fails, or the
                returned vector has the wrong dimension
        """
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        try:
            response = _get_client(self.api_key).embeddings.create(
                model=self.model,
                input=text,
            )
            values = response.data[0].embedding
        except Exception as e:
            logger.error(f"Failed to generate embedding: {e}")
            raise EmbeddingError(f"Embedding provider failed: {e}") from e

        vector = EmbeddingVector(values, self.dimension)
        log_with_context(
            logger, logging.DEBUG, "Generated embedding", model=self.model, chars=len(text)
        )
        return vector

    async def embed(self, text: str) -> EmbeddingVector:
        """Async wrapper around embed_sync using thread pool."""
        return await asyncio.to_thread(self.embed_sync, text)
