"""Embedding provider (LiteLLM) and cosine similarity.

Embeddings are optional. Without a credential nothing in this module is
constructed and retrieval runs in lexical mode; callers never construct a
provider speculatively.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Sequence
from typing import Any

import litellm
from loguru import logger

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True

DEFAULT_EMBEDDING_MODEL = "openai/text-embedding-3-small"


class EmbeddingCredentialError(ValueError):
    """Raised when an EmbeddingProvider is constructed without a credential."""


def _vector(item: Any) -> list[float]:
    if isinstance(item, dict):
        return list(item["embedding"])
    return list(item.embedding)


class EmbeddingProvider:
    """Batched text embedding through ``litellm.aembedding``.

    Args:
        api_key: Credential for the embedding service. Required.
        model: LiteLLM model string in 'provider/model' format.
        batch_size: Texts per request.
        batch_delay: Seconds slept between consecutive batches.
        num_retries: LiteLLM retry count for transient errors.

    Raises:
        EmbeddingCredentialError: If *api_key* is empty or missing.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_EMBEDDING_MODEL,
        batch_size: int = 100,
        batch_delay: float = 1.0,
        num_retries: int = 3,
    ) -> None:
        key = (api_key or "").strip()
        if not key:
            raise EmbeddingCredentialError(
                "An API key is required to create embeddings. "
                "Without one, retrieval uses lexical scoring."
            )
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1 (got {batch_size})")
        self._api_key = key
        self.model = model
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.num_retries = num_retries

    async def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed *texts* in order, one request per batch.

        Raises:
            litellm.exceptions.APIError: On persistent API failure after retries.
            ValueError: If the service returns a different number of vectors.
        """
        vectors: list[list[float]] = []
        total = len(texts)
        for start in range(0, total, self.batch_size):
            if start and self.batch_delay:
                await asyncio.sleep(self.batch_delay)
            batch = list(texts[start : start + self.batch_size])
            response = await litellm.aembedding(
                model=self.model,
                input=batch,
                api_key=self._api_key,
                num_retries=self.num_retries,
            )
            batch_vectors = [_vector(item) for item in response.data]
            if len(batch_vectors) != len(batch):
                raise ValueError(
                    f"Embedding service returned {len(batch_vectors)} vectors "
                    f"for {len(batch)} inputs"
                )
            vectors.extend(batch_vectors)
            logger.info(
                f"[embeddings] Embedded {min(start + self.batch_size, total)}/{total} chunks"
            )
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        response = await litellm.aembedding(
            model=self.model,
            input=[text],
            api_key=self._api_key,
            num_retries=self.num_retries,
        )
        return _vector(response.data[0])


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1].

    Empty vectors, mismatched dimensions and zero-norm vectors score 0.0.
    """
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))
