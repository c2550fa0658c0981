"""Embedding generation with caching, batching and timeouts.

Wraps an LLMService's embedding primitive. Vectors are cached in-process by
task type and text prefix; batches fan out concurrently inside bounded
sub-batches and fail as a whole when any item fails.
"""

import asyncio
import logging
import math
from collections import OrderedDict

from mdindex.constants import (
    DEFAULT_EMBEDDING_DIMENSIONS,
    DEFAULT_EMBEDDING_TIMEOUT,
    EMBEDDING_BATCH_SIZE,
    EMBEDDING_CACHE_KEY_LENGTH,
    EMBEDDING_CACHE_MAX_SIZE,
)
from mdindex.exceptions import (
    DimensionMismatch,
    EmbeddingError,
    EmbeddingProviderError,
    EmbeddingTimeout,
    PartialBatchFailure,
)
from mdindex.llm.base import LLMService, TaskType

logger = logging.getLogger(__name__)


class EmbeddingCache:
    """Bounded in-memory vector cache.

    Eviction removes the oldest inserted entry; reads do not refresh an entry.
    """

    def __init__(
        self,
        max_size: int = EMBEDDING_CACHE_MAX_SIZE,
        key_length: int = EMBEDDING_CACHE_KEY_LENGTH,
    ) -> None:
        self.max_size = max_size
        self.key_length = key_length
        self._entries: OrderedDict[str, list[float]] = OrderedDict()

    def key(self, text: str, task_type: str) -> str:
        return f"{task_type}:{text[: self.key_length]}"

    def get(self, text: str, task_type: str) -> list[float] | None:
        return self._entries.get(self.key(text, task_type))

    def put(self, text: str, task_type: str, vector: list[float]) -> None:
        if self.max_size <= 0:
            return
        key = self.key(text, task_type)
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._entries.popitem(last=False)
        self._entries[key] = vector

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class EmbeddingProvider:
    """Generates embedding vectors through an LLM service.

    Args:
        service: Provider implementing ``generate_embeddings``
        model: Embedding model name (None lets the service pick its default)
        enabled: When False every call returns a zero vector of ``dimensions``
        dimensions: Expected vector length
        timeout: Seconds allowed for a single provider call
        cache_size: Maximum number of cached vectors
        batch_size: Maximum number of concurrent calls per sub-batch
    """

    def __init__(
        self,
        service: LLMService,
        model: str | None = None,
        *,
        enabled: bool = True,
        dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
        timeout: float = DEFAULT_EMBEDDING_TIMEOUT,
        cache_size: int = EMBEDDING_CACHE_MAX_SIZE,
        batch_size: int = EMBEDDING_BATCH_SIZE,
    ) -> None:
        self.service = service
        self.model = model
        self.enabled = enabled
        self.dimensions = dimensions
        self.timeout = timeout
        self.batch_size = batch_size
        self.cache = EmbeddingCache(max_size=cache_size)

    def _embed_sync(self, text: str, task_type: TaskType) -> list[float]:
        vectors = self.service.generate_embeddings([text], self.model, task_type)
        return list(vectors[0])

    async def generate_embedding(
        self, text: str, task_type: TaskType = "RETRIEVAL_DOCUMENT"
    ) -> list[float]:
        """Generate (or fetch from cache) the embedding of one text.

        Args:
            text: Text to embed
            task_type: How the vector will be used

        Returns:
            list[float]: Vector of length ``dimensions``

        Raises:
            EmbeddingTimeout: If the provider does not answer within ``timeout``
            EmbeddingProviderError: If the provider fails or returns a wrong-sized vector
        """
        cached = self.cache.get(text, task_type)
        if cached is not None:
            return cached

        if not self.enabled:
            logger.warning("⚠️ Embedding disabled in config, returning zero vector")
            return [0.0] * self.dimensions

        try:
            vector = await asyncio.wait_for(
                asyncio.to_thread(self._embed_sync, text, task_type),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"❌ Embedding timeout after {self.timeout}s")
            raise EmbeddingTimeout(self.timeout) from e
        except Exception as e:
            logger.error(f"❌ Error generating embedding: {e}")
            raise EmbeddingProviderError(
                f"Failed to generate embedding: {e}", {"task_type": task_type}
            ) from e

        if len(vector) != self.dimensions:
            raise EmbeddingProviderError(
                "Embedding has unexpected dimension",
                {"expected": self.dimensions, "actual": len(vector)},
            )

        self.cache.put(text, task_type, vector)
        return vector

    async def _embed_item(self, index: int, text: str, task_type: TaskType) -> list[float]:
        try:
            return await self.generate_embedding(text, task_type)
        except EmbeddingError as e:
            raise PartialBatchFailure(index, e) from e

    async def generate_embedding_batch(
        self, texts: list[str], task_type: TaskType = "RETRIEVAL_DOCUMENT"
    ) -> list[list[float]]:
        """Embed many texts, ``batch_size`` at a time.

        Sub-batches run one after another; the texts inside a sub-batch are
        embedded concurrently. The first failing text aborts the whole call.

        Args:
            texts: Texts to embed
            task_type: How the vectors will be used

        Returns:
            list[list[float]]: One vector per text, in input order

        Raises:
            PartialBatchFailure: If any text fails to embed
        """
        results: list[list[float]] = []

        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            tasks = [
                asyncio.ensure_future(self._embed_item(start + offset, text, task_type))
                for offset, text in enumerate(batch)
            ]
            try:
                results.extend(await asyncio.gather(*tasks))
            except PartialBatchFailure:
                for task in tasks:
                    task.cancel()
                raise

            logger.info(f"📊 Embedded {min(start + self.batch_size, len(texts))}/{len(texts)} texts")

        return results

    def clear_cache(self) -> None:
        """Drop every cached vector."""
        self.cache.clear()
        logger.info("✓ Embedding cache cleared")

    def cache_stats(self) -> dict[str, int]:
        """Return the current and maximum cache size."""
        return {"size": len(self.cache), "max_size": self.cache.max_size}


def cosine_similarity(vec_a: list[float], vec_b: list[float]) -> float:
    """Compute cosine similarity between two vectors.

    Args:
        vec_a: First embedding vector
        vec_b: Second embedding vector

    Returns:
        float: Similarity between -1 and 1 (0.0 if either vector has zero magnitude)

    Raises:
        DimensionMismatch: If the vectors have different lengths
    """
    if len(vec_a) != len(vec_b):
        raise DimensionMismatch(len(vec_a), len(vec_b))

    dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
    magnitude_a = math.sqrt(sum(a * a for a in vec_a))
    magnitude_b = math.sqrt(sum(b * b for b in vec_b))

    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return dot_product / (magnitude_a * magnitude_b)
