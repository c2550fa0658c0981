"""Pytest configuration and shared fixtures for the test suite."""

import math

import pytest
import requests

from mdindex.exceptions import VectorStoreError
from mdindex.service.database.models import Point, PointFilter, ScoredPoint, StoredPoint
from mdindex.service.embedding import EmbeddingProvider, cosine_similarity

TEST_DIMENSIONS = 16


# Service availability checks
def ollama_available() -> bool:
    """Check if Ollama server is running and accessible.

    Returns:
        True if Ollama is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:11434/api/tags", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


def ravendb_available() -> bool:
    """Check if RavenDB server is running and accessible.

    Returns:
        True if RavenDB is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:8080/databases", timeout=2)
        return response.status_code in (200, 401)  # Auth required is OK
    except requests.RequestException:
        return False


def text_vector(text: str, dimensions: int = TEST_DIMENSIONS) -> list[float]:
    """Deterministic bag-of-characters vector: similar texts get similar vectors."""
    vector = [0.0] * dimensions
    for ch in text.lower():
        if ch.isalnum():
            vector[ord(ch) % dimensions] += 1.0
    if not any(vector):
        vector[0] = 1.0
    return vector


def unit_vector(index: int, dimensions: int = TEST_DIMENSIONS) -> list[float]:
    vector = [0.0] * dimensions
    vector[index] = 1.0
    return vector


def vector_with_score(score: float, dimensions: int = TEST_DIMENSIONS) -> list[float]:
    """A vector whose cosine similarity with ``unit_vector(0)`` equals ``score``."""
    vector = [0.0] * dimensions
    vector[0] = score
    vector[1] = math.sqrt(max(0.0, 1.0 - score * score))
    return vector


class FakeLLMService:
    """LLMService double: canned summaries and deterministic embeddings.

    Texts listed in ``vectors`` get that vector; everything else gets
    ``text_vector(text)``.
    """

    def __init__(self, dimensions: int = TEST_DIMENSIONS) -> None:
        self.dimensions = dimensions
        self.vectors: dict[str, list[float]] = {}
        self.failing_texts: set[str] = set()
        self.prompts: list[str] = []
        self.embedding_calls: list[tuple[str, str | None]] = []

    async def generate_response(self, messages: list[dict]) -> str:
        prompt = "\n".join(message["content"] for message in messages)
        self.prompts.append(prompt)
        return f"summary {len(self.prompts)}"

    def generate_embeddings(self, texts, model=None, task_type=None):
        vectors = []
        for text in texts:
            self.embedding_calls.append((text, task_type))
            if text in self.failing_texts:
                raise RuntimeError(f"provider rejected {text!r}")
            vectors.append(self.vectors.get(text) or text_vector(text, self.dimensions))
        return vectors


class InMemoryVectorStore:
    """Gateway double with the same surface as VectorStoreGateway."""

    def __init__(self, dimensions: int = TEST_DIMENSIONS) -> None:
        self.dimensions = dimensions
        self.collections: dict[str, dict[str, Point]] = {}
        self.failing_collections: set[str] = set()
        self.healthy = True
        self.closed = False

    def _check(self, collection: str, operation: str) -> None:
        if collection in self.failing_collections:
            raise VectorStoreError(f"{collection} unavailable", operation=operation)

    def points(self, collection: str) -> list[Point]:
        return list(self.collections.get(collection, {}).values())

    def ensure_collection(self, collection: str) -> None:
        self.collections.setdefault(collection, {})

    def upsert(self, collection: str, points) -> int:
        self._check(collection, "upsert")
        target = self.collections.setdefault(collection, {})
        for point in points:
            if len(point.vector) != self.dimensions:
                raise VectorStoreError("Vector dimension does not match collection", operation="upsert")
            target[point.id] = point
        return len(points)

    def delete_by_filter(self, collection: str, point_filter: PointFilter) -> int:
        if point_filter.is_empty():
            raise VectorStoreError("Refusing to delete without a filter", operation="delete")
        self._check(collection, "delete")
        target = self.collections.get(collection, {})
        doomed = [pid for pid, point in target.items() if point_filter.matches(point.payload)]
        for pid in doomed:
            del target[pid]
        return len(doomed)

    def delete_by_document(self, collection: str, document_id: str) -> int:
        return self.delete_by_filter(collection, PointFilter(must={"document_id": document_id}))

    def search(self, collection, vector, point_filter=None, limit=10, score_threshold=0.0):
        self._check(collection, "search")
        hits = [
            ScoredPoint(id=point.id, score=cosine_similarity(vector, point.vector), payload=point.payload)
            for point in self.points(collection)
            if point_filter is None or point_filter.matches(point.payload)
        ]
        hits = [hit for hit in hits if hit.score >= score_threshold]
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:limit]

    def scroll(self, collection, point_filter=None, limit=1000):
        self._check(collection, "scroll")
        return [
            StoredPoint(id=point.id, payload=point.payload)
            for point in self.points(collection)
            if point_filter is None or point_filter.matches(point.payload)
        ][:limit]

    def list_collections(self) -> list[str]:
        return sorted(self.collections)

    def health_check(self) -> bool:
        return self.healthy

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_llm() -> FakeLLMService:
    return FakeLLMService()


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def embeddings(fake_llm) -> EmbeddingProvider:
    """Embedding provider over the fake LLM with test-sized vectors."""
    return EmbeddingProvider(fake_llm, "fake-embed", dimensions=TEST_DIMENSIONS, timeout=5)


@pytest.fixture
def sample_markdown() -> str:
    return (
        "Opening remarks before any heading.\n"
        "\n"
        "# Getting Started\n"
        "Install the package and configure the environment.\n"
        "\n"
        "## Installation\n"
        "- run pip install\n"
        "- set the environment variables\n"
        "\n"
        "## Configuration\n"
        "```\n"
        "RAVENDB_URL=http://localhost:8080\n"
        "```\n"
        "\n"
        "# Reference\n"
        "| name | default |\n"
        "| --- | --- |\n"
        "| limit | 10 |\n"
        "\n"
        "### Deep Detail\n"
        "> Skipped heading levels stay nested.\n"
    )


# Service fixtures with skip markers
@pytest.fixture
def ollama_service():
    """Provide OllamaService instance, skip if Ollama not available."""
    if not ollama_available():
        pytest.skip("Ollama server not running on localhost:11434")

    from mdindex.llm import OllamaService

    return OllamaService(host="http://localhost:11434", model="llama3")


@pytest.fixture
def ravendb_store():
    """Provide RavenDB DocumentStore, skip if RavenDB not available."""
    if not ravendb_available():
        pytest.skip("RavenDB server not running on localhost:8080")

    from mdindex.service.database import create_document_store

    store = create_document_store()
    yield store
    store.close()
