"""Tests for research source indexing."""

import pytest

from mdindex.constants import RESEARCH_SOURCES_COLLECTION
from mdindex.service.research import ResearchIndexer, ResearchSource

ARTICLE = (
    "# Vector Search\n"
    "Approximate nearest neighbour indexes trade recall for speed.\n"
    "\n"
    "## HNSW\n"
    "Hierarchical navigable small world graphs.\n"
)


@pytest.fixture
def research(embeddings, vector_store) -> ResearchIndexer:
    return ResearchIndexer(embeddings, vector_store)


def web_source(**overrides) -> ResearchSource:
    fields = {
        "title": "ANN overview",
        "content": ARTICLE,
        "source_type": "web",
        "relevance": "background_research",
        "url": "https://example.org/ann",
    }
    fields.update(overrides)
    return ResearchSource(**fields)


class TestResearchIndexer:
    """Tests for ResearchIndexer."""

    @pytest.mark.asyncio
    async def test_index_research_source(self, research, vector_store):
        result = await research.index_research_source("doc1", web_source())

        assert result.success is True
        assert result.chunks_indexed == 2
        assert result.source_id
        payloads = [p.payload for p in vector_store.points(RESEARCH_SOURCES_COLLECTION)]
        assert {p["source_id"] for p in payloads} == {result.source_id}
        assert {p["url"] for p in payloads} == {"https://example.org/ann"}
        assert sorted(p["chunk_index"] for p in payloads) == [0, 1]
        assert all(p["total_chunks"] == 2 for p in payloads)

    @pytest.mark.asyncio
    async def test_each_index_call_gets_new_source_id(self, research):
        first = await research.index_research_source("doc1", web_source())
        second = await research.index_research_source("doc1", web_source())
        assert first.source_id != second.source_id

    @pytest.mark.asyncio
    async def test_failures_are_reported(self, research, fake_llm):
        fake_llm.failing_texts.add("Hierarchical navigable small world graphs.")

        result = await research.index_research_source("doc1", web_source())

        assert result.success is False
        assert result.chunks_indexed == 0
        assert result.source_id
        assert result.error

    @pytest.mark.asyncio
    async def test_empty_source(self, research):
        result = await research.index_research_source("doc1", web_source(content=""))
        assert result.success is True
        assert result.chunks_indexed == 0

    @pytest.mark.asyncio
    async def test_search_filters(self, research):
        await research.index_research_source("doc1", web_source())
        await research.index_research_source(
            "doc1", web_source(title="API doc", source_type="api", relevance="citation", url=None)
        )

        query = "Hierarchical navigable small world graphs."
        all_hits = await research.search_research_sources(query, document_id="doc1", score_threshold=0.0)
        api_hits = await research.search_research_sources(
            query, source_type="api", relevance="citation", score_threshold=0.0
        )

        assert len(all_hits) == 4
        assert {hit.title for hit in api_hits} == {"API doc"}
        assert all(hit.url is None for hit in api_hits)
        assert all_hits[0].score == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_delete_research_source(self, research, vector_store):
        kept = await research.index_research_source("doc1", web_source())
        dropped = await research.index_research_source("doc1", web_source())

        assert research.delete_research_source(dropped.source_id) == 2
        remaining = {p.payload["source_id"] for p in vector_store.points(RESEARCH_SOURCES_COLLECTION)}
        assert remaining == {kept.source_id}
