"""Tests for multi-source weighted retrieval."""

import pytest

from conftest import unit_vector, vector_with_score
from mdindex.constants import DOCUMENTS_COLLECTION, UPLOADED_FILES_COLLECTION
from mdindex.service.database.models import Point
from mdindex.service.documents import DocumentRecord, InMemoryDocumentRepository
from mdindex.service.retrieval import ContextRetriever

QUERY = "what did I write about vectors"


@pytest.fixture
def documents() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository(
        [
            DocumentRecord(id="current", content="", title="Current", owner_id="alice"),
            DocumentRecord(id="notes", content="", title="Notes", owner_id="alice"),
            DocumentRecord(id="foreign", content="", title="Bob's", owner_id="bob"),
        ]
    )


@pytest.fixture
def retriever(embeddings, fake_llm, vector_store, documents) -> ContextRetriever:
    fake_llm.vectors[QUERY] = unit_vector(0)
    return ContextRetriever(embeddings, vector_store, documents)


def add_chunk(store, point_id, score, **payload):
    collection = UPLOADED_FILES_COLLECTION if "user_id" in payload else DOCUMENTS_COLLECTION
    store.upsert(collection, [Point(point_id, vector_with_score(score), {"content": point_id, **payload})])


class TestSearchUserContext:
    """Tests for ContextRetriever.search_user_context."""

    @pytest.mark.asyncio
    async def test_current_document_outranks_higher_raw_scores(self, retriever, vector_store):
        add_chunk(vector_store, "cur", 0.7, document_id="current")
        add_chunk(vector_store, "other", 0.95, document_id="notes")
        add_chunk(vector_store, "upl", 0.9, user_id="alice", document_id="current")

        results = await retriever.search_user_context(QUERY, "alice", "current")

        assert [r.content for r in results] == ["cur", "other", "upl"]
        assert [r.source for r in results] == ["current_doc", "user_doc", "upload"]
        assert results[0].weighted_score == pytest.approx(0.7)
        assert results[1].weighted_score == pytest.approx(0.475)
        assert results[2].weighted_score == pytest.approx(0.36)
        assert results[1].score == pytest.approx(0.95)

    @pytest.mark.asyncio
    async def test_per_source_caps(self, retriever, vector_store):
        for i in range(8):
            add_chunk(vector_store, f"cur{i}", 0.9, document_id="current")
            add_chunk(vector_store, f"other{i}", 0.9, document_id="notes")
            add_chunk(vector_store, f"upl{i}", 0.9, user_id="alice")

        results = await retriever.search_user_context(QUERY, "alice", "current", limit=10)

        sources = [r.source for r in results]
        assert sources.count("current_doc") == 6
        assert sources.count("user_doc") == 3
        assert sources.count("upload") == 1
        assert len(results) == 10

    @pytest.mark.asyncio
    async def test_thresholds_relax_per_source(self, retriever, vector_store):
        add_chunk(vector_store, "cur-low", 0.5, document_id="current")
        add_chunk(vector_store, "other-ok", 0.5, document_id="notes")
        add_chunk(vector_store, "other-low", 0.45, document_id="notes")
        add_chunk(vector_store, "upl-ok", 0.45, user_id="alice")
        add_chunk(vector_store, "upl-low", 0.4, user_id="alice")

        results = await retriever.search_user_context(QUERY, "alice", "current")

        assert sorted(r.content for r in results) == ["other-ok", "upl-ok"]

    @pytest.mark.asyncio
    async def test_only_owned_documents_and_own_uploads(self, retriever, vector_store):
        add_chunk(vector_store, "bob-doc", 0.9, document_id="foreign")
        add_chunk(vector_store, "bob-upload", 0.9, user_id="bob")
        add_chunk(vector_store, "alice-notes", 0.9, document_id="notes")

        results = await retriever.search_user_context(QUERY, "alice", "foreign")

        assert [r.content for r in results] == ["alice-notes"]
        assert results[0].source == "user_doc"

    @pytest.mark.asyncio
    async def test_unowned_current_document_is_not_searched(self, retriever, vector_store):
        add_chunk(vector_store, "cur", 0.9, document_id="current")

        results = await retriever.search_user_context(QUERY, "bob", "current")

        assert results == []

    @pytest.mark.asyncio
    async def test_source_switches(self, retriever, vector_store):
        add_chunk(vector_store, "cur", 0.9, document_id="current")
        add_chunk(vector_store, "upl", 0.9, user_id="alice")

        docs_only = await retriever.search_user_context(QUERY, "alice", "current", include_uploads=False)
        uploads_only = await retriever.search_user_context(QUERY, "alice", "current", include_documents=False)

        assert [r.content for r in docs_only] == ["cur"]
        assert [r.content for r in uploads_only] == ["upl"]

    @pytest.mark.asyncio
    async def test_failing_source_is_skipped(self, retriever, vector_store):
        add_chunk(vector_store, "cur", 0.9, document_id="current")
        add_chunk(vector_store, "upl", 0.9, user_id="alice")
        vector_store.failing_collections.add(UPLOADED_FILES_COLLECTION)

        results = await retriever.search_user_context(QUERY, "alice", "current")

        assert [r.content for r in results] == ["cur"]


class TestBuildVectorContext:
    """Tests for ContextRetriever.build_vector_context."""

    @pytest.mark.asyncio
    async def test_context_with_attribution(self, retriever, vector_store):
        add_chunk(vector_store, "cur", 0.9, document_id="current", heading_text="Intro", chapter="Intro")
        add_chunk(vector_store, "upl", 0.9, user_id="alice", file_name="paper.pdf")

        context = await retriever.build_vector_context("alice", QUERY, "current")

        assert context.total_chunks == 2
        assert context.summary == "Relevant sections found: 1 from the current document, 1 from uploads"
        assert context.chunks[0].heading == "Intro"
        assert context.chunks[0].chapter == "Intro"
        assert context.chunks[1].heading == "paper.pdf"

    @pytest.mark.asyncio
    async def test_nothing_found_returns_none(self, retriever):
        assert await retriever.build_vector_context("alice", QUERY, "current") is None
