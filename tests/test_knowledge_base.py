"""Tests for service wiring, degraded mode and content-change events."""

from unittest.mock import MagicMock, patch

import pytest

from mdindex.exceptions import VectorStoreUnavailable
from mdindex.service.documents import DocumentRecord, InMemoryDocumentRepository
from mdindex.service.events import ContentChangeNotifier, DocumentContentChanged
from mdindex.service.knowledge_base import KnowledgeBase, create_knowledge_base
from mdindex.service.research import ResearchSource


@pytest.fixture
def knowledge_base(vector_store, embeddings, fake_llm) -> KnowledgeBase:
    documents = InMemoryDocumentRepository(
        [DocumentRecord(id="doc1", content="", title="Guide", owner_id="alice")]
    )
    return KnowledgeBase(vector_store, embeddings, fake_llm, documents)


class TestKnowledgeBase:
    """Tests for the KnowledgeBase facade."""

    @pytest.mark.asyncio
    async def test_index_search_and_context(self, knowledge_base, sample_markdown):
        result = await knowledge_base.index_document("doc1", "Guide", sample_markdown, 1)
        assert result.chunks_indexed == 6

        query = "- run pip install\n- set the environment variables"
        chunks = await knowledge_base.search_document_chunks(query, document_id="doc1")
        context = await knowledge_base.search_user_context(query, "alice", "doc1")

        assert chunks[0].metadata.section == "Installation"
        assert context[0].source == "current_doc"
        assert knowledge_base.get_document_structure("doc1").total_chunks == 6

    @pytest.mark.asyncio
    async def test_summaries_through_facade(self, knowledge_base, sample_markdown):
        await knowledge_base.index_document("doc1", "Guide", sample_markdown, 1)

        result = await knowledge_base.summarize_document("doc1", batch_size=4)

        assert result.total_summaries == 3
        assert knowledge_base.get_document_overview("doc1").levels == 2

    def test_delete_document(self, knowledge_base, vector_store):
        assert knowledge_base.delete_document("doc1") == 0


class TestDisabledKnowledgeBase:
    """Tests for the degraded mode."""

    @pytest.mark.asyncio
    async def test_operations_degrade(self):
        kb = KnowledgeBase.disabled()

        assert kb.enabled is False
        index_result = await kb.index_document("doc1", "T", "# A\ntext", 1)
        assert index_result.success is False
        assert index_result.error
        research = await kb.index_research_source(
            "doc1", ResearchSource("t", "c", "web", "citation")
        )
        assert research.success is False
        upload = await kb.index_uploaded_file("doc1", b"text", "a.txt")
        assert upload.success is False

        assert await kb.search_document_chunks("q") == []
        assert await kb.search_user_context("q", "alice") == []
        assert await kb.search_summaries("q", "doc1") == []
        assert await kb.search_research_sources("q") == []
        assert await kb.build_vector_context("alice", "q") is None
        assert (await kb.check_duplicate_content("doc1", "c")).is_duplicate is False
        assert kb.get_document_structure("doc1").total_chunks == 0
        assert kb.get_document_overview("doc1") is None
        assert (await kb.summarize_document("doc1")).success is False
        assert kb.delete_document("doc1") == 0
        assert kb.delete_research_source("s") == 0


class TestCreateKnowledgeBase:
    """Tests for create_knowledge_base."""

    @patch("mdindex.service.knowledge_base.get_llm_service")
    @patch("mdindex.service.knowledge_base.create_document_store")
    @patch("mdindex.service.database.gateway.get_collections")
    def test_healthy_store_enables_features(self, mock_collections, mock_store, mock_llm):
        mock_collections.return_value = []

        kb = create_knowledge_base({"service": "ollama"}, url="http://test:8080", database="db")

        assert kb.enabled is True
        mock_store.assert_called_once_with("http://test:8080", "db")

    @patch("mdindex.service.knowledge_base.get_llm_service")
    @patch("mdindex.service.knowledge_base.create_document_store")
    @patch("mdindex.service.database.gateway.get_collections")
    def test_unreachable_store_disables_features(self, mock_collections, mock_store, mock_llm):
        mock_collections.side_effect = VectorStoreUnavailable("down")

        kb = create_knowledge_base(url="http://test:8080", database="db")

        assert kb.enabled is False
        mock_store.return_value.close.assert_called_once()

    @patch("mdindex.service.knowledge_base.get_llm_service")
    @patch("mdindex.service.knowledge_base.create_document_store")
    def test_connection_error_disables_features(self, mock_store, mock_llm):
        mock_store.side_effect = ConnectionError("refused")

        kb = create_knowledge_base()

        assert kb.enabled is False


class TestContentChangeNotifier:
    """Tests for content-change events."""

    def test_publish_reaches_subscribers(self):
        notifier = ContentChangeNotifier()
        received = []
        unsubscribe = notifier.subscribe(received.append)

        event = DocumentContentChanged("doc1", "Guide", "# A", 3)
        assert notifier.publish(event) == 1
        assert received == [event]
        assert event.occurred_at.tzinfo is not None

        unsubscribe()
        assert notifier.publish(event) == 0

    def test_knowledge_base_emits_event(self):
        handler = MagicMock()
        kb = KnowledgeBase.disabled()
        kb.notifier.subscribe(handler)

        event = kb.notify_content_changed("doc1", "Guide", "# A\nnew", 4)

        handler.assert_called_once_with(event)
        assert event.version == 4
