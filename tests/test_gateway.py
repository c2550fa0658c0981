"""Tests for VectorStoreGateway against a mocked RavenDB client."""

from unittest.mock import MagicMock, patch

import pytest
from ravendb import DocumentStore

from mdindex.exceptions import VectorStoreError, VectorStoreUnavailable
from mdindex.service.database.gateway import VectorStoreGateway
from mdindex.service.database.models import Point, PointFilter, PointRecord


def make_store(results=None):
    """Build a MagicMock DocumentStore whose query chain yields ``results``."""
    store = MagicMock()
    session = MagicMock()
    store.open_session.return_value.__enter__.return_value = session

    query = MagicMock()
    session.query_index.return_value = query
    for method in ("wait_for_non_stale_results", "where_equals", "where_in", "and_also", "vector_search", "take"):
        getattr(query, method).return_value = query
    query.__iter__.return_value = iter(results or [])

    return store, session, query


@pytest.fixture(autouse=True)
def index_exists():
    with patch("mdindex.service.database.gateway.ensure_index_exists", return_value=False) as mock_ensure:
        yield mock_ensure


def make_gateway(store):
    return VectorStoreGateway(store, dimensions=2, url="http://test:8080", database="testdb")


class TestUpsert:
    """Tests for VectorStoreGateway.upsert."""

    def test_stores_records_with_collection_metadata(self):
        store, session, _ = make_store()
        metadata = {}
        session.advanced.get_metadata_for.return_value = metadata
        gateway = make_gateway(store)

        written = gateway.upsert("DocumentChunks", [Point(id="p1", vector=[1.0, 0.0], payload={"content": "x"})])

        assert written == 1
        record, record_id = session.store.call_args[0]
        assert isinstance(record, PointRecord)
        assert record_id == "DocumentChunks/p1"
        assert record.point_id == "p1"
        assert record.embedding == [1.0, 0.0]
        assert metadata["@collection"] == "DocumentChunks"
        session.save_changes.assert_called_once()

    def test_rejects_wrong_dimension(self):
        store, _, _ = make_store()
        gateway = make_gateway(store)

        with pytest.raises(VectorStoreError) as exc_info:
            gateway.upsert("DocumentChunks", [Point(id="p1", vector=[1.0, 0.0, 0.0], payload={})])

        assert exc_info.value.operation == "upsert"
        store.open_session.assert_not_called()

    def test_empty_upsert_is_noop(self):
        store, _, _ = make_store()
        assert make_gateway(store).upsert("DocumentChunks", []) == 0
        store.open_session.assert_not_called()

    def test_client_errors_are_wrapped(self):
        store, session, _ = make_store()
        session.save_changes.side_effect = RuntimeError("connection reset")

        with pytest.raises(VectorStoreError, match="connection reset"):
            make_gateway(store).upsert("DocumentChunks", [Point(id="p1", vector=[1.0, 0.0], payload={})])


class TestSearch:
    """Tests for VectorStoreGateway.search."""

    def test_scores_filters_and_orders_hits(self):
        results = [
            {"point_id": "low", "embedding": [0.0, 1.0], "payload": {"content": "low"}},
            {"point_id": "high", "embedding": [1.0, 0.0], "payload": {"content": "high"}},
            {"point_id": "mid", "embedding": [1.0, 1.0], "payload": {"content": "mid"}},
        ]
        store, _, _ = make_store(results)

        hits = make_gateway(store).search("DocumentChunks", [1.0, 0.0], limit=5, score_threshold=0.5)

        assert [hit.id for hit in hits] == ["high", "mid"]
        assert hits[0].score == pytest.approx(1.0)
        assert hits[1].content == "mid"

    def test_builds_filtered_vector_query(self):
        store, session, query = make_store([])
        point_filter = PointFilter(must={"document_id": "doc1"}, any_of={"chapter": ["A", "B"]})

        make_gateway(store).search("DocumentChunks", [1.0, 0.0], point_filter=point_filter, limit=3)

        session.query_index.assert_called_once_with("DocumentChunks/ByEmbedding", object_type=dict)
        query.where_equals.assert_called_once_with("document_id", "doc1")
        query.where_in.assert_called_once_with("chapter", ["A", "B"])
        query.vector_search.assert_called_once_with("embedding", [1.0, 0.0], is_exact=True)
        query.take.assert_called_once_with(3)
        assert query.and_also.call_count == 2

    def test_unfiltered_search_widens_candidates(self):
        store, _, query = make_store([])

        make_gateway(store).search("DocumentChunks", [1.0, 0.0], limit=500)

        query.vector_search.assert_called_once_with("embedding", [1.0, 0.0], number_of_candidates=500)
        query.and_also.assert_not_called()

    def test_filtered_rql_scans_exactly(self):
        store = DocumentStore(["http://127.0.0.1:1"], "testdb")
        store.initialize()
        try:
            with store.open_session() as session:
                query = make_gateway(store)._vector_query(
                    session, "DocumentChunks", [1.0, 0.0], PointFilter(must={"document_id": "doc1"}), 5
                )
                rql = query.index_query.query
        finally:
            store.close()

        assert rql.startswith("from index 'DocumentChunks/ByEmbedding' where document_id = $p0")
        assert "exact(vector.search(embedding" in rql

    def test_falls_back_to_index_score(self):
        results = [{"point_id": "p", "payload": {}, "@metadata": {"@index-score": 0.9}}]
        store, _, _ = make_store(results)

        hits = make_gateway(store).search("DocumentChunks", [1.0, 0.0])

        assert hits[0].score == pytest.approx(0.9)

    def test_errors_carry_operation(self):
        store, session, _ = make_store()
        session.query_index.side_effect = RuntimeError("index missing")

        with pytest.raises(VectorStoreError) as exc_info:
            make_gateway(store).search("DocumentChunks", [1.0, 0.0])

        assert exc_info.value.operation == "search"


class TestDeleteAndScroll:
    """Tests for delete_by_filter, delete_by_document and scroll."""

    def test_delete_by_document_removes_matching_records(self):
        results = [{"point_id": "a"}, {"point_id": "b"}]
        store, session, query = make_store(results)

        deleted = make_gateway(store).delete_by_document("Summaries", "doc1")

        assert deleted == 2
        query.where_equals.assert_called_once_with("document_id", "doc1")
        session.delete.assert_any_call("Summaries/a")
        session.delete.assert_any_call("Summaries/b")
        session.save_changes.assert_called_once()

    def test_delete_requires_filter(self):
        store, _, _ = make_store()
        with pytest.raises(VectorStoreError, match="without a filter"):
            make_gateway(store).delete_by_filter("Summaries", PointFilter())

    def test_scroll_maps_payloads(self):
        results = [{"point_id": "a", "payload": {"content": "first", "chunk_index": 0}}]
        store, _, query = make_store(results)

        points = make_gateway(store).scroll("DocumentChunks", PointFilter(must={"document_id": "d"}), limit=50)

        assert points[0].id == "a"
        assert points[0].content == "first"
        query.take.assert_called_once_with(50)


class TestCollections:
    """Tests for collection lifecycle and health checks."""

    def test_collection_index_prepared_once(self, index_exists):
        store, _, _ = make_store()
        gateway = make_gateway(store)

        gateway.ensure_collection("DocumentChunks")
        gateway.ensure_collection("DocumentChunks")

        index_exists.assert_called_once_with(store, "DocumentChunks", 2)

    def test_index_failure_is_wrapped(self, index_exists):
        index_exists.side_effect = RuntimeError("no permission")
        store, _, _ = make_store()

        with pytest.raises(VectorStoreError) as exc_info:
            make_gateway(store).ensure_collection("DocumentChunks")

        assert exc_info.value.operation == "ensure_collection"

    @patch("mdindex.service.database.gateway.get_collections")
    def test_health_check(self, mock_collections):
        store, _, _ = make_store()
        gateway = make_gateway(store)

        mock_collections.return_value = ["DocumentChunks"]
        assert gateway.health_check() is True
        mock_collections.assert_called_with("http://test:8080", "testdb")

        mock_collections.side_effect = VectorStoreUnavailable("down", operation="list_collections")
        assert gateway.health_check() is False
