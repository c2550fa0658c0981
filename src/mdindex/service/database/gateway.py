"""Vector store gateway over RavenDB.

All reads and writes of vector points go through ``VectorStoreGateway``,
which turns RavenDB query results into typed ``ScoredPoint`` / ``StoredPoint``
values and RavenDB failures into ``VectorStoreError``.
"""

import logging
from collections.abc import Sequence
from typing import Any

from ravendb import DocumentStore

from mdindex.constants import (
    DEFAULT_EMBEDDING_DIMENSIONS,
    SCROLL_LIMIT,
    VECTOR_SEARCH_MIN_CANDIDATES,
)
from mdindex.exceptions import VectorStoreError, VectorStoreUnavailable
from mdindex.service.database.config import RavenDBConfig
from mdindex.service.database.models import (
    Point,
    PointFilter,
    PointRecord,
    ScoredPoint,
    StoredPoint,
)
from mdindex.service.database.operations import (
    ensure_index_exists,
    get_collections,
    vector_index_name,
)
from mdindex.service.embedding import cosine_similarity

logger = logging.getLogger(__name__)


class VectorStoreGateway:
    """Collection lifecycle, upsert, delete, search and scroll over RavenDB.

    Args:
        store: Initialized RavenDB DocumentStore
        dimensions: Vector dimension of every collection
        url: Server URL used for REST health checks (defaults to RavenDBConfig)
        database: Database name used for REST health checks (defaults to RavenDBConfig)
    """

    def __init__(
        self,
        store: DocumentStore,
        dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS,
        url: str | None = None,
        database: str | None = None,
    ) -> None:
        self.store = store
        self.dimensions = dimensions
        config = RavenDBConfig.resolve(url, database)
        self.url = config.url
        self.database = config.database
        self._ready_collections: set[str] = set()

    @staticmethod
    def record_id(collection: str, point_id: str) -> str:
        return f"{collection}/{point_id}"

    def ensure_collection(self, collection: str) -> None:
        """Create the collection's vector index on first use."""
        if collection in self._ready_collections:
            return
        try:
            if ensure_index_exists(self.store, collection, self.dimensions):
                logger.info(f"📦 Created collection index: {collection}")
        except Exception as e:
            raise VectorStoreError(
                f"Failed to prepare collection {collection}: {e}",
                operation="ensure_collection",
            ) from e
        self._ready_collections.add(collection)

    def _filtered_query(self, session: Any, collection: str, point_filter: PointFilter | None):
        query = session.query_index(vector_index_name(collection), object_type=dict)
        query = query.wait_for_non_stale_results()
        if point_filter is None:
            return query, False

        has_clause = False
        for key, value in point_filter.must.items():
            if has_clause:
                query = query.and_also()
            query = query.where_equals(key, value)
            has_clause = True
        for key, values in point_filter.any_of.items():
            if has_clause:
                query = query.and_also()
            query = query.where_in(key, list(values))
            has_clause = True
        return query, has_clause

    def _vector_query(
        self,
        session: Any,
        collection: str,
        vector: list[float],
        point_filter: PointFilter | None,
        limit: int,
    ):
        # Filtered searches scan exactly: an approximate candidate set is drawn
        # from the whole collection before the filter applies.
        query, has_clause = self._filtered_query(session, collection, point_filter)
        if has_clause:
            query = query.and_also().vector_search("embedding", vector, is_exact=True)
        else:
            query = query.vector_search(
                "embedding",
                vector,
                number_of_candidates=max(limit, VECTOR_SEARCH_MIN_CANDIDATES),
            )
        return query.take(limit)

    def _score(self, vector: list[float], result: dict[str, Any]) -> float:
        embedding = result.get("embedding") or []
        if len(embedding) == len(vector):
            return cosine_similarity(vector, embedding)
        index_score = result.get("@metadata", {}).get("@index-score")
        return float(index_score) if index_score is not None else 0.0

    def upsert(self, collection: str, points: Sequence[Point]) -> int:
        """Store points, replacing any with the same id.

        Returns once the session's changes have been committed.

        Args:
            collection: Target collection
            points: Points to store

        Returns:
            int: Number of points written
        """
        if not points:
            return 0

        for point in points:
            if len(point.vector) != self.dimensions:
                raise VectorStoreError(
                    "Vector dimension does not match collection",
                    operation="upsert",
                    details={"expected": self.dimensions, "actual": len(point.vector)},
                )

        self.ensure_collection(collection)
        try:
            with self.store.open_session() as session:
                for point in points:
                    record = PointRecord(
                        Id=self.record_id(collection, point.id),
                        point_id=point.id,
                        embedding=point.vector,
                        payload=point.payload,
                    )
                    session.store(record, record.Id)
                    metadata = session.advanced.get_metadata_for(record)
                    metadata["@collection"] = collection
                session.save_changes()
        except Exception as e:
            raise VectorStoreError(
                f"Failed to upsert points: {e}",
                operation="upsert",
                details={"collection": collection, "point_count": len(points)},
            ) from e

        logger.debug(f"Upserted {len(points)} points into {collection}")
        return len(points)

    def delete_by_filter(self, collection: str, point_filter: PointFilter) -> int:
        """Delete every point of a collection matching the filter.

        Args:
            collection: Target collection
            point_filter: Non-empty filter selecting the points

        Returns:
            int: Number of points deleted
        """
        if point_filter.is_empty():
            raise VectorStoreError("Refusing to delete without a filter", operation="delete")

        self.ensure_collection(collection)
        try:
            with self.store.open_session() as session:
                query, _ = self._filtered_query(session, collection, point_filter)
                point_ids = [result.get("point_id") for result in query]
                for point_id in point_ids:
                    session.delete(self.record_id(collection, point_id))
                session.save_changes()
        except Exception as e:
            raise VectorStoreError(
                f"Failed to delete points: {e}",
                operation="delete",
                details={"collection": collection, "filter": point_filter.must},
            ) from e

        return len(point_ids)

    def delete_by_document(self, collection: str, document_id: str) -> int:
        """Delete every point belonging to a document."""
        deleted = self.delete_by_filter(collection, PointFilter(must={"document_id": document_id}))
        logger.info(f"✓ Deleted {deleted} vectors for document {document_id} from {collection}")
        return deleted

    def search(
        self,
        collection: str,
        vector: list[float],
        point_filter: PointFilter | None = None,
        limit: int = 10,
        score_threshold: float = 0.0,
    ) -> list[ScoredPoint]:
        """Find the points most similar to a vector.

        Args:
            collection: Collection to search
            vector: Query vector
            point_filter: Optional payload filter
            limit: Maximum number of hits
            score_threshold: Minimum cosine similarity

        Returns:
            list[ScoredPoint]: Hits in descending similarity order
        """
        self.ensure_collection(collection)
        try:
            with self.store.open_session() as session:
                query = self._vector_query(session, collection, vector, point_filter, limit)
                results = list(query)
        except Exception as e:
            raise VectorStoreError(
                f"Vector search failed: {e}",
                operation="search",
                details={"collection": collection},
            ) from e

        hits = [
            ScoredPoint(
                id=result.get("point_id", ""),
                score=self._score(vector, result),
                payload=result.get("payload", {}),
            )
            for result in results
        ]
        hits = [hit for hit in hits if hit.score >= score_threshold]
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:limit]

    def scroll(
        self,
        collection: str,
        point_filter: PointFilter | None = None,
        limit: int = SCROLL_LIMIT,
    ) -> list[StoredPoint]:
        """Read up to ``limit`` points matching the filter, in no particular order."""
        self.ensure_collection(collection)
        try:
            with self.store.open_session() as session:
                query, _ = self._filtered_query(session, collection, point_filter)
                results = list(query.take(limit))
        except Exception as e:
            raise VectorStoreError(
                f"Scroll failed: {e}",
                operation="scroll",
                details={"collection": collection},
            ) from e

        return [
            StoredPoint(id=result.get("point_id", ""), payload=result.get("payload", {}))
            for result in results
        ]

    def list_collections(self) -> list[str]:
        """List the collections of the database.

        Raises:
            VectorStoreUnavailable: If RavenDB cannot be reached
        """
        return get_collections(self.url, self.database)

    def close(self) -> None:
        self.store.close()

    def health_check(self) -> bool:
        """Return True when RavenDB answers a collection listing."""
        try:
            collections = self.list_collections()
        except VectorStoreUnavailable as e:
            logger.error(f"✗ RavenDB health check failed: {e}")
            return False
        logger.info(f"✓ RavenDB connected: {len(collections)} collections found")
        return True
