"""Multi-source retrieval with fixed per-source priority weights.

A query is run against three disjoint sources, each with its own share of
the result budget, score weight and threshold:

- the document currently open (``current_doc``)
- the user's other documents (``user_doc``)
- the user's uploaded files (``upload``)

Hits are pooled and ranked by ``score * weight``.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from mdindex.constants import (
    DOCUMENTS_COLLECTION,
    SOURCE_BUDGETS,
    SOURCE_CURRENT_DOC,
    SOURCE_UPLOAD,
    SOURCE_USER_DOC,
    UPLOADED_FILES_COLLECTION,
    USER_CONTEXT_LIMIT,
    USER_CONTEXT_THRESHOLD,
)
from mdindex.exceptions import VectorStoreError
from mdindex.service.database.gateway import VectorStoreGateway
from mdindex.service.database.models import PointFilter
from mdindex.service.documents import DocumentRepository
from mdindex.service.embedding import EmbeddingProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextResult:
    content: str
    score: float
    weighted_score: float
    source: str
    metadata: dict[str, Any]


@dataclass(frozen=True)
class ContextChunk:
    content: str
    heading: str
    relevance: float
    source: str
    chapter: str | None = None
    section: str | None = None


@dataclass
class VectorContext:
    """Retrieved chunks ready to be placed into an assistant prompt."""

    chunks: list[ContextChunk] = field(default_factory=list)
    summary: str = ""
    total_chunks: int = 0


class ContextRetriever:
    """Blends search results from the user's documents and uploads.

    Args:
        embeddings: Embedding provider used for the query vector
        gateway: Vector store gateway
        documents: Repository resolving which documents a user owns
    """

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        gateway: VectorStoreGateway,
        documents: DocumentRepository,
    ) -> None:
        self.embeddings = embeddings
        self.gateway = gateway
        self.documents = documents

    def _search_source(
        self,
        source: str,
        collection: str,
        query_vector: list[float],
        point_filter: PointFilter,
        limit: int,
        score_threshold: float,
    ) -> list[ContextResult]:
        budget = SOURCE_BUDGETS[source]
        try:
            hits = self.gateway.search(
                collection,
                query_vector,
                point_filter=point_filter,
                limit=math.ceil(round(limit * budget["share"], 6)),
                score_threshold=score_threshold * budget["threshold_factor"],
            )
        except VectorStoreError as e:
            logger.warning(f"⚠️ Could not search {source} results, skipping: {e}")
            return []

        return [
            ContextResult(
                content=hit.content,
                score=hit.score,
                weighted_score=hit.score * budget["weight"],
                source=source,
                metadata=hit.payload,
            )
            for hit in hits
        ]

    async def search_user_context(
        self,
        query: str,
        user_id: str,
        current_document_id: str | None = None,
        *,
        include_documents: bool = True,
        include_uploads: bool = True,
        limit: int = USER_CONTEXT_LIMIT,
        score_threshold: float = USER_CONTEXT_THRESHOLD,
    ) -> list[ContextResult]:
        """Search the user's knowledge base with priority weighting.

        Args:
            query: Search query
            user_id: User whose documents and uploads are searched
            current_document_id: Document the user is working on (highest priority)
            include_documents: Search the current and other owned documents
            include_uploads: Search the user's uploaded files
            limit: Maximum number of pooled results
            score_threshold: Base similarity threshold

        Returns:
            list[ContextResult]: Results ordered by weighted score
        """
        query_vector = await self.embeddings.generate_embedding(query, "RETRIEVAL_QUERY")
        user_document_ids = self.documents.list_document_ids(user_id)
        results: list[ContextResult] = []

        if include_documents and current_document_id and current_document_id in user_document_ids:
            results.extend(
                self._search_source(
                    SOURCE_CURRENT_DOC,
                    DOCUMENTS_COLLECTION,
                    query_vector,
                    PointFilter(must={"document_id": current_document_id}),
                    limit,
                    score_threshold,
                )
            )

        if include_documents:
            other_ids = [doc_id for doc_id in user_document_ids if doc_id != current_document_id]
            if other_ids:
                results.extend(
                    self._search_source(
                        SOURCE_USER_DOC,
                        DOCUMENTS_COLLECTION,
                        query_vector,
                        PointFilter(any_of={"document_id": other_ids}),
                        limit,
                        score_threshold,
                    )
                )

        if include_uploads:
            results.extend(
                self._search_source(
                    SOURCE_UPLOAD,
                    UPLOADED_FILES_COLLECTION,
                    query_vector,
                    PointFilter(must={"user_id": user_id}),
                    limit,
                    score_threshold,
                )
            )

        results.sort(key=lambda result: result.weighted_score, reverse=True)
        top_results = results[:limit]

        logger.info(f"🔍 Multi-source search results: {len(top_results)} chunks")
        for source in (SOURCE_CURRENT_DOC, SOURCE_USER_DOC, SOURCE_UPLOAD):
            count = sum(1 for result in top_results if result.source == source)
            logger.debug(f"  - {source}: {count}")

        return top_results

    async def build_vector_context(
        self,
        user_id: str,
        query: str,
        current_document_id: str | None = None,
        max_chunks: int = 10,
    ) -> VectorContext | None:
        """Collect the most relevant chunks for a prompt, with source attribution.

        Returns:
            VectorContext | None: None when nothing relevant was found
        """
        results = await self.search_user_context(
            query, user_id, current_document_id, limit=max_chunks
        )
        if not results:
            return None

        chunks = [
            ContextChunk(
                content=result.content,
                heading=result.metadata.get("heading_text") or result.metadata.get("file_name") or "Unknown",
                chapter=result.metadata.get("chapter"),
                section=result.metadata.get("section"),
                relevance=result.score,
                source=result.source,
            )
            for result in results
        ]

        labels = {
            SOURCE_CURRENT_DOC: "from the current document",
            SOURCE_USER_DOC: "from other documents",
            SOURCE_UPLOAD: "from uploads",
        }
        parts = []
        for source, label in labels.items():
            count = sum(1 for chunk in chunks if chunk.source == source)
            if count:
                parts.append(f"{count} {label}")

        return VectorContext(
            chunks=chunks,
            summary=f"Relevant sections found: {', '.join(parts)}",
            total_chunks=len(chunks),
        )
