"""Indexing of external research sources attached to a document."""

import logging
from dataclasses import dataclass
from typing import Literal

from mdindex.constants import (
    RESEARCH_MAX_CHUNK_SIZE,
    RESEARCH_SOURCES_COLLECTION,
    SECONDARY_SCORE_THRESHOLD,
    SECONDARY_SEARCH_LIMIT,
)
from mdindex.service.chunking import chunk_markdown
from mdindex.service.database.gateway import VectorStoreGateway
from mdindex.service.database.models import Point, PointFilter, ResearchSourceMetadata
from mdindex.service.embedding import EmbeddingProvider
from mdindex.service.indexer import new_point_id, utc_now

logger = logging.getLogger(__name__)

SourceType = Literal["web", "api", "database"]
Relevance = Literal["background_research", "direct_reference", "citation"]


@dataclass(frozen=True)
class ResearchSource:
    title: str
    content: str
    source_type: SourceType
    relevance: Relevance
    url: str | None = None


@dataclass
class ResearchIndexResult:
    success: bool
    chunks_indexed: int
    source_id: str
    error: str | None = None


@dataclass(frozen=True)
class ResearchHit:
    content: str
    title: str
    url: str | None
    score: float


class ResearchIndexer:
    """Stores research material in its own collection, keyed by source id."""

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        gateway: VectorStoreGateway,
        max_chunk_size: int = RESEARCH_MAX_CHUNK_SIZE,
    ) -> None:
        self.embeddings = embeddings
        self.gateway = gateway
        self.max_chunk_size = max_chunk_size

    async def index_research_source(
        self, document_id: str, source: ResearchSource
    ) -> ResearchIndexResult:
        """Chunk, embed and store one research source.

        Never raises: failures are logged and reported in the result.

        Args:
            document_id: Document the research belongs to
            source: The research material

        Returns:
            ResearchIndexResult: outcome with the generated source id
        """
        source_id = new_point_id()
        try:
            logger.info(f"📚 Indexing research source: {source.title}")

            chunks = chunk_markdown(source.content, self.max_chunk_size)
            if not chunks:
                return ResearchIndexResult(success=True, chunks_indexed=0, source_id=source_id)

            vectors = await self.embeddings.generate_embedding_batch(
                [chunk.content for chunk in chunks], "RETRIEVAL_DOCUMENT"
            )

            created_at = utc_now()
            points = [
                Point(
                    id=new_point_id(),
                    vector=vector,
                    payload=ResearchSourceMetadata(
                        document_id=document_id,
                        source_id=source_id,
                        source_type=source.source_type,
                        url=source.url,
                        title=source.title,
                        relevance=source.relevance,
                        chunk_index=index,
                        total_chunks=len(chunks),
                        created_at=created_at,
                    ).to_payload(chunk.content),
                )
                for index, (chunk, vector) in enumerate(zip(chunks, vectors))
            ]
            self.gateway.upsert(RESEARCH_SOURCES_COLLECTION, points)

            logger.info(f"✅ Indexed research source: {len(chunks)} chunks")
            return ResearchIndexResult(success=True, chunks_indexed=len(chunks), source_id=source_id)

        except Exception as e:
            logger.error(f"❌ Error indexing research source {source.title}: {e}", exc_info=True)
            return ResearchIndexResult(
                success=False, chunks_indexed=0, source_id=source_id, error=str(e)
            )

    async def search_research_sources(
        self,
        query: str,
        document_id: str | None = None,
        source_type: SourceType | None = None,
        relevance: Relevance | None = None,
        limit: int = SECONDARY_SEARCH_LIMIT,
        score_threshold: float = SECONDARY_SCORE_THRESHOLD,
    ) -> list[ResearchHit]:
        """Search research chunks, optionally narrowed by document, type and relevance."""
        query_vector = await self.embeddings.generate_embedding(query, "RETRIEVAL_QUERY")

        must = {"document_id": document_id, "source_type": source_type, "relevance": relevance}
        point_filter = PointFilter(must={key: value for key, value in must.items() if value})

        hits = self.gateway.search(
            RESEARCH_SOURCES_COLLECTION,
            query_vector,
            point_filter=None if point_filter.is_empty() else point_filter,
            limit=limit,
            score_threshold=score_threshold,
        )
        return [
            ResearchHit(
                content=hit.content,
                title=hit.payload.get("title", ""),
                url=hit.payload.get("url"),
                score=hit.score,
            )
            for hit in hits
        ]

    def delete_research_source(self, source_id: str) -> int:
        """Delete every chunk of a research source."""
        deleted = self.gateway.delete_by_filter(
            RESEARCH_SOURCES_COLLECTION, PointFilter(must={"source_id": source_id})
        )
        logger.info(f"✓ Deleted research source {source_id}")
        return deleted
