"""Recursive hierarchical summarization of long documents.

Chunks are summarized in consecutive groups, the summaries are summarized
again, and so on until a single root summary remains. Every node is embedded
and stored in the summaries collection tagged with its level, so both the
overview and intermediate levels can be searched.
"""

import logging
from dataclasses import dataclass, field

from mdindex.constants import (
    DOCUMENTS_COLLECTION,
    SCROLL_LIMIT,
    SECONDARY_SCORE_THRESHOLD,
    SECONDARY_SEARCH_LIMIT,
    SUMMARIES_COLLECTION,
    SUMMARY_BATCH_SIZE,
    SUMMARY_WORDS_FIRST_LEVEL,
    SUMMARY_WORDS_HIGHER_LEVELS,
)
from mdindex.llm.base import LLMService
from mdindex.service.database.gateway import VectorStoreGateway
from mdindex.service.database.models import Point, PointFilter, SummaryMetadata
from mdindex.service.embedding import EmbeddingProvider
from mdindex.service.indexer import new_point_id, utc_now

logger = logging.getLogger(__name__)

SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True)
class SummaryInput:
    id: str
    content: str


@dataclass(frozen=True)
class SummaryNode:
    id: str
    content: str
    level: int
    parent_ids: list[str] = field(default_factory=list)


@dataclass
class SummaryResult:
    success: bool
    total_summaries: int
    levels: int = 0


@dataclass(frozen=True)
class DocumentOverview:
    overview: str
    levels: int


@dataclass(frozen=True)
class SummaryHit:
    content: str
    level: int
    score: float


def build_summary_prompt(texts: list[str], level: int) -> str:
    """Build the summarization prompt for one group of texts."""
    combined = SEPARATOR.join(texts)
    if level == 1:
        return (
            "Write a concise summary of these text sections. "
            "Keep the most important information and key statements. "
            f"At most {SUMMARY_WORDS_FIRST_LEVEL} words.\n\n{combined}"
        )
    return (
        "Write an overview of these summaries. "
        "Extract the main topics and key points. "
        f"At most {SUMMARY_WORDS_HIGHER_LEVELS} words.\n\n{combined}"
    )


class RecursiveSummarizer:
    """Builds and queries the summary tree of a document.

    Args:
        llm: Service used to write the summaries
        embeddings: Embedding provider for the summary vectors
        gateway: Vector store gateway
        batch_size: Number of items summarized together
    """

    def __init__(
        self,
        llm: LLMService,
        embeddings: EmbeddingProvider,
        gateway: VectorStoreGateway,
        batch_size: int = SUMMARY_BATCH_SIZE,
    ) -> None:
        self.llm = llm
        self.embeddings = embeddings
        self.gateway = gateway
        self.batch_size = batch_size

    async def _summarize(self, texts: list[str], level: int) -> str:
        prompt = build_summary_prompt(texts, level)
        return await self.llm.generate_response([{"role": "user", "content": prompt}])

    async def create_recursive_summaries(
        self,
        document_id: str,
        chunks: list[SummaryInput],
        batch_size: int | None = None,
    ) -> SummaryResult:
        """Build the summary tree of a document from its chunks.

        Any summaries stored earlier for the document are replaced.

        Args:
            document_id: Document ID
            chunks: Chunks in document order
            batch_size: Items per group (defaults to the summarizer's batch size)

        Returns:
            SummaryResult: number of summary nodes created and levels built
        """
        batch_size = batch_size or self.batch_size
        if batch_size < 2:
            raise ValueError("batch_size must be at least 2")

        logger.info(f"📝 Creating recursive summaries for document {document_id}...")
        self.gateway.delete_by_document(SUMMARIES_COLLECTION, document_id)

        if not chunks:
            return SummaryResult(success=True, total_summaries=0, levels=0)

        level = 1
        current: list[SummaryInput] = list(chunks)
        total = 0

        while len(current) > 1:
            logger.info(f"📊 Level {level}: Processing {len(current)} chunks")
            group_count = -(-len(current) // batch_size)
            nodes: list[SummaryNode] = []

            for start in range(0, len(current), batch_size):
                group = current[start : start + batch_size]
                summary = await self._summarize([item.content for item in group], level)
                nodes.append(
                    SummaryNode(
                        id=new_point_id(),
                        content=summary,
                        level=level,
                        parent_ids=[item.id for item in group],
                    )
                )
                logger.debug(f"  ✓ Created summary {len(nodes)}/{group_count}")

            vectors = await self.embeddings.generate_embedding_batch(
                [node.content for node in nodes], "RETRIEVAL_DOCUMENT"
            )
            created_at = utc_now()
            points = [
                Point(
                    id=node.id,
                    vector=vector,
                    payload=SummaryMetadata(
                        document_id=document_id,
                        summary_level=level,
                        parent_chunk_ids=node.parent_ids,
                        created_at=created_at,
                    ).to_payload(node.content),
                )
                for node, vector in zip(nodes, vectors)
            ]
            self.gateway.upsert(SUMMARIES_COLLECTION, points)

            total += len(nodes)
            logger.info(f"✅ Level {level}: Created {len(nodes)} summaries")

            level += 1
            current = [SummaryInput(id=node.id, content=node.content) for node in nodes]

        levels = level - 1
        logger.info(f"✅ Recursive summarization complete: {total} summaries across {levels} levels")
        return SummaryResult(success=True, total_summaries=total, levels=levels)

    async def summarize_document(
        self, document_id: str, batch_size: int | None = None
    ) -> SummaryResult:
        """Summarize a document from the chunks already indexed for it."""
        points = self.gateway.scroll(
            DOCUMENTS_COLLECTION,
            PointFilter(must={"document_id": document_id}),
            limit=SCROLL_LIMIT,
        )
        points.sort(key=lambda point: point.payload.get("chunk_index", 0))
        chunks = [SummaryInput(id=point.id, content=point.content) for point in points]
        return await self.create_recursive_summaries(document_id, chunks, batch_size)

    def get_document_overview(self, document_id: str) -> DocumentOverview | None:
        """Return the top-level summary of a document, or None if it has none."""
        points = self.gateway.scroll(
            SUMMARIES_COLLECTION,
            PointFilter(must={"document_id": document_id}),
            limit=SCROLL_LIMIT,
        )
        if not points:
            return None

        top = max(points, key=lambda point: point.payload.get("summary_level", 0))
        return DocumentOverview(
            overview=top.content,
            levels=top.payload.get("summary_level", 0),
        )

    async def search_summaries(
        self,
        query: str,
        document_id: str,
        level: int | None = None,
        limit: int = SECONDARY_SEARCH_LIMIT,
        score_threshold: float = SECONDARY_SCORE_THRESHOLD,
    ) -> list[SummaryHit]:
        """Search a document's summary nodes, optionally at one level."""
        query_vector = await self.embeddings.generate_embedding(query, "RETRIEVAL_QUERY")

        must: dict = {"document_id": document_id}
        if level is not None:
            must["summary_level"] = level

        hits = self.gateway.search(
            SUMMARIES_COLLECTION,
            query_vector,
            point_filter=PointFilter(must=must),
            limit=limit,
            score_threshold=score_threshold,
        )
        return [
            SummaryHit(
                content=hit.content,
                level=hit.payload.get("summary_level", 0),
                score=hit.score,
            )
            for hit in hits
        ]
