"""Document indexing: chunk, embed and store one document version."""

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from mdindex.constants import (
    DEFAULT_MAX_CHUNK_SIZE,
    DEFAULT_SCORE_THRESHOLD,
    DEFAULT_SEARCH_LIMIT,
    DOCUMENTS_COLLECTION,
    SUMMARIES_COLLECTION,
)
from mdindex.service.chunking import ContentType, chunk_markdown, get_markdown_stats
from mdindex.service.database.gateway import VectorStoreGateway
from mdindex.service.database.models import ChunkMetadata, Point, PointFilter
from mdindex.service.embedding import EmbeddingProvider

logger = logging.getLogger(__name__)


@dataclass
class IndexResult:
    """Outcome of an indexing run, safe to record from a background job."""

    success: bool
    chunks_indexed: int
    error: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ChunkSearchResult:
    id: str
    score: float
    content: str
    metadata: ChunkMetadata


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_point_id() -> str:
    return uuid.uuid4().hex


class DocumentIndexer:
    """Keeps the stored chunk vectors of a document in line with its content.

    Re-indexing is always a full replace: every point of the document is
    deleted before the new version's points are written.

    Args:
        embeddings: Embedding provider
        gateway: Vector store gateway
        max_chunk_size: Maximum characters per chunk
    """

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        gateway: VectorStoreGateway,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
    ) -> None:
        self.embeddings = embeddings
        self.gateway = gateway
        self.max_chunk_size = max_chunk_size

    async def index_document(
        self, document_id: str, title: str, content: str, version: int
    ) -> IndexResult:
        """Index one version of a document.

        Never raises: any failure is logged and reported in the result.

        Args:
            document_id: Document ID
            title: Document title
            content: Markdown content
            version: Document version

        Returns:
            IndexResult: success flag, number of chunks stored and the error message on failure
        """
        try:
            logger.info(f"📚 Starting indexing for document {document_id} (version {version})...")

            self.gateway.delete_by_document(DOCUMENTS_COLLECTION, document_id)

            stats = get_markdown_stats(content)
            logger.info(
                f"📊 Document stats: {stats.total_chars} chars, {stats.total_lines} lines, "
                f"headings={stats.headings}"
            )

            chunks = chunk_markdown(content, self.max_chunk_size)
            logger.info(f"✂️ Created {len(chunks)} chunks")

            if not chunks:
                logger.warning(f"⚠️ No chunks created for document {document_id}")
                return IndexResult(success=True, chunks_indexed=0)

            vectors = await self.embeddings.generate_embedding_batch(
                [chunk.content for chunk in chunks], "RETRIEVAL_DOCUMENT"
            )

            created_at = utc_now()
            points = []
            for chunk, vector in zip(chunks, vectors):
                metadata = ChunkMetadata(
                    document_id=document_id,
                    version=version,
                    title=title,
                    chapter=chunk.chapter,
                    section=chunk.section,
                    heading_level=chunk.heading_level,
                    heading_text=chunk.heading_text,
                    chunk_index=chunk.chunk_index,
                    total_chunks=chunk.total_chunks,
                    content_type=chunk.content_type,
                    char_count=chunk.char_count,
                    created_at=created_at,
                )
                points.append(
                    Point(id=new_point_id(), vector=vector, payload=metadata.to_payload(chunk.content))
                )

            self.gateway.upsert(DOCUMENTS_COLLECTION, points)

            logger.info(f"✅ Successfully indexed {len(chunks)} chunks for document {document_id}")
            return IndexResult(success=True, chunks_indexed=len(chunks))

        except Exception as e:
            logger.error(f"❌ Error indexing document {document_id}: {e}", exc_info=True)
            return IndexResult(success=False, chunks_indexed=0, error=str(e))

    def delete_document(self, document_id: str) -> int:
        """Remove a deleted document's chunk vectors and summary nodes.

        Returns:
            int: Number of points removed
        """
        deleted = self.gateway.delete_by_document(DOCUMENTS_COLLECTION, document_id)
        deleted += self.gateway.delete_by_document(SUMMARIES_COLLECTION, document_id)
        return deleted

    async def search_document_chunks(
        self,
        query: str,
        document_id: str | None = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
        score_threshold: float = DEFAULT_SCORE_THRESHOLD,
        chapter: str | None = None,
        section: str | None = None,
        content_type: ContentType | None = None,
    ) -> list[ChunkSearchResult]:
        """Search indexed chunks, optionally narrowed by document and hierarchy.

        Args:
            query: Search query
            document_id: Restrict to one document
            limit: Maximum number of results
            score_threshold: Minimum similarity
            chapter: Restrict to a chapter
            section: Restrict to a section
            content_type: Restrict to a content type

        Returns:
            list[ChunkSearchResult]: Matches in descending similarity order
        """
        query_vector = await self.embeddings.generate_embedding(query, "RETRIEVAL_QUERY")

        must = {
            "document_id": document_id,
            "chapter": chapter,
            "section": section,
            "content_type": content_type,
        }
        point_filter = PointFilter(must={key: value for key, value in must.items() if value})

        hits = self.gateway.search(
            DOCUMENTS_COLLECTION,
            query_vector,
            point_filter=None if point_filter.is_empty() else point_filter,
            limit=limit,
            score_threshold=score_threshold,
        )
        return [
            ChunkSearchResult(
                id=hit.id,
                score=hit.score,
                content=hit.content,
                metadata=ChunkMetadata.from_payload(hit.payload),
            )
            for hit in hits
        ]
