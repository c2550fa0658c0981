"""Duplicate detection and chapter/section distribution for indexed documents."""

import logging
from dataclasses import dataclass, field

from mdindex.constants import (
    DOCUMENTS_COLLECTION,
    DUPLICATE_SEARCH_LIMIT,
    DUPLICATE_THRESHOLD,
    SCROLL_LIMIT,
)
from mdindex.service.database.gateway import VectorStoreGateway
from mdindex.service.database.models import PointFilter
from mdindex.service.indexer import DocumentIndexer

logger = logging.getLogger(__name__)

NO_CHAPTER = "No Chapter"
NO_SECTION = "No Section"


@dataclass(frozen=True)
class DuplicateMatch:
    content: str
    heading: str
    similarity: float


@dataclass
class DuplicateCheck:
    is_duplicate: bool
    similar: list[DuplicateMatch] = field(default_factory=list)


@dataclass
class SectionStructure:
    name: str
    chunk_count: int


@dataclass
class ChapterStructure:
    name: str
    sections: list[SectionStructure] = field(default_factory=list)


@dataclass
class DocumentStructure:
    chapters: list[ChapterStructure]
    total_chunks: int


class DocumentAnalyzer:
    """Structural reports over a document's stored chunks."""

    def __init__(self, indexer: DocumentIndexer, gateway: VectorStoreGateway) -> None:
        self.indexer = indexer
        self.gateway = gateway

    async def check_duplicate_content(
        self, document_id: str, content: str, threshold: float = DUPLICATE_THRESHOLD
    ) -> DuplicateCheck:
        """Check whether content already exists in a document.

        Args:
            document_id: Document to compare against
            content: Candidate content
            threshold: Similarity at or above which a chunk counts as a duplicate

        Returns:
            DuplicateCheck: Duplicate flag and the matching chunks with their headings
        """
        results = await self.indexer.search_document_chunks(
            content,
            document_id=document_id,
            limit=DUPLICATE_SEARCH_LIMIT,
            score_threshold=threshold,
        )
        return DuplicateCheck(
            is_duplicate=len(results) > 0,
            similar=[
                DuplicateMatch(
                    content=result.content,
                    heading=result.metadata.heading_text,
                    similarity=result.score,
                )
                for result in results
            ],
        )

    def get_document_structure(self, document_id: str) -> DocumentStructure:
        """Count stored chunks per chapter and section.

        Groups appear in document order (by chunk index).
        """
        points = self.gateway.scroll(
            DOCUMENTS_COLLECTION,
            PointFilter(must={"document_id": document_id}),
            limit=SCROLL_LIMIT,
        )
        points.sort(key=lambda point: point.payload.get("chunk_index", 0))

        structure: dict[str, dict[str, int]] = {}
        for point in points:
            chapter = point.payload.get("chapter") or NO_CHAPTER
            section = point.payload.get("section") or NO_SECTION
            sections = structure.setdefault(chapter, {})
            sections[section] = sections.get(section, 0) + 1

        chapters = [
            ChapterStructure(
                name=chapter,
                sections=[SectionStructure(name=name, chunk_count=count) for name, count in sections.items()],
            )
            for chapter, sections in structure.items()
        ]
        logger.debug(f"Document {document_id}: {len(points)} chunks in {len(chapters)} chapters")
        return DocumentStructure(chapters=chapters, total_chunks=len(points))
