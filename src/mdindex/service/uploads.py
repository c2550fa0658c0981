"""Indexing of files a user uploads as reference material."""

import logging
from dataclasses import dataclass
from pathlib import PurePath

import fitz  # PyMuPDF

from mdindex.constants import (
    RESEARCH_MAX_CHUNK_SIZE,
    SECONDARY_SCORE_THRESHOLD,
    SECONDARY_SEARCH_LIMIT,
    UPLOADED_FILES_COLLECTION,
)
from mdindex.exceptions import UnsupportedFileType
from mdindex.service.chunking import chunk_markdown
from mdindex.service.database.gateway import VectorStoreGateway
from mdindex.service.database.models import Point, PointFilter, UploadedFileMetadata
from mdindex.service.embedding import EmbeddingProvider
from mdindex.service.indexer import new_point_id, utc_now

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {"txt", "md", "markdown"}


@dataclass
class UploadIndexResult:
    success: bool
    chunks_indexed: int
    file_id: str


@dataclass(frozen=True)
class UploadHit:
    content: str
    file_name: str
    file_type: str
    score: float


def file_extension(file_name: str) -> str:
    return PurePath(file_name).suffix.lstrip(".").lower()


def extract_text_from_pdf(data: bytes) -> str:
    """Extract the text of every page of an in-memory PDF."""
    doc = fitz.open(stream=data, filetype="pdf")
    text = ""

    for page in doc:
        text += page.get_text()

    doc.close()
    return text


def extract_text(data: bytes, file_name: str) -> str:
    """Extract plain text from an uploaded file based on its extension.

    Raises:
        UnsupportedFileType: If the extension is not pdf, txt, md or markdown
    """
    extension = file_extension(file_name)
    if extension == "pdf":
        return extract_text_from_pdf(data)
    if extension in TEXT_EXTENSIONS:
        return data.decode("utf-8")
    raise UnsupportedFileType(file_name)


class UploadIndexer:
    """Stores the chunks of uploaded files, tagged with the uploading user."""

    def __init__(
        self,
        embeddings: EmbeddingProvider,
        gateway: VectorStoreGateway,
        max_chunk_size: int = RESEARCH_MAX_CHUNK_SIZE,
    ) -> None:
        self.embeddings = embeddings
        self.gateway = gateway
        self.max_chunk_size = max_chunk_size

    async def index_uploaded_file(
        self,
        document_id: str,
        data: bytes,
        file_name: str,
        user_id: str | None = None,
    ) -> UploadIndexResult:
        """Extract, chunk, embed and store an uploaded file.

        Args:
            document_id: Document the file was uploaded to
            data: Raw file bytes
            file_name: Original file name (its extension selects the extractor)
            user_id: Uploading user, used to scope retrieval

        Returns:
            UploadIndexResult: outcome with the generated file id

        Raises:
            UnsupportedFileType: If the file type cannot be extracted
        """
        file_id = new_point_id()
        owner = f" for user {user_id}" if user_id else ""
        logger.info(f"📄 Indexing uploaded file: {file_name}{owner}")

        try:
            text = extract_text(data, file_name)
        except UnicodeDecodeError as e:
            raise UnsupportedFileType(file_name) from e

        if not text.strip():
            logger.warning(f"⚠️ No text extracted from {file_name}")
            return UploadIndexResult(success=True, chunks_indexed=0, file_id=file_id)

        chunks = chunk_markdown(text, self.max_chunk_size)
        if not chunks:
            return UploadIndexResult(success=True, chunks_indexed=0, file_id=file_id)

        vectors = await self.embeddings.generate_embedding_batch(
            [chunk.content for chunk in chunks], "RETRIEVAL_DOCUMENT"
        )

        created_at = utc_now()
        points = [
            Point(
                id=new_point_id(),
                vector=vector,
                payload=UploadedFileMetadata(
                    document_id=document_id,
                    file_id=file_id,
                    file_name=file_name,
                    file_type=file_extension(file_name),
                    user_id=user_id,
                    chunk_index=index,
                    total_chunks=len(chunks),
                    created_at=created_at,
                ).to_payload(chunk.content),
            )
            for index, (chunk, vector) in enumerate(zip(chunks, vectors))
        ]
        self.gateway.upsert(UPLOADED_FILES_COLLECTION, points)

        logger.info(f"✅ Indexed uploaded file: {len(chunks)} chunks")
        return UploadIndexResult(success=True, chunks_indexed=len(chunks), file_id=file_id)

    async def search_uploaded_files(
        self,
        query: str,
        document_id: str | None = None,
        file_name: str | None = None,
        limit: int = SECONDARY_SEARCH_LIMIT,
        score_threshold: float = SECONDARY_SCORE_THRESHOLD,
    ) -> list[UploadHit]:
        query_vector = await self.embeddings.generate_embedding(query, "RETRIEVAL_QUERY")

        must = {"document_id": document_id, "file_name": file_name}
        point_filter = PointFilter(must={key: value for key, value in must.items() if value})

        hits = self.gateway.search(
            UPLOADED_FILES_COLLECTION,
            query_vector,
            point_filter=None if point_filter.is_empty() else point_filter,
            limit=limit,
            score_threshold=score_threshold,
        )
        return [
            UploadHit(
                content=hit.content,
                file_name=hit.payload.get("file_name", ""),
                file_type=hit.payload.get("file_type", ""),
                score=hit.score,
            )
            for hit in hits
        ]

    def delete_uploaded_file(self, file_id: str) -> int:
        deleted = self.gateway.delete_by_filter(
            UPLOADED_FILES_COLLECTION, PointFilter(must={"file_id": file_id})
        )
        logger.info(f"✓ Deleted uploaded file {file_id}")
        return deleted
