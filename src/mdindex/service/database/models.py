"""Data models for vector store points and their payloads."""

from dataclasses import asdict, dataclass, field, fields
from typing import Any

# Payload keys exposed by every collection index for filtering
INDEXED_PAYLOAD_FIELDS = (
    "document_id",
    "version",
    "chapter",
    "section",
    "content_type",
    "chunk_index",
    "summary_level",
    "source_id",
    "source_type",
    "relevance",
    "file_id",
    "file_name",
    "user_id",
)


@dataclass(eq=False)
class PointRecord:
    """A stored point as persisted in RavenDB.

    Note: eq=False ensures each instance is unique and hashable by identity,
    which is required for RavenDB's session entity tracking.

    Attributes:
        Id: RavenDB document ID (``<collection>/<point id>``)
        point_id: Point identifier independent of the collection prefix
        embedding: Vector embedding of the content
        payload: Point metadata including the content itself
    """

    Id: str | None = None
    point_id: str = ""
    embedding: list[float] = field(default_factory=list)
    payload: dict[str, Any] = field(default_factory=dict)

    def __hash__(self) -> int:
        """Hash by object identity for RavenDB session tracking."""
        return id(self)


@dataclass
class Point:
    """A vector plus its payload, ready to be upserted."""

    id: str
    vector: list[float]
    payload: dict[str, Any]


@dataclass(frozen=True)
class ScoredPoint:
    """A search hit with its cosine similarity score."""

    id: str
    score: float
    payload: dict[str, Any]

    @property
    def content(self) -> str:
        return self.payload.get("content", "")


@dataclass(frozen=True)
class StoredPoint:
    """A point returned by a scroll (no score)."""

    id: str
    payload: dict[str, Any]

    @property
    def content(self) -> str:
        return self.payload.get("content", "")


@dataclass
class PointFilter:
    """Payload filter for searches, scrolls and deletes.

    Attributes:
        must: Every field must equal the given value
        any_of: Every field must equal one of the given values
    """

    must: dict[str, Any] = field(default_factory=dict)
    any_of: dict[str, list[Any]] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.must and not self.any_of

    def matches(self, payload: dict[str, Any]) -> bool:
        """Check a payload against the filter in memory."""
        if any(payload.get(key) != value for key, value in self.must.items()):
            return False
        return all(payload.get(key) in values for key, values in self.any_of.items())


class PayloadModel:
    """Conversion helpers shared by the payload dataclasses."""

    def to_payload(self, content: str) -> dict[str, Any]:
        return {**asdict(self), "content": content}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]):
        names = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in payload.items() if key in names})


@dataclass
class ChunkMetadata(PayloadModel):
    """Payload of a document chunk point."""

    document_id: str
    version: int
    title: str
    heading_level: int
    heading_text: str
    chunk_index: int
    total_chunks: int
    content_type: str
    char_count: int
    created_at: str
    chapter: str | None = None
    section: str | None = None


@dataclass
class SummaryMetadata(PayloadModel):
    """Payload of a summary node point."""

    document_id: str
    summary_level: int
    created_at: str
    parent_chunk_ids: list[str] = field(default_factory=list)


@dataclass
class ResearchSourceMetadata(PayloadModel):
    """Payload of a research source chunk point."""

    document_id: str
    source_id: str
    source_type: str
    title: str
    relevance: str
    chunk_index: int
    total_chunks: int
    created_at: str
    url: str | None = None


@dataclass
class UploadedFileMetadata(PayloadModel):
    """Payload of an uploaded file chunk point."""

    document_id: str
    file_id: str
    file_name: str
    file_type: str
    chunk_index: int
    total_chunks: int
    created_at: str
    user_id: str | None = None
