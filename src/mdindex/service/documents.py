"""Read-only access to the documents owned by users."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class DocumentRecord:
    id: str
    content: str
    title: str
    owner_id: str


class DocumentRepository(Protocol):
    """Protocol for the external document store."""

    def get_document(self, document_id: str) -> DocumentRecord | None:
        """Fetch a document by id, or None if it does not exist."""
        ...

    def list_document_ids(self, owner_id: str) -> list[str]:
        """List the ids of every document owned by a user."""
        ...


class InMemoryDocumentRepository:
    """Dictionary-backed repository for local use."""

    def __init__(self, documents: list[DocumentRecord] | None = None) -> None:
        self._documents: dict[str, DocumentRecord] = {}
        for document in documents or []:
            self.add(document)

    def add(self, document: DocumentRecord) -> None:
        self._documents[document.id] = document

    def get_document(self, document_id: str) -> DocumentRecord | None:
        return self._documents.get(document_id)

    def list_document_ids(self, owner_id: str) -> list[str]:
        return [doc.id for doc in self._documents.values() if doc.owner_id == owner_id]
