"""Database operations for RavenDB - connection, indexes and administration."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import requests
from ravendb import DocumentStore
from ravendb.documents.indexes.definitions import (
    FieldIndexing,
    FieldStorage,
    IndexDefinition,
    IndexFieldOptions,
)
from ravendb.documents.indexes.vector.options import VectorOptions
from ravendb.documents.operations.indexes import GetIndexNamesOperation, PutIndexesOperation
from ravendb.serverwide.operations.common import DeleteDatabaseOperation

from mdindex.constants import DOCUMENTS_COLLECTION, REQUEST_TIMEOUT, get_embedding_dimensions
from mdindex.exceptions import VectorStoreUnavailable
from mdindex.service.database.config import RavenDBConfig
from mdindex.service.database.models import INDEXED_PAYLOAD_FIELDS

logger = logging.getLogger(__name__)


def create_document_store(url: str | None = None, database: str | None = None) -> DocumentStore:
    """Create the long-lived DocumentStore shared by the vector store gateway.

    Args:
        url: RavenDB server URL (RAVENDB_URL when None)
        database: Database name (RAVENDB_DATABASE when None)

    Returns:
        DocumentStore: Initialized DocumentStore instance
    """
    config = RavenDBConfig.resolve(url, database)
    store = DocumentStore([config.url], config.database)
    store.initialize()
    return store


def vector_index_name(collection: str) -> str:
    """Name of the vector index backing a collection."""
    return f"{collection}/ByEmbedding"


def build_vector_index(collection: str, dimensions: int) -> IndexDefinition:
    """Build the vector index definition for a collection.

    The index exposes the payload filter fields and the embedding as a
    fixed-dimension vector field (RavenDB compares float vectors by cosine
    similarity).

    Args:
        collection: RavenDB collection name
        dimensions: Embedding vector length

    Returns:
        IndexDefinition: Definition ready for PutIndexesOperation
    """
    index_definition = IndexDefinition()
    index_definition.name = vector_index_name(collection)

    projected = ",\n            ".join(
        f"{name} = point.payload.{name}" for name in INDEXED_PAYLOAD_FIELDS
    )
    index_definition.maps = {
        f"""from point in docs.{collection}
        where point.embedding != null
        select new {{
            {projected},
            embedding = CreateField("embedding", point.embedding, new CreateFieldOptions {{ Storage = FieldStorage.Yes, Indexing = FieldIndexing.No }})
        }}"""
    }

    index_definition.fields = {
        "embedding": IndexFieldOptions(
            storage=FieldStorage.YES,
            indexing=FieldIndexing.NO,
            vector=VectorOptions(dimensions=dimensions),
        )
    }
    return index_definition


def ensure_index_exists(
    store: DocumentStore,
    collection: str = DOCUMENTS_COLLECTION,
    dimensions: int | None = None,
) -> bool:
    """Ensure the vector search index for a collection exists in RavenDB.

    Args:
        store: Initialized DocumentStore instance
        collection: Collection the index covers
        dimensions: Vector dimension (defaults to EMBEDDING_DIMENSIONS env or 768)

    Returns:
        bool: True if the index was created, False if it already existed
    """
    index_name = vector_index_name(collection)

    existing_indexes = store.maintenance.send(GetIndexNamesOperation(0, 1024))
    if index_name in existing_indexes:
        return False

    if dimensions is None:
        dimensions = get_embedding_dimensions()

    store.maintenance.send(PutIndexesOperation(build_vector_index(collection, dimensions)))
    return True


@contextmanager
def open_store(config: RavenDBConfig) -> Iterator[DocumentStore]:
    """Yield a short-lived initialized store for one administrative call."""
    store = DocumentStore([config.url], config.database)
    store.initialize()
    try:
        yield store
    finally:
        store.close()


def _collection_counts(config: RavenDBConfig, operation: str) -> dict[str, int]:
    try:
        response = requests.get(f"{config.database_url}/collections/stats", timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise VectorStoreUnavailable(
            f"RavenDB not reachable: {e}",
            operation=operation,
            details={"url": config.url, "database": config.database},
        ) from e
    return response.json().get("Collections", {})


def database_exists(url: str | None = None, database: str | None = None) -> bool:
    """Check whether the vector database exists (False when the server is unreachable)."""
    config = RavenDBConfig.resolve(url, database)
    try:
        response = requests.get(f"{config.database_url}/stats", timeout=REQUEST_TIMEOUT)
    except requests.RequestException:
        return False
    return response.status_code == 200


def create_database(url: str | None = None, database: str | None = None) -> None:
    """Create the vector database; collection indexes are added on first use.

    Raises:
        requests.HTTPError: If RavenDB refuses the request
    """
    config = RavenDBConfig.resolve(url, database)
    payload = {"DatabaseName": config.database, "Settings": {}, "Disabled": False}

    response = requests.put(config.admin_databases_url, json=payload, timeout=REQUEST_TIMEOUT)
    response.raise_for_status()
    logger.info(f"📦 Created database {config.database} at {config.url}")


def delete_database(url: str | None = None, database: str | None = None) -> None:
    """Hard-delete the vector database with every indexed document, summary and upload.

    WARNING: This operation is irreversible.
    """
    config = RavenDBConfig.resolve(url, database)
    with open_store(config) as store:
        store.maintenance.server.send(
            DeleteDatabaseOperation(database_name=config.database, hard_delete=True)
        )
    logger.info(f"🗑️ Deleted database {config.database}")


def count_points(
    collection: str = DOCUMENTS_COLLECTION,
    url: str | None = None,
    database: str | None = None,
) -> int:
    """Number of points stored in a collection (0 when it was never written).

    Raises:
        VectorStoreUnavailable: If the server cannot be reached
    """
    config = RavenDBConfig.resolve(url, database)
    return int(_collection_counts(config, "count").get(collection, 0))


def get_collections(url: str | None = None, database: str | None = None) -> list[str]:
    """Sorted collection names of the vector database.

    Raises:
        VectorStoreUnavailable: If the server cannot be reached
    """
    config = RavenDBConfig.resolve(url, database)
    return sorted(_collection_counts(config, "list_collections"))
