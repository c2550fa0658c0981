"""Vector store access on RavenDB.

This package provides a unified interface for RavenDB operations:
- Configuration management (RavenDBConfig)
- Document store creation and vector index management
- Database administration (create, delete, count)
- The VectorStoreGateway used by every indexing and retrieval service

Usage:
    from mdindex.service.database import (
        VectorStoreGateway,
        create_document_store,
    )

    gateway = VectorStoreGateway(create_document_store())
"""

from mdindex.service.database.config import RavenDBConfig
from mdindex.service.database.gateway import VectorStoreGateway
from mdindex.service.database.models import (
    ChunkMetadata,
    Point,
    PointFilter,
    ResearchSourceMetadata,
    ScoredPoint,
    StoredPoint,
    SummaryMetadata,
    UploadedFileMetadata,
)
from mdindex.service.database.operations import (
    count_points,
    create_database,
    create_document_store,
    database_exists,
    delete_database,
    ensure_index_exists,
    get_collections,
)

__all__ = [
    # Config
    "RavenDBConfig",
    # Gateway
    "VectorStoreGateway",
    # Models
    "Point",
    "PointFilter",
    "ScoredPoint",
    "StoredPoint",
    "ChunkMetadata",
    "SummaryMetadata",
    "ResearchSourceMetadata",
    "UploadedFileMetadata",
    # Operations
    "create_document_store",
    "ensure_index_exists",
    "database_exists",
    "create_database",
    "delete_database",
    "count_points",
    "get_collections",
]
