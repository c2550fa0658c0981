"""Helper functions for CLI commands."""

import logging
import os

import click

from mdindex.constants import CONTENT_PREVIEW_LENGTH, DOCUMENTS_COLLECTION
from mdindex.service.database import (
    RavenDBConfig,
    count_points,
    create_database,
    database_exists,
)
from mdindex.service.indexer import ChunkSearchResult
from mdindex.service.knowledge_base import KnowledgeBase, create_knowledge_base

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Configure root logging from LOG_LEVEL (default: WARNING)."""
    level = os.getenv("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING))


def ensure_database_exists(create_if_missing: bool = False) -> bool:
    """Check if database exists, optionally create it.

    Args:
        create_if_missing: If True, attempt to create the database

    Returns:
        True if database exists (or was created)

    Raises:
        click.Abort: If database doesn't exist and can't be created
    """
    if database_exists():
        return True

    if create_if_missing:
        click.echo("Database does not exist. Creating database...")
        try:
            create_database()
            click.echo("✓ Database created successfully!")
            return True
        except Exception as e:
            click.echo(f"✗ Failed to create database: {e}", err=True)
            click.echo("\nPlease ensure RavenDB is running and accessible.", err=True)
            raise click.Abort()

    click.echo("✗ Error: Database does not exist!", err=True)
    click.echo("\nPlease create the database first using:", err=True)
    click.echo("  mdindex-index <file> --create-database", err=True)
    raise click.Abort()


def open_knowledge_base() -> KnowledgeBase:
    """Create the knowledge base, aborting when RavenDB is unavailable.

    Raises:
        click.Abort: If the knowledge base came up disabled
    """
    kb = create_knowledge_base()
    if not kb.enabled:
        click.echo("✗ Error: RavenDB is not reachable.", err=True)
        click.echo("\nPlease ensure RavenDB is running and accessible.", err=True)
        raise click.Abort()
    return kb


def format_search_result(index: int, result: ChunkSearchResult, max_length: int = CONTENT_PREVIEW_LENGTH) -> str:
    """Format a search result for display.

    Args:
        index: Result number (1-based)
        result: Chunk search result
        max_length: Maximum content length before truncation

    Returns:
        Formatted string for display
    """
    metadata = result.metadata
    location = " > ".join(part for part in (metadata.chapter, metadata.section) if part)
    location = location or metadata.heading_text

    content = result.content
    display_content = content[:max_length] + "..." if len(content) > max_length else content

    lines = [
        f"{index}. [{metadata.document_id} - {location} - chunk #{metadata.chunk_index}] "
        f"(score: {result.score:.4f})",
        f"   {display_content}",
        "",
    ]
    return "\n".join(lines)


def get_database_info() -> tuple[str, str, int | None]:
    """Get database connection info and stored chunk count.

    Returns:
        Tuple of (url, database_name, chunk_count or None if it could not be counted)
    """
    config = RavenDBConfig.resolve()

    chunk_count = None
    try:
        chunk_count = count_points(DOCUMENTS_COLLECTION)
    except Exception as e:
        logger.debug(f"Could not count chunks: {e}")

    return config.url, config.database, chunk_count
