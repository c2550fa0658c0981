"""Command-line interface for mdindex using Click."""

import asyncio
from pathlib import Path

import click
from dotenv import load_dotenv

from mdindex.client.cli_helpers import (
    configure_logging,
    ensure_database_exists,
    format_search_result,
    get_database_info,
    open_knowledge_base,
)
from mdindex.constants import DEFAULT_SCORE_THRESHOLD, SUMMARY_BATCH_SIZE
from mdindex.exceptions import MdIndexError
from mdindex.service.chunking import extract_table_of_contents, get_markdown_stats
from mdindex.service.database import database_exists, delete_database

# Load environment variables
load_dotenv()


@click.command()
@click.argument(
    "file",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
)
@click.option("--document-id", type=str, default=None, help="Document ID (default: the file name stem)")
@click.option("--title", type=str, default=None, help="Document title (default: the file name stem)")
@click.option("--version", "doc_version", type=int, default=1, help="Document version (default: 1)")
@click.option(
    "--create-database",
    "create_database_flag",
    is_flag=True,
    default=False,
    help="Create the RavenDB database if it doesn't exist",
)
@click.option("--summarize", is_flag=True, default=False, help="Build the summary tree after indexing")
def index(
    file: Path,
    document_id: str | None,
    title: str | None,
    doc_version: int,
    create_database_flag: bool,
    summarize: bool,
) -> None:
    """Index the markdown FILE into the knowledge base.

    Example:
        mdindex-index notes/thesis.md
        mdindex-index notes/thesis.md --document-id thesis --version 3
        mdindex-index notes/thesis.md --create-database --summarize
    """
    configure_logging()
    ensure_database_exists(create_if_missing=create_database_flag)

    document_id = document_id or file.stem
    title = title or file.stem
    content = file.read_text(encoding="utf-8")

    kb = open_knowledge_base()
    try:
        click.echo(f"📚 Indexing '{file.name}' as {document_id} (version {doc_version})...")
        result = asyncio.run(kb.index_document(document_id, title, content, doc_version))
        if not result.success:
            click.echo(f"✗ Error indexing document: {result.error}", err=True)
            raise click.Abort()
        click.echo(f"✓ Indexed {result.chunks_indexed} chunk(s)")

        if summarize:
            summary = asyncio.run(kb.summarize_document(document_id))
            click.echo(f"✓ Created {summary.total_summaries} summaries across {summary.levels} level(s)")
    except click.Abort:
        raise
    except MdIndexError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()
    finally:
        kb.close()


@click.command()
@click.argument("query", type=str)
@click.option("--document-id", type=str, default=None, help="Restrict the search to one document")
@click.option("--chapter", type=str, default=None, help="Restrict the search to one chapter")
@click.option("--section", type=str, default=None, help="Restrict the search to one section")
@click.option("--limit", type=int, default=5, help="Number of results to return (default: 5)")
@click.option(
    "--threshold",
    type=float,
    default=DEFAULT_SCORE_THRESHOLD,
    help=f"Minimum similarity score (default: {DEFAULT_SCORE_THRESHOLD})",
)
def search(
    query: str,
    document_id: str | None,
    chapter: str | None,
    section: str | None,
    limit: int,
    threshold: float,
) -> None:
    """Search indexed chunks for QUERY.

    Example:
        mdindex-search "vector databases"
        mdindex-search "methods" --document-id thesis --chapter "Introduction"
    """
    configure_logging()
    ensure_database_exists()

    click.echo(f"🔍 Searching for: '{query}'")
    click.echo(f"   Returning top {limit} results...\n")

    kb = open_knowledge_base()
    try:
        results = asyncio.run(
            kb.search_document_chunks(
                query,
                document_id=document_id,
                limit=limit,
                score_threshold=threshold,
                chapter=chapter,
                section=section,
            )
        )
    except MdIndexError as e:
        click.echo(f"✗ Error: {e}", err=True)
        click.echo("\nPlease ensure the LLM service and RavenDB are running.", err=True)
        raise click.Abort()
    finally:
        kb.close()

    if not results:
        click.echo("No results found.")
        return

    click.echo(f"✅ Found {len(results)} result(s):\n")
    for i, result in enumerate(results, 1):
        click.echo(format_search_result(i, result))


@click.command()
@click.argument("document_id", type=str)
def structure(document_id: str) -> None:
    """Show how the indexed chunks of DOCUMENT_ID are spread over chapters and sections.

    Example:
        mdindex-structure thesis
    """
    configure_logging()
    ensure_database_exists()

    kb = open_knowledge_base()
    try:
        doc_structure = kb.get_document_structure(document_id)
    except MdIndexError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()
    finally:
        kb.close()

    if doc_structure.total_chunks == 0:
        click.echo(f"No chunks indexed for '{document_id}'.")
        return

    click.echo(f"📊 {document_id}: {doc_structure.total_chunks} chunk(s)\n")
    for chapter in doc_structure.chapters:
        click.echo(chapter.name)
        for section in chapter.sections:
            click.echo(f"  • {section.name} ({section.chunk_count})")


@click.command()
@click.argument("document_id", type=str)
@click.option(
    "--batch-size",
    type=int,
    default=SUMMARY_BATCH_SIZE,
    help=f"Items summarized together (default: {SUMMARY_BATCH_SIZE})",
)
def summarize(document_id: str, batch_size: int) -> None:
    """Build the summary tree of an indexed document.

    Example:
        mdindex-summarize thesis
        mdindex-summarize thesis --batch-size 4
    """
    configure_logging()
    ensure_database_exists()

    kb = open_knowledge_base()
    try:
        click.echo(f"📝 Summarizing {document_id}...")
        result = asyncio.run(kb.summarize_document(document_id, batch_size))
    except (MdIndexError, ValueError) as e:
        click.echo(f"✗ Error creating summaries: {e}", err=True)
        raise click.Abort()
    finally:
        kb.close()

    click.echo(f"✓ Created {result.total_summaries} summaries across {result.levels} level(s)")


@click.command()
@click.argument("document_id", type=str)
def overview(document_id: str) -> None:
    """Print the top-level summary of DOCUMENT_ID.

    Example:
        mdindex-overview thesis
    """
    configure_logging()
    ensure_database_exists()

    kb = open_knowledge_base()
    try:
        doc_overview = kb.get_document_overview(document_id)
    except MdIndexError as e:
        click.echo(f"✗ Error: {e}", err=True)
        raise click.Abort()
    finally:
        kb.close()

    if doc_overview is None:
        click.echo(f"No summaries for '{document_id}'. Run: mdindex-summarize {document_id}")
        return

    click.echo(f"📖 Overview ({doc_overview.levels} level(s)):\n")
    click.echo(doc_overview.overview)


@click.command()
@click.argument(
    "file",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
)
def outline(file: Path) -> None:
    """Print the heading outline and statistics of a markdown FILE.

    Works offline; nothing is indexed.

    Example:
        mdindex-outline notes/thesis.md
    """
    content = file.read_text(encoding="utf-8")

    for entry in extract_table_of_contents(content):
        click.echo(f"{'  ' * (entry.level - 1)}{entry.text} (line {entry.line + 1})")

    stats = get_markdown_stats(content)
    click.echo(
        f"\n📊 {stats.total_chars} chars, {stats.total_lines} lines, "
        f"{stats.code_blocks} code block(s), {stats.tables} table line(s), "
        f"{stats.lists} list item(s), ~{stats.estimated_chunks} chunk(s)"
    )


@click.command()
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip confirmation prompt")
def delete_db(yes: bool) -> None:
    """Delete the RavenDB database and all its contents.

    WARNING: This is irreversible and deletes all chunks, summaries, and indexes.

    Example:
        mdindex-delete-db          # Will prompt for confirmation
        mdindex-delete-db --yes    # Skip confirmation
    """
    configure_logging()
    url, db_name, chunk_count = get_database_info()

    if not database_exists():
        click.echo(f"✓ Database '{db_name}' does not exist at {url}")
        return

    if not yes:
        click.echo(f"⚠️  WARNING: You are about to delete the database '{db_name}'")
        click.echo(f"   Location: {url}\n")
        click.echo("This will permanently delete:")
        click.echo("  • All indexed document chunks")
        click.echo("  • All summaries, research sources and uploads")
        click.echo("  • All vector indexes\n")

        if chunk_count is not None:
            click.echo(f"📊 Current database contains: {chunk_count} document chunk(s)\n")

        if not click.confirm("Are you sure you want to proceed?", default=False):
            click.echo("Deletion cancelled.")
            return

    click.echo(f"🗑️  Deleting database '{db_name}'...")
    try:
        delete_database()
        click.echo(f"✓ Database '{db_name}' successfully deleted!")
        click.echo("\nTo create a new database, run:")
        click.echo("  mdindex-index <file> --create-database")
    except Exception as e:
        click.echo(f"✗ Error deleting database: {e}", err=True)
        raise click.Abort()


if __name__ == "__main__":
    index()
