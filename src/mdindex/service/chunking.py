"""Structural markdown chunking.

Parses markdown into a heading hierarchy and emits size-bounded chunks that
carry their chapter/section path and a content-type tag.
"""

import math
import re
from dataclasses import dataclass, field, replace
from typing import Literal

from mdindex.constants import CHUNK_OVERLAP, DEFAULT_MAX_CHUNK_SIZE, INTRODUCTION_HEADING

ContentType = Literal["text", "code", "table", "list", "quote"]

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")
LIST_PATTERN = re.compile(r"^\s*(?:[-*+]|\d+\.)\s")


@dataclass(frozen=True)
class Chunk:
    """A bounded content span tagged with its position in the heading hierarchy.

    Attributes:
        content: The chunk text
        chapter: Text of the enclosing level-1 heading, if any
        section: Text of the enclosing level-2 heading, if any
        heading_level: Level of the heading the content sits under (0 for the introduction)
        heading_text: Text of that heading
        chunk_index: Position of the chunk in the document (0..N-1)
        total_chunks: Number of chunks produced for the document
        content_type: Classification of the node content
        char_count: Length of ``content``
    """

    content: str
    heading_level: int
    heading_text: str
    content_type: ContentType
    char_count: int
    chapter: str | None = None
    section: str | None = None
    chunk_index: int = 0
    total_chunks: int = 0


@dataclass
class HeadingNode:
    """A heading and the lines that belong directly to it."""

    level: int
    text: str
    line: int
    content: list[str] = field(default_factory=list)
    children: list["HeadingNode"] = field(default_factory=list)


@dataclass(frozen=True)
class TocEntry:
    level: int
    text: str
    line: int


@dataclass(frozen=True)
class MarkdownStats:
    total_chars: int
    total_lines: int
    headings: dict[int, int]
    estimated_chunks: int
    code_blocks: int
    tables: int
    lists: int


def parse_markdown_hierarchy(markdown: str) -> HeadingNode:
    """Parse markdown into a tree of heading nodes.

    Non-heading lines are attached to the nearest preceding heading, or to
    the synthetic level-0 root when no heading has been seen yet. A heading
    nests under the closest open heading of a lower level, so skipped levels
    (H1 followed by H3) stay nested.

    Args:
        markdown: Raw markdown text

    Returns:
        HeadingNode: The synthetic root node
    """
    root = HeadingNode(level=0, text="root", line=0)
    stack = [root]

    for line_number, line in enumerate(markdown.split("\n")):
        match = HEADING_PATTERN.match(line)
        if not match:
            stack[-1].content.append(line)
            continue

        level = len(match.group(1))
        node = HeadingNode(level=level, text=match.group(2).strip(), line=line_number)

        while len(stack) > 1 and stack[-1].level >= level:
            stack.pop()

        stack[-1].children.append(node)
        stack.append(node)

    return root


def detect_content_type(content: str) -> ContentType:
    """Classify a block of markdown by its leading construct."""
    trimmed = content.strip()

    if trimmed.startswith("```"):
        return "code"
    if trimmed.startswith("|") and "|" in trimmed[1:]:
        return "table"
    if LIST_PATTERN.match(trimmed):
        return "list"
    if trimmed.startswith(">"):
        return "quote"
    return "text"


def build_hierarchy_path(path: list[HeadingNode]) -> tuple[str | None, str | None]:
    """Return the (chapter, section) pair for a root-to-node heading path.

    The path includes the node itself, so a level-2 heading is its own section.
    """
    chapter = next((node.text for node in path if node.level == 1), None)
    section = next((node.text for node in path if node.level == 2), None)
    return chapter, section


def split_content(
    content: str,
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> list[str]:
    """Split content into pieces of at most ``max_chunk_size`` characters.

    A piece ends at the last blank line before the hard cutoff when that blank
    line lies past half of ``max_chunk_size``; otherwise it ends at the cutoff.
    Every piece after the first starts with the final ``overlap`` characters
    of the previous piece. Overlap is clamped below half of ``max_chunk_size``
    so that each step advances.

    Args:
        content: Text to split
        max_chunk_size: Maximum characters per piece
        overlap: Characters carried from the end of one piece into the next

    Returns:
        list[str]: The pieces, in order
    """
    if max_chunk_size < 1:
        raise ValueError(f"max_chunk_size must be at least 1, got {max_chunk_size}")

    if len(content) <= max_chunk_size:
        return [content]

    overlap = effective_overlap(max_chunk_size, overlap)
    pieces = []
    start = 0

    while True:
        end = min(start + max_chunk_size, len(content))
        break_point = end
        if end < len(content):
            blank_line = content.rfind("\n\n", start, end)
            if blank_line > start + max_chunk_size / 2:
                break_point = blank_line

        pieces.append(content[start:break_point])
        if break_point >= len(content):
            return pieces
        start = break_point - overlap


def effective_overlap(max_chunk_size: int, overlap: int = CHUNK_OVERLAP) -> int:
    """Overlap actually applied by :func:`split_content` for a given chunk size."""
    return max(0, min(overlap, (max_chunk_size - 1) // 2))


def _emit_node_chunks(
    content_lines: list[str],
    heading_level: int,
    heading_text: str,
    chapter: str | None,
    section: str | None,
    max_chunk_size: int,
    overlap: int,
) -> list[Chunk]:
    full_content = "\n".join(content_lines).strip()
    if not full_content:
        return []

    content_type = detect_content_type(full_content)
    return [
        Chunk(
            content=piece,
            chapter=chapter,
            section=section,
            heading_level=heading_level,
            heading_text=heading_text,
            content_type=content_type,
            char_count=len(piece),
        )
        for piece in split_content(full_content, max_chunk_size, overlap)
    ]


def _process_node(
    node: HeadingNode,
    path: list[HeadingNode],
    chunks: list[Chunk],
    max_chunk_size: int,
    overlap: int,
) -> None:
    node_path = [*path, node]
    chapter, section = build_hierarchy_path(node_path)
    chunks.extend(
        _emit_node_chunks(
            node.content, node.level, node.text, chapter, section, max_chunk_size, overlap
        )
    )
    for child in node.children:
        _process_node(child, node_path, chunks, max_chunk_size, overlap)


def chunk_markdown(
    markdown: str,
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
    overlap: int = CHUNK_OVERLAP,
) -> list[Chunk]:
    """Parse markdown into hierarchy-aware chunks.

    Content before the first heading is emitted under heading level 0 with
    the heading text "Introduction". Headings are visited depth-first in
    document order. Afterwards every chunk is renumbered so that
    ``chunk_index`` runs 0..N-1 and ``total_chunks`` is N.

    Args:
        markdown: Markdown content to chunk
        max_chunk_size: Maximum characters per chunk (default: 2000)
        overlap: Characters carried over between split pieces (default: 200)

    Returns:
        list[Chunk]: Chunks with hierarchy and content-type metadata
    """
    root = parse_markdown_hierarchy(markdown)
    chunks = _emit_node_chunks(
        root.content, 0, INTRODUCTION_HEADING, None, None, max_chunk_size, overlap
    )

    for child in root.children:
        _process_node(child, [], chunks, max_chunk_size, overlap)

    total = len(chunks)
    return [
        replace(chunk, chunk_index=index, total_chunks=total)
        for index, chunk in enumerate(chunks)
    ]


def extract_table_of_contents(markdown: str) -> list[TocEntry]:
    """List every heading with its level and zero-based line number."""
    toc = []
    for line_number, line in enumerate(markdown.split("\n")):
        match = HEADING_PATTERN.match(line)
        if match:
            toc.append(
                TocEntry(level=len(match.group(1)), text=match.group(2).strip(), line=line_number)
            )
    return toc


def get_markdown_stats(markdown: str) -> MarkdownStats:
    """Compute line-level statistics about a markdown document.

    Code fences are counted per opening/closing pair.
    """
    lines = markdown.split("\n")
    headings: dict[int, int] = {}
    fences = tables = lists = 0

    for line in lines:
        match = HEADING_PATTERN.match(line)
        if match:
            level = len(match.group(1))
            headings[level] = headings.get(level, 0) + 1

        stripped = line.strip()
        if stripped.startswith("```"):
            fences += 1
        if stripped.startswith("|"):
            tables += 1
        if LIST_PATTERN.match(line):
            lists += 1

    return MarkdownStats(
        total_chars=len(markdown),
        total_lines=len(lines),
        headings=headings,
        estimated_chunks=math.ceil(len(markdown) / DEFAULT_MAX_CHUNK_SIZE),
        code_blocks=fences // 2,
        tables=tables,
        lists=lists,
    )
