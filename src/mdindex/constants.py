"""Application-wide constants and defaults for mdindex.

This module provides a single source of truth for configuration defaults,
magic numbers, and other constants used throughout the application.
"""

import os

# =============================================================================
# Chunking
# =============================================================================
DEFAULT_MAX_CHUNK_SIZE = 2000  # Characters per document chunk
RESEARCH_MAX_CHUNK_SIZE = 1500  # Smaller chunks for research sources and uploads
CHUNK_OVERLAP = 200  # Characters carried over between split pieces
INTRODUCTION_HEADING = "Introduction"  # Heading text for pre-heading content

# =============================================================================
# Embeddings
# =============================================================================
DEFAULT_EMBEDDING_DIMENSIONS = 768
EMBEDDING_CACHE_MAX_SIZE = 1000
EMBEDDING_CACHE_KEY_LENGTH = 200  # Characters of text used in the cache key
EMBEDDING_BATCH_SIZE = 100  # Provider limit per request fan-out
DEFAULT_EMBEDDING_TIMEOUT = 30.0  # Seconds

EMBEDDING_DEFAULTS = {
    "ollama": "nomic-embed-text",
    "gemini": "text-embedding-004",
}

# Models that write the recursive summaries
SUMMARY_MODEL_DEFAULTS = {
    "ollama": "llama3",
    "gemini": "gemini-2.5-flash",
}
SUPPORTED_LLM_SERVICES = tuple(SUMMARY_MODEL_DEFAULTS)

# =============================================================================
# Vector Store Collections
# =============================================================================
DOCUMENTS_COLLECTION = "DocumentChunks"
RESEARCH_SOURCES_COLLECTION = "ResearchSources"
UPLOADED_FILES_COLLECTION = "UploadedFiles"
SUMMARIES_COLLECTION = "Summaries"

SCROLL_LIMIT = 1000  # Points read per structural scroll
VECTOR_SEARCH_MIN_CANDIDATES = 200  # Approximate-search candidate floor for unfiltered queries
REQUEST_TIMEOUT = 10  # Seconds for RavenDB REST administration calls

# =============================================================================
# Search Defaults
# =============================================================================
DEFAULT_SEARCH_LIMIT = 10
DEFAULT_SCORE_THRESHOLD = 0.7
SECONDARY_SEARCH_LIMIT = 5  # Summaries, research sources, uploads
SECONDARY_SCORE_THRESHOLD = 0.6
DUPLICATE_THRESHOLD = 0.85
DUPLICATE_SEARCH_LIMIT = 5

# Multi-source retrieval: share of the result budget, score weight and
# threshold factor per source
USER_CONTEXT_LIMIT = 15
USER_CONTEXT_THRESHOLD = 0.6
SOURCE_CURRENT_DOC = "current_doc"
SOURCE_USER_DOC = "user_doc"
SOURCE_UPLOAD = "upload"
SOURCE_BUDGETS = {
    SOURCE_CURRENT_DOC: {"share": 0.6, "weight": 1.0, "threshold_factor": 1.0},
    SOURCE_USER_DOC: {"share": 0.3, "weight": 0.5, "threshold_factor": 0.8},
    SOURCE_UPLOAD: {"share": 0.2, "weight": 0.4, "threshold_factor": 0.7},
}

# =============================================================================
# Summaries
# =============================================================================
SUMMARY_BATCH_SIZE = 8
SUMMARY_WORDS_FIRST_LEVEL = 500
SUMMARY_WORDS_HIGHER_LEVELS = 300

# =============================================================================
# Display Settings
# =============================================================================
CONTENT_PREVIEW_LENGTH = 200  # Characters to show in content previews

# =============================================================================
# Default URLs and Hosts
# =============================================================================
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_RAVENDB_URL = "http://localhost:8080"
DEFAULT_RAVENDB_DATABASE = "mdindex"


def get_embedding_model(service: str | None = None) -> str:
    """Get the default embedding model for a given LLM service.

    Checks the EMBEDDING_MODEL environment variable first, then falls back
    to service-specific defaults.

    Args:
        service: The LLM service name ("ollama" or "gemini").
                If None, uses LLM_SERVICE env var or defaults to "ollama".

    Returns:
        str: The embedding model name to use.
    """
    env_model = os.getenv("EMBEDDING_MODEL")
    if env_model:
        return env_model

    if service is None:
        service = os.getenv("LLM_SERVICE", "ollama")

    return EMBEDDING_DEFAULTS.get(service, EMBEDDING_DEFAULTS["ollama"])


def get_embedding_dimensions() -> int:
    """Get the embedding vector dimension from EMBEDDING_DIMENSIONS (default: 768)."""
    return int(os.getenv("EMBEDDING_DIMENSIONS", str(DEFAULT_EMBEDDING_DIMENSIONS)))


def get_embedding_timeout() -> float:
    """Get the per-call embedding timeout in seconds from EMBEDDING_TIMEOUT."""
    return float(os.getenv("EMBEDDING_TIMEOUT", str(DEFAULT_EMBEDDING_TIMEOUT)))


def embeddings_enabled() -> bool:
    """Check whether embedding generation is enabled.

    Reads ENABLE_EMBEDDING; "0", "false", "no" and "off" disable it.

    Returns:
        bool: False when embeddings are switched off by configuration.
    """
    value = os.getenv("ENABLE_EMBEDDING", "true").strip().lower()
    return value not in ("0", "false", "no", "off")
