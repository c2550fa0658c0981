"""mdindex - semantic indexing and retrieval for long-form markdown documents."""

__version__ = "0.1.0"
