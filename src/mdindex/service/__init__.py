"""Indexing, retrieval and summarization services for mdindex."""
