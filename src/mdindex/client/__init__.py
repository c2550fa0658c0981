"""Command-line client for mdindex."""
