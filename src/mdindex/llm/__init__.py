"""LLM service abstraction layer for mdindex.

This package provides a unified interface for multiple LLM providers:
- OllamaService: Local LLM via Ollama
- GeminiService: Google Gemini API

All services implement the LLMService protocol: text generation for
summaries and task-typed embedding generation.

Usage:
    from mdindex.llm import get_llm_service, LLMService

    # Create service from environment config
    service = get_llm_service()

    # Or with explicit config
    service = get_llm_service({"service": "gemini", "summary_model": "gemini-2.5-flash"})
"""

from mdindex.llm.base import LLMService, TaskType
from mdindex.llm.factory import LLMSettings, get_llm_service
from mdindex.llm.gemini import GeminiService
from mdindex.llm.ollama import OllamaService

__all__ = [
    "LLMService",
    "TaskType",
    "OllamaService",
    "GeminiService",
    "LLMSettings",
    "get_llm_service",
]
