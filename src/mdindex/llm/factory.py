"""Provider settings and the factory that turns them into an LLM service."""

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from mdindex.constants import (
    DEFAULT_OLLAMA_HOST,
    SUMMARY_MODEL_DEFAULTS,
    SUPPORTED_LLM_SERVICES,
    embeddings_enabled,
    get_embedding_dimensions,
    get_embedding_model,
    get_embedding_timeout,
)
from mdindex.llm.base import LLMService
from mdindex.llm.gemini import GeminiService
from mdindex.llm.ollama import OllamaService

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMSettings:
    """Which provider writes summaries and embeds text, and how.

    Attributes:
        service: "ollama" or "gemini"
        summary_model: Chat model used for recursive summaries
        embedding_model: Model used for every embedding call
        dimensions: Expected embedding vector length
        embedding_timeout: Seconds allowed per embedding call
        embeddings_enabled: False when embeddings are switched off
        host: Ollama server URL (ignored by Gemini)
    """

    service: str
    summary_model: str
    embedding_model: str
    dimensions: int
    embedding_timeout: float
    embeddings_enabled: bool = True
    host: str = DEFAULT_OLLAMA_HOST

    @classmethod
    def from_config(cls, config: dict | None = None) -> "LLMSettings":
        """Resolve settings from a config dict, then the environment, then defaults.

        Recognised keys: 'service' (LLM_SERVICE), 'host' (OLLAMA_HOST),
        'summary_model' (LLM_MODEL), 'embedding_model' (EMBEDDING_MODEL),
        'dimensions' (EMBEDDING_DIMENSIONS), 'embedding_timeout' (EMBEDDING_TIMEOUT)
        and 'embeddings_enabled' (ENABLE_EMBEDDING).

        Raises:
            ValueError: If the service is not supported
        """
        config = config or {}
        service = config.get("service", os.getenv("LLM_SERVICE", "ollama"))
        if service not in SUPPORTED_LLM_SERVICES:
            raise ValueError(f"Unsupported service type: {service}")

        return cls(
            service=service,
            summary_model=config.get(
                "summary_model", os.getenv("LLM_MODEL", SUMMARY_MODEL_DEFAULTS[service])
            ),
            embedding_model=config.get("embedding_model", get_embedding_model(service)),
            dimensions=int(config.get("dimensions", get_embedding_dimensions())),
            embedding_timeout=float(config.get("embedding_timeout", get_embedding_timeout())),
            embeddings_enabled=bool(config.get("embeddings_enabled", embeddings_enabled())),
            host=config.get("host", os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST)),
        )


def get_llm_service(settings: LLMSettings | dict | None = None) -> LLMService:
    """Create the LLM service that summarizes and embeds for mdindex.

    Args:
        settings: Resolved settings, or a config dict for ``LLMSettings.from_config``
                  (environment when None)

    Returns:
        LLMService: Ollama or Gemini service bound to the configured models
    """
    if not isinstance(settings, LLMSettings):
        settings = LLMSettings.from_config(settings)

    logger.debug(
        f"LLM settings: service={settings.service}, summaries={settings.summary_model}, "
        f"embeddings={settings.embedding_model} ({settings.dimensions}d)"
    )

    if settings.service == "gemini":
        return GeminiService(
            model=settings.summary_model,
            embedding_model=settings.embedding_model,
            dimensions=settings.dimensions,
        )
    return OllamaService(
        host=settings.host,
        model=settings.summary_model,
        embedding_model=settings.embedding_model,
    )
