"""Ollama LLM service implementation."""

import logging

import ollama

from mdindex.constants import get_embedding_model
from mdindex.llm.base import TaskType

logger = logging.getLogger(__name__)

# nomic-embed-text expects the task to be spelled out as a text prefix
NOMIC_TASK_PREFIXES = {
    "RETRIEVAL_QUERY": "search_query: ",
    "RETRIEVAL_DOCUMENT": "search_document: ",
    "SEMANTIC_SIMILARITY": "clustering: ",
}


class OllamaService:
    """Ollama LLM service implementation.

    This service uses the Ollama API to generate responses and embeddings
    from local models.
    """

    def __init__(self, host: str, model: str, embedding_model: str | None = None) -> None:
        """Initialize the Ollama service.

        Args:
            host: The Ollama server host URL (e.g., "http://localhost:11434")
            model: The chat model that writes summaries (e.g., "llama3")
            embedding_model: Default embedding model (falls back to EMBEDDING_MODEL env var
                             or the service-specific default)
        """
        self.host = host
        self.model = model
        self.embedding_model = embedding_model
        logger.info(f"🤖 Initializing OllamaService: host={host}, model={model}")
        self.client = ollama.Client(host=host)

    async def generate_response(self, messages: list[dict]) -> str:
        """Generate a response using Ollama.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.

        Returns:
            str: The generated response content from the model.
        """
        logger.info(f"🗣️  Generating response with {self.model}")
        logger.debug(f"Messages: {len(messages)} messages")

        try:
            response = self.client.chat(model=self.model, messages=messages)
            content = response.message.content or ""
            logger.info(f"✅ Response generated: {len(content)} characters")
            return content
        except Exception as e:
            logger.error(f"❌ Ollama API error: {e}", exc_info=True)
            raise

    def generate_embeddings(
        self,
        texts: list[str],
        model: str | None = None,
        task_type: TaskType | None = None,
    ) -> list[list[float]]:
        """Generate embeddings for a list of texts using Ollama.

        Args:
            texts: List of text strings to embed
            model: Optional embedding model name. If None, uses the service default.
            task_type: Optional task hint; applied as a prompt prefix for nomic models

        Returns:
            list[list[float]]: List of embedding vectors
        """
        embedding_model = model or self.embedding_model or get_embedding_model("ollama")
        prefix = ""
        if task_type and embedding_model.startswith("nomic-embed"):
            prefix = NOMIC_TASK_PREFIXES.get(task_type, "")

        embeddings = []
        for text in texts:
            response = self.client.embed(model=embedding_model, input=prefix + text)
            embeddings.append(response["embeddings"][0])

        logger.debug(f"Generated {len(embeddings)} embeddings with {embedding_model}")
        return embeddings
