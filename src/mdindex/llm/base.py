"""Base protocol for LLM and embedding providers."""

from typing import Literal, Protocol

TaskType = Literal["RETRIEVAL_QUERY", "RETRIEVAL_DOCUMENT", "SEMANTIC_SIMILARITY"]


class LLMService(Protocol):
    """Protocol defining the interface for LLM services.

    Providers supply two primitives: free-text generation (used for
    summarization) and embedding generation.
    """

    async def generate_response(self, messages: list[dict]) -> str:
        """Generate a response from the LLM based on the provided messages.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.
                     Example: [{"role": "user", "content": "Hello"}]

        Returns:
            str: The generated response content from the LLM.
        """
        ...

    def generate_embeddings(
        self,
        texts: list[str],
        model: str | None = None,
        task_type: TaskType | None = None,
    ) -> list[list[float]]:
        """Generate embeddings for a list of texts.

        Args:
            texts: List of text strings to embed
            model: Optional embedding model name. If None, uses a default for the service.
            task_type: Optional hint describing how the vectors will be used

        Returns:
            list[list[float]]: List of embedding vectors
        """
        ...
