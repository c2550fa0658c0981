"""Google Gemini LLM service implementation."""

import logging

from google import genai

from mdindex.constants import get_embedding_dimensions, get_embedding_model
from mdindex.llm.base import TaskType

logger = logging.getLogger(__name__)


class GeminiService:
    """Google Gemini LLM service implementation.

    This service uses the Google Gemini API to generate responses and embeddings.
    The API key is automatically retrieved from the GEMINI_API_KEY environment variable.
    """

    def __init__(
        self,
        model: str,
        embedding_model: str | None = None,
        dimensions: int | None = None,
    ) -> None:
        """Initialize the Gemini service.

        Args:
            model: The model that writes summaries (e.g., "gemini-2.5-flash")
            embedding_model: Default embedding model (falls back to EMBEDDING_MODEL env var
                             or the service-specific default)
            dimensions: Output dimensionality requested for embeddings
                        (falls back to EMBEDDING_DIMENSIONS)
        """
        self.model = model
        self.embedding_model = embedding_model
        self.dimensions = dimensions
        logger.info(f"🤖 Initializing GeminiService: model={model}")
        # The client gets the API key from the GEMINI_API_KEY environment variable
        self.client = genai.Client()

    async def generate_response(self, messages: list[dict]) -> str:
        """Generate a response using Gemini.

        Args:
            messages: List of message dictionaries with 'role' and 'content' keys.
                     Gemini receives the contents joined into a single prompt.

        Returns:
            str: The generated response content from the model.
        """
        logger.info(f"🗣️  Generating response with {self.model}")
        logger.debug(f"Messages: {len(messages)} messages")

        try:
            contents = "\n".join([msg.get("content", "") for msg in messages])
            response = self.client.models.generate_content(model=self.model, contents=contents)
            content = response.text or ""
            logger.info(f"✅ Response generated: {len(content)} characters")
            return content
        except Exception as e:
            logger.error(f"❌ Gemini API error: {e}", exc_info=True)
            raise

    def generate_embeddings(
        self,
        texts: list[str],
        model: str | None = None,
        task_type: TaskType | None = None,
    ) -> list[list[float]]:
        """Generate embeddings for a list of texts using Gemini.

        Args:
            texts: List of text strings to embed
            model: Optional embedding model name. If None, uses the service default.
            task_type: Gemini task type (RETRIEVAL_QUERY, RETRIEVAL_DOCUMENT, ...)

        Returns:
            list[list[float]]: List of embedding vectors
        """
        embedding_model = model or self.embedding_model or get_embedding_model("gemini")
        config = genai.types.EmbedContentConfig(
            task_type=task_type,
            output_dimensionality=self.dimensions or get_embedding_dimensions(),
        )
        embeddings = []

        for text in texts:
            try:
                response = self.client.models.embed_content(
                    model=embedding_model, contents=[text], config=config
                )
                embeddings.append(list(response.embeddings[0].values))
            except Exception as e:
                logger.error(f"❌ Gemini embedding error for text: {e}", exc_info=True)
                raise

        logger.debug(f"Generated {len(embeddings)} embeddings with {embedding_model}")
        return embeddings
