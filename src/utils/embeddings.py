"""
Embeddings utility.

Generate embeddings for review text and search queries.
"""

import logging
from typing import List
import google.generativeai as genai

from src.models.errors import EmbeddingError

logger = logging.getLogger(__name__)

DOCUMENT_TASK = "retrieval_document"
QUERY_TASK = "retrieval_query"


class EmbeddingGenerator:
    """
    Generates text embeddings for the vector search backend.

    Uses Google's text-embedding models. Reviews are embedded as retrieval
    documents and queries as retrieval queries.
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = "models/text-embedding-004",
        embedding_dimensions: int = 768,
        max_retries: int = 3
    ):
        """
        Initialize embedding generator.

        Args:
            api_key: Google API key
            model_name: Embedding model to use
            embedding_dimensions: Output dimensions (768 for text-embedding-004)
            max_retries: Attempts per text before giving up
        """
        self.model_name = model_name
        self.embedding_dimensions = embedding_dimensions
        self.max_retries = max_retries

        # Configure Gemini
        genai.configure(api_key=api_key)

        logger.info(f"Initialized EmbeddingGenerator with model={model_name}, dims={embedding_dimensions}")

    def generate(self, text: str, task_type: str = DOCUMENT_TASK) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Input text to embed
            task_type: Gemini task type (retrieval_document or retrieval_query)

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            EmbeddingError: If the API keeps failing or returns an invalid vector
        """
        if not text or len(text.strip()) == 0:
            raise ValueError("Cannot generate embedding for empty text")

        last_error = None
        for attempt in range(self.max_retries):
            try:
                result = genai.embed_content(
                    model=self.model_name,
                    content=text,
                    task_type=task_type
                )
                embedding = result['embedding']
                self._validate(embedding)
                return embedding

            except EmbeddingError:
                raise
            except Exception as e:
                last_error = e
                logger.error(f"Embedding API error (attempt {attempt + 1}): {e}")

        raise EmbeddingError(
            f"Failed to generate embedding after {self.max_retries} attempts: {last_error}"
        )

    def generate_query(self, text: str) -> List[float]:
        """Embed a search query."""
        return self.generate(text, task_type=QUERY_TASK)

    def generate_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts.

        Args:
            texts: List of input texts

        Returns:
            List of embedding vectors aligned with `texts`

        Raises:
            EmbeddingError: If any text fails. Vectors occupy slots, so a
                partial batch is never returned.
        """
        embeddings = []
        for position, text in enumerate(texts):
            try:
                embeddings.append(self.generate(text))
            except ValueError as e:
                raise EmbeddingError(f"Cannot embed item {position}: {e}") from e

        return embeddings

    def _validate(self, embedding: List[float]) -> None:
        # Validate dimensions
        if len(embedding) != self.embedding_dimensions:
            raise EmbeddingError(
                f"Expected {self.embedding_dimensions} dimensions, got {len(embedding)}"
            )

        # Validate non-zero (API failure check)
        if sum(abs(x) for x in embedding) < 0.01:
            raise EmbeddingError("Embedding is all zeros (possible API failure)")
