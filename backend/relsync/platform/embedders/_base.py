"""Base embedder interface for all embedder implementations."""

from abc import ABC, abstractmethod
from typing import List, Optional

from relsync.core.logging import ContextualLogger


class BaseEmbedder(ABC):
    """Base class for embedders.

    Embedders never skip texts: the result has exactly one vector per input,
    in input order, or the call raises EmbeddingError.
    """

    VECTOR_DIMENSIONS: int

    async def embed(self, text: str, logger: Optional[ContextualLogger] = None) -> List[float]:
        """Embed a single text.

        Args:
            text: Non-empty text
            logger: Logger carrying the job's dimensions

        Returns:
            Embedding vector
        """
        vectors = await self.embed_many([text], logger)
        return vectors[0]

    @abstractmethod
    async def embed_many(
        self, texts: List[str], logger: Optional[ContextualLogger] = None
    ) -> List[List[float]]:
        """Embed batch of texts.

        Args:
            texts: List of text strings to embed (none may be empty)
            logger: Logger carrying the job's dimensions

        Returns:
            List of embeddings (exactly len(texts), no None values)

        Raises:
            EmbeddingError: On any failure (API errors, empty texts, etc.)
        """
