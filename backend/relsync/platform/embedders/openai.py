"""OpenAI dense embedder."""

import asyncio
from typing import List, Optional

import tiktoken
from openai import AsyncOpenAI

from relsync.core.config import settings
from relsync.core.logging import ContextualLogger
from relsync.core.logging import logger as default_logger
from relsync.platform.rate_limiters.openai import get_embedding_rate_limiter
from relsync.platform.sync.exceptions import EmbeddingError

from ._base import BaseEmbedder

_MODELS_BY_DIMENSIONS = {
    3072: "text-embedding-3-large",
    1536: "text-embedding-3-small",
}


class DenseEmbedder(BaseEmbedder):
    """OpenAI dense embedder.

    Features:
    - Model selected from the vector size (3072 large, 1536 small)
    - Sub-batches of 200 texts so long batches yield to heartbeats
    - Token-limit aware splitting (300K tokens/request)
    - Rate limiting shared by every job in the worker
    - Fail-fast: any API error raises EmbeddingError
    """

    MAX_TOKENS_PER_TEXT = 8192
    MAX_BATCH_SIZE = 2048
    MAX_TOKENS_PER_REQUEST = 300000
    MAX_TEXTS_PER_SUBBATCH = 200

    def __init__(self, vector_size: Optional[int] = None, client: Optional[AsyncOpenAI] = None):
        """Initialize the embedder.

        Args:
            vector_size: Output dimensions; defaults to EMBEDDING_DIMENSIONS
            client: Preconfigured client (tests)

        Raises:
            EmbeddingError: No API key configured and no client given
        """
        self.VECTOR_DIMENSIONS = vector_size or settings.EMBEDDING_DIMENSIONS
        self.MODEL_NAME = _MODELS_BY_DIMENSIONS.get(
            self.VECTOR_DIMENSIONS, settings.EMBEDDING_MODEL
        )

        if client is None:
            if not settings.OPENAI_API_KEY:
                raise EmbeddingError("OPENAI_API_KEY required for dense embeddings")
            client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY, timeout=120.0, max_retries=2)
        self._client = client
        self._rate_limiter = get_embedding_rate_limiter()
        self._tokenizer = tiktoken.get_encoding("cl100k_base")

    def _truncate(self, text: str) -> str:
        tokens = self._tokenizer.encode(text, allowed_special="all")
        if len(tokens) <= self.MAX_TOKENS_PER_TEXT:
            return text
        return self._tokenizer.decode(tokens[: self.MAX_TOKENS_PER_TEXT])

    async def embed_many(
        self, texts: List[str], logger: Optional[ContextualLogger] = None
    ) -> List[List[float]]:
        """Embed batch of texts.

        Returns exactly len(texts) vectors. Raises EmbeddingError on any error.
        """
        log = logger or default_logger
        if not texts:
            return []

        for i, text in enumerate(texts):
            if not text or not text.strip():
                raise EmbeddingError(f"Empty text at index {i}")

        if len(texts) > self.MAX_TEXTS_PER_SUBBATCH:
            all_embeddings: List[List[float]] = []
            for i in range(0, len(texts), self.MAX_TEXTS_PER_SUBBATCH):
                sub_batch = texts[i : i + self.MAX_TEXTS_PER_SUBBATCH]
                all_embeddings.extend(await self.embed_many(sub_batch, logger))
                # Yield to the event loop so the heartbeat task runs
                await asyncio.sleep(0)
            return all_embeddings

        texts = [self._truncate(t) for t in texts]
        total_tokens = sum(
            len(self._tokenizer.encode(text, allowed_special="all")) for text in texts
        )
        log.debug(f"Embedding {len(texts)} texts with {total_tokens} total tokens")

        if total_tokens > self.MAX_TOKENS_PER_REQUEST and len(texts) > 1:
            mid = len(texts) // 2
            first_half = await self.embed_many(texts[:mid], logger)
            second_half = await self.embed_many(texts[mid:], logger)
            return first_half + second_half

        return await self._embed_batch(texts, log)

    async def _embed_batch(self, batch: List[str], log: ContextualLogger) -> List[List[float]]:
        """Embed a single request's worth of texts.

        Raises:
            EmbeddingError: On any API error or malformed response
        """
        try:
            await self._rate_limiter.acquire()
            response = await self._client.embeddings.create(
                input=batch,
                model=self.MODEL_NAME,
                dimensions=self.VECTOR_DIMENSIONS,
                encoding_format="float",
            )
        except Exception as e:
            log.error(f"OpenAI embedding API error: {e}")
            raise EmbeddingError(f"OpenAI embedding failed: {e}") from e

        embeddings = [item.embedding for item in sorted(response.data, key=lambda d: d.index)]

        if len(embeddings) != len(batch):
            raise EmbeddingError(
                f"OpenAI returned {len(embeddings)} embeddings for {len(batch)} texts"
            )
        if embeddings and len(embeddings[0]) != self.VECTOR_DIMENSIONS:
            raise EmbeddingError(
                f"OpenAI returned {len(embeddings[0])}-dim vectors, "
                f"expected {self.VECTOR_DIMENSIONS}"
            )
        return embeddings
