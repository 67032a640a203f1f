"""Rate limiters for API clients."""

from .openai import EmbeddingRateLimiter, get_embedding_rate_limiter

__all__ = ["EmbeddingRateLimiter", "get_embedding_rate_limiter"]
