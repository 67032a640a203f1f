"""Tests for the OpenAI dense embedder."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from relsync.platform.embedders.openai import DenseEmbedder
from relsync.platform.sync.exceptions import EmbeddingError


class _Tokenizer:
    """One token per character."""

    def encode(self, text, allowed_special=None):
        return list(text)

    def decode(self, tokens):
        return "".join(tokens)


def _response(vectors):
    # Returned out of order; the embedder sorts by index
    data = [SimpleNamespace(index=i, embedding=v) for i, v in enumerate(vectors)]
    return SimpleNamespace(data=list(reversed(data)))


@pytest.fixture
def client():
    mock_client = MagicMock()
    mock_client.embeddings.create = AsyncMock()
    return mock_client


@pytest.fixture
def embedder(client):
    with patch("relsync.platform.embedders.openai.tiktoken.get_encoding") as get_encoding:
        get_encoding.return_value = _Tokenizer()
        instance = DenseEmbedder(vector_size=3, client=client)
    instance._rate_limiter = MagicMock(acquire=AsyncMock())
    return instance


@pytest.mark.asyncio
async def test_embed_many_returns_vectors_in_input_order(embedder, client):
    client.embeddings.create.return_value = _response([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])

    vectors = await embedder.embed_many(["first", "second"])

    assert vectors == [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]
    kwargs = client.embeddings.create.await_args.kwargs
    assert kwargs["input"] == ["first", "second"]
    assert kwargs["dimensions"] == 3


def test_model_follows_vector_size(client):
    with patch("relsync.platform.embedders.openai.tiktoken.get_encoding"):
        assert DenseEmbedder(vector_size=3072, client=client).MODEL_NAME == "text-embedding-3-large"
        assert DenseEmbedder(vector_size=1536, client=client).MODEL_NAME == "text-embedding-3-small"


@pytest.mark.asyncio
async def test_empty_text_is_rejected(embedder, client):
    with pytest.raises(EmbeddingError):
        await embedder.embed_many(["ok", "   "])

    client.embeddings.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_api_error_raises_embedding_error(embedder, client):
    client.embeddings.create.side_effect = RuntimeError("429 Too Many Requests")

    with pytest.raises(EmbeddingError, match="429"):
        await embedder.embed_many(["text"])


@pytest.mark.asyncio
async def test_wrong_vector_count_raises(embedder, client):
    client.embeddings.create.return_value = _response([[1.0, 0.0, 0.0]])

    with pytest.raises(EmbeddingError):
        await embedder.embed_many(["a", "b"])


@pytest.mark.asyncio
async def test_wrong_dimensions_raise(embedder, client):
    client.embeddings.create.return_value = _response([[1.0, 0.0]])

    with pytest.raises(EmbeddingError):
        await embedder.embed_many(["a"])


@pytest.mark.asyncio
async def test_long_texts_are_truncated(embedder, client):
    client.embeddings.create.return_value = _response([[1.0, 0.0, 0.0]])

    await embedder.embed_many(["x" * (DenseEmbedder.MAX_TOKENS_PER_TEXT + 10)])

    sent = client.embeddings.create.await_args.kwargs["input"]
    assert len(sent[0]) == DenseEmbedder.MAX_TOKENS_PER_TEXT


@pytest.mark.asyncio
async def test_large_batches_are_split(embedder, client):
    client.embeddings.create.side_effect = lambda **kwargs: _response(
        [[float(i), 0.0, 0.0] for i in range(len(kwargs["input"]))]
    )
    texts = [f"text {i}" for i in range(DenseEmbedder.MAX_TEXTS_PER_SUBBATCH + 5)]

    vectors = await embedder.embed_many(texts)

    assert len(vectors) == len(texts)
    assert client.embeddings.create.await_count == 2
