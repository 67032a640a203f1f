"""Vector store destinations."""

from relsync.platform.destinations._base import BaseVectorStore, VectorPoint
from relsync.platform.destinations.qdrant import (
    CollectionNotFoundError,
    QdrantVectorStore,
    get_vector_store,
)

__all__ = [
    "BaseVectorStore",
    "CollectionNotFoundError",
    "QdrantVectorStore",
    "VectorPoint",
    "get_vector_store",
]
