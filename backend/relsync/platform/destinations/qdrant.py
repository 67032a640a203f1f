"""Qdrant vector store.

Clients are cached per URL so datasources pointing at different Qdrant
deployments do not share a connection.
"""

from typing import Dict, List, Optional

from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models as rest
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from relsync.core.config import settings
from relsync.platform.destinations._base import BaseVectorStore, VectorPoint
from relsync.platform.sync.exceptions import VectorStoreError

HNSW_M = 16
HNSW_EF_CONSTRUCT = 100
INDEXING_THRESHOLD = 20000


class CollectionNotFoundError(VectorStoreError):
    """The target collection does not exist."""


def _is_not_found(error: UnexpectedResponse) -> bool:
    if error.status_code == 404:
        return True
    return "not found" in str(error).lower() and "collection" in str(error).lower()


# Transport failures (connection reset, timeouts) are retried; HTTP errors are not
_transport_retry = retry(
    retry=retry_if_exception_type(ResponseHandlingException),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    reraise=True,
)


class QdrantVectorStore(BaseVectorStore):
    """Qdrant implementation of the vector store interface."""

    def __init__(self, url: str, api_key: Optional[str] = None, client=None):
        """Initialize the store.

        Args:
            url: Qdrant base URL
            api_key: Optional API key
            client: Preconfigured AsyncQdrantClient (tests)
        """
        super().__init__()
        self.url = url
        self.client = client or AsyncQdrantClient(
            url=url,
            api_key=api_key,
            timeout=settings.QDRANT_TIMEOUT_SECONDS,
        )

    @_transport_retry
    async def _upsert(self, collection: str, points: List[rest.PointStruct]) -> None:
        await self.client.upsert(collection_name=collection, points=points, wait=True)

    async def upsert(self, collection: str, points: List[VectorPoint]) -> None:
        """Upsert points.

        Raises:
            CollectionNotFoundError: The collection does not exist
            VectorStoreError: Any other write failure
        """
        if not points:
            return
        structs = [rest.PointStruct(id=p.id, vector=p.vector, payload=p.payload) for p in points]
        ids = [p.id for p in points]
        try:
            await self._upsert(collection, structs)
        except UnexpectedResponse as e:
            if _is_not_found(e):
                raise CollectionNotFoundError(
                    f"Collection '{collection}' not found", record_ids=ids
                ) from e
            raise VectorStoreError(f"Qdrant upsert failed: {e}", record_ids=ids) from e
        except Exception as e:
            raise VectorStoreError(f"Qdrant upsert failed: {e}", record_ids=ids) from e
        self.logger.debug(f"Upserted {len(points)} points to {collection}")

    @_transport_retry
    async def _delete(self, collection: str, ids: List[str]) -> None:
        await self.client.delete(
            collection_name=collection,
            points_selector=rest.PointIdsList(points=ids),
            wait=True,
        )

    async def delete(self, collection: str, ids: List[str]) -> None:
        """Delete points by id.

        Deleting from a missing collection is a no-op.

        Raises:
            VectorStoreError: The delete failed
        """
        if not ids:
            return
        try:
            await self._delete(collection, ids)
        except UnexpectedResponse as e:
            if _is_not_found(e):
                self.logger.warning(f"Delete skipped: collection '{collection}' not found")
                return
            raise VectorStoreError(f"Qdrant delete failed: {e}", record_ids=ids) from e
        except Exception as e:
            raise VectorStoreError(f"Qdrant delete failed: {e}", record_ids=ids) from e

    async def ensure_collection(
        self, collection: str, vector_size: int, distance: str = "Cosine"
    ) -> None:
        """Create the collection with HNSW defaults if missing.

        Raises:
            VectorStoreError: The collection could not be inspected or created
        """
        try:
            if await self.client.collection_exists(collection_name=collection):
                return
            self.logger.info(
                f"Creating Qdrant collection '{collection}' ({vector_size} dims, {distance})"
            )
            await self.client.create_collection(
                collection_name=collection,
                vectors_config=rest.VectorParams(
                    size=vector_size, distance=rest.Distance(distance)
                ),
                hnsw_config=rest.HnswConfigDiff(m=HNSW_M, ef_construct=HNSW_EF_CONSTRUCT),
                optimizers_config=rest.OptimizersConfigDiff(
                    indexing_threshold=INDEXING_THRESHOLD
                ),
            )
        except UnexpectedResponse as e:
            # Another job created it concurrently
            if e.status_code == 409:
                return
            raise VectorStoreError(f"Failed to create collection '{collection}': {e}") from e
        except Exception as e:
            raise VectorStoreError(f"Failed to create collection '{collection}': {e}") from e

    async def close(self) -> None:
        """Close the underlying client."""
        await self.client.close()


_stores: Dict[str, QdrantVectorStore] = {}


def get_vector_store(url: Optional[str] = None) -> QdrantVectorStore:
    """Return the cached store for a URL (defaults to QDRANT_URL)."""
    key = url or settings.QDRANT_URL
    if key not in _stores:
        _stores[key] = QdrantVectorStore(key, api_key=settings.QDRANT_API_KEY)
    return _stores[key]


async def close_vector_stores() -> None:
    """Close all cached clients."""
    for store in list(_stores.values()):
        await store.close()
    _stores.clear()
