"""Temporal client."""

from typing import Optional

from temporalio.client import Client

from relsync.core.config import settings
from relsync.core.logging import logger


class TemporalClient:
    """Lazily connected, process-wide Temporal client."""

    def __init__(self) -> None:
        """Initialize without connecting."""
        self._client: Optional[Client] = None

    async def get_client(self) -> Client:
        """Return the client, connecting on first use."""
        if self._client is None:
            logger.info(
                f"Connecting to Temporal at {settings.TEMPORAL_ADDRESS} "
                f"(namespace: {settings.TEMPORAL_NAMESPACE})"
            )
            self._client = await Client.connect(
                settings.TEMPORAL_ADDRESS,
                namespace=settings.TEMPORAL_NAMESPACE,
            )
        return self._client

    async def close(self) -> None:
        """Drop the client reference; the SDK closes connections on garbage collection."""
        self._client = None


temporal_client = TemporalClient()
