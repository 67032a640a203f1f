"""Base vector store class."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from relsync.core.logging import ContextualLogger
from relsync.core.logging import logger as default_logger


class VectorPoint(BaseModel):
    """A point to write: deterministic id, dense vector and payload."""

    id: str
    vector: List[float]
    payload: Dict[str, Any] = Field(default_factory=dict)


class BaseVectorStore(ABC):
    """Common interface for vector stores."""

    def __init__(self):
        """Initialize the base vector store."""
        self._logger: Optional[ContextualLogger] = None

    @property
    def logger(self):
        """Get the logger for this store, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return default_logger

    def set_logger(self, logger: ContextualLogger) -> None:
        """Set a contextual logger for this store."""
        self._logger = logger

    @abstractmethod
    async def upsert(self, collection: str, points: List[VectorPoint]) -> None:
        """Insert or replace points by id."""

    @abstractmethod
    async def delete(self, collection: str, ids: List[str]) -> None:
        """Delete points by id; missing ids are ignored."""

    @abstractmethod
    async def ensure_collection(
        self, collection: str, vector_size: int, distance: str = "Cosine"
    ) -> None:
        """Create the collection if it does not exist."""
