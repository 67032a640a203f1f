"""Shared fixtures for sync pipeline tests.

The source is a real SQLite file read through the SQL connector; the embedder
and vector store are in-memory fakes.
"""

from typing import Any, Dict, List, Optional

import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from relsync import schemas
from relsync.core.logging import LoggerConfigurator
from relsync.core.shared_models import DatasourceType
from relsync.core.sync_job_service import sync_job_service
from relsync.platform.destinations._base import BaseVectorStore, VectorPoint
from relsync.platform.destinations.qdrant import CollectionNotFoundError
from relsync.platform.embedders._base import BaseEmbedder
from relsync.platform.sources.sql import SqlSourceConnector
from relsync.platform.sync.cancellation import CancellationToken
from relsync.platform.sync.context import SyncContext


class FakeEmbedder(BaseEmbedder):
    """Returns a 4-dim vector per text; `fail` makes every call raise."""

    VECTOR_DIMENSIONS = 4

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[List[str]] = []

    async def embed_many(self, texts, logger=None):
        self.calls.append(list(texts))
        if self.fail:
            raise RuntimeError("embedding service unavailable")
        return [[float(len(t)), 0.0, 0.0, 1.0] for t in texts]


class InMemoryVectorStore(BaseVectorStore):
    """Points keyed by collection and id."""

    def __init__(self, collections: Optional[List[str]] = None, fail_upsert: bool = False):
        super().__init__()
        self.collections: Dict[str, Dict[str, VectorPoint]] = {
            name: {} for name in (collections or [])
        }
        self.fail_upsert = fail_upsert
        self.created: List[str] = []

    async def upsert(self, collection, points):
        if self.fail_upsert:
            raise RuntimeError("qdrant unavailable")
        if collection not in self.collections:
            raise CollectionNotFoundError(f"Collection '{collection}' not found")
        for point in points:
            self.collections[collection][point.id] = point

    async def delete(self, collection, ids):
        for point_id in ids:
            self.collections.get(collection, {}).pop(point_id, None)

    async def ensure_collection(self, collection, vector_size, distance="Cosine"):
        if collection not in self.collections:
            self.collections[collection] = {}
            self.created.append(collection)

    def points(self, collection: str = "products") -> Dict[str, VectorPoint]:
        return self.collections.get(collection, {})


class SourceTable:
    """A `products` table in a SQLite file."""

    def __init__(self, url: str):
        self.url = url
        self.config = {"url": url}
        self._engine = create_async_engine(url)

    async def create(self) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(
                text(
                    "CREATE TABLE products ("
                    "code TEXT PRIMARY KEY, name TEXT, description TEXT, "
                    "price REAL, updated_at TEXT)"
                )
            )

    async def insert(self, *rows: Any) -> None:
        """Insert rows; a bare string is a code with a generated name."""
        async with self._engine.begin() as conn:
            for row in rows:
                if isinstance(row, str):
                    row = {"code": row}
                values = {
                    "name": f"Product {row['code']}",
                    "description": None,
                    "price": 1.0,
                    "updated_at": "2024-01-01 00:00:00",
                }
                values.update(row)
                await conn.execute(
                    text(
                        "INSERT INTO products (code, name, description, price, updated_at) "
                        "VALUES (:code, :name, :description, :price, :updated_at)"
                    ),
                    values,
                )

    async def update(self, code: str, **values: Any) -> None:
        assignments = ", ".join(f"{column} = :{column}" for column in values)
        async with self._engine.begin() as conn:
            await conn.execute(
                text(f"UPDATE products SET {assignments} WHERE code = :code"),
                {"code": code, **values},
            )

    async def delete(self, code: str) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(text("DELETE FROM products WHERE code = :code"), {"code": code})

    async def dispose(self) -> None:
        await self._engine.dispose()


@pytest_asyncio.fixture
async def source(tmp_path):
    """Empty products table."""
    table = SourceTable(f"sqlite+aiosqlite:///{tmp_path / 'source.db'}")
    await table.create()
    yield table
    await table.dispose()


@pytest_asyncio.fixture
async def connector():
    """SQL connector; its engines are disposed after the test."""
    sql = SqlSourceConnector(DatasourceType.POSTGRESQL)
    yield sql
    await sql.close()


@pytest_asyncio.fixture
async def make_context(connector):
    """Build a SyncContext; the job is re-read so its counters are current."""

    async def _make(
        job: schemas.SyncJob,
        datasource: schemas.Datasource,
        embedder: Optional[BaseEmbedder] = None,
        vector_store: Optional[BaseVectorStore] = None,
        codes: Optional[List[str]] = None,
        progress: Optional[List[Any]] = None,
    ) -> SyncContext:
        job = await sync_job_service.get(job.id)
        return SyncContext(
            sync_job=job,
            datasource=datasource,
            source=connector,
            embedder=embedder or FakeEmbedder(),
            vector_store=vector_store or InMemoryVectorStore(["products"]),
            job_service=sync_job_service,
            cancellation=CancellationToken(job.id, sync_job_service.get_status),
            logger=LoggerConfigurator.configure_logger(
                "relsync.tests", dimensions={"sync_job_id": str(job.id)}
            ),
            report_progress=progress.append if progress is not None else None,
            codes=codes,
        )

    return _make


@pytest_asyncio.fixture
async def embedder():
    return FakeEmbedder()


@pytest_asyncio.fixture
async def vector_store():
    """Store with an existing `products` collection."""
    return InMemoryVectorStore(["products"])


@pytest_asyncio.fixture
async def source_datasource(make_datasource, source):
    """Factory for datasources reading the test products table."""

    async def _make(**overrides: Any) -> schemas.Datasource:
        return await make_datasource(connection_config=source.config, **overrides)

    return _make
