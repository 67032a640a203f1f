"""Unit test conftest for setting up test environment."""

import os

# Set minimal required environment variables before importing any relsync modules
# This prevents Settings from pointing at real services during test collection
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("LOCAL_DEVELOPMENT", "true")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("QDRANT_URL", "http://localhost:6333")
os.environ.setdefault("SYNC_DEFAULT_BATCH_DELAY_MS", "0")

from typing import Any, Dict  # noqa: E402

import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from relsync import crud, schemas  # noqa: E402
from relsync.db.session import AsyncSessionLocal  # noqa: E402
from relsync.models import Base  # noqa: E402

PRODUCTS_QUERY = (
    "SELECT code, name, description, price, updated_at FROM products "
    "ORDER BY code LIMIT {{limit}} OFFSET {{offset}}"
)


@pytest_asyncio.fixture
async def db_engine():
    """In-memory job store shared by every session of a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    AsyncSessionLocal.configure(bind=engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(db_engine):
    """Session on the test job store."""
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def make_datasource(db):
    """Factory inserting a datasource; keyword arguments override the defaults."""
    counter = {"n": 0}

    async def _make(**overrides: Any) -> schemas.Datasource:
        counter["n"] += 1
        fields: Dict[str, Any] = {
            "name": f"products-{counter['n']}",
            "type": "postgresql",
            "connection_config": {"url": "sqlite+aiosqlite:///:memory:"},
            "query_template": PRODUCTS_QUERY,
            "field_mapping": {"code": "code", "name": "title", "price": "price"},
            "id_field": "code",
            "embedding_fields": ["name", "description"],
            "collection": "products",
            "batch_size": 2,
            "batch_delay_ms": 0,
        }
        fields.update(overrides)
        db_obj = await crud.datasource.create(db, obj_in=schemas.DatasourceCreate(**fields))
        return schemas.Datasource.model_validate(db_obj)

    return _make
