"""Fixtures for API tests: the ASGI app over the in-memory job store."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest_asyncio

from relsync.api.main import app


@pytest_asyncio.fixture
async def queue():
    """Mocked Temporal dispatch."""
    with patch("relsync.core.sync_service.temporal_service") as mock_service:
        mock_service.start_sync_job_workflow = AsyncMock()
        mock_service.cancel_sync_job_workflow = AsyncMock(return_value=True)
        yield mock_service


@pytest_asyncio.fixture
async def client(db_engine, queue):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
