"""Test configuration for API tests."""

from __future__ import annotations

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from oracle_kb_api.main import create_app


@pytest.fixture
def mock_context():
    """Mock SearchContext with healthy backends."""
    context = MagicMock()
    context.stats = AsyncMock(
        return_value={
            "documents": 12,
            "by_type": {"principle": 5, "learning": 7},
            "database": "healthy",
            "chroma_status": "connected",
            "chroma_state": "connected",
            "vector_count": 12,
            "collection": "oracle_knowledge",
        }
    )
    context.search_log.recent = AsyncMock(return_value=[])
    return context


@pytest.fixture
def app(mock_context):
    """Application with the mock context on app.state.

    ASGITransport does not run the lifespan, so the context is installed
    directly instead of being opened against a real database.
    """
    application = create_app()
    application.state.search_context = mock_context
    return application


@pytest.fixture
async def app_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with a mocked search context."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
