"""
PetProject Backend - Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── store: Empty in-memory document store
    ├── yielding_store: In-memory store that yields to the event loop after reads
    ├── temp_storage: Temporary directory for blob store tests
    ├── local_blobs: LocalBlobStore rooted in temp_storage
    ├── sample_image_bytes: Fake image content for upload tests
    ├── mock_llm: AsyncMock standing in for the Gemini client
    └── test_client: HTTPX AsyncClient wired to the app and `store`
"""

import asyncio
import os
import tempfile

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from unittest.mock import AsyncMock


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before any petproject import: settings and the service singletons
# are built at import time
os.environ["DOCUMENT_STORE_BACKEND"] = "memory"
os.environ["BLOB_STORE_BACKEND"] = "local"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="petproject_test_")
os.environ["MEDIA_BASE_URL"] = "http://test/media"
os.environ["LOG_LEVEL"] = "WARNING"

from petproject.database import get_document_store  # noqa: E402
from petproject.services.blob_service import LocalBlobStore  # noqa: E402
from petproject.store.memory import MemoryDocumentStore  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def store():
    """
    A fresh, empty in-memory document store.

    Usage:
        async def test_follow(store):
            await social_service.follow(store, "u1", "u2")
    """
    return MemoryDocumentStore()


class YieldingMemoryStore(MemoryDocumentStore):
    """Gives other tasks a turn after every read, so read-then-write calls interleave."""

    async def get(self, path):
        snapshot = await super().get(path)
        await asyncio.sleep(0)
        return snapshot


@pytest.fixture
def yielding_store():
    """
    Usage:
        await asyncio.gather(claim(yielding_store, "u1", "a"), claim(yielding_store, "u1", "b"))
    """
    return YieldingMemoryStore()


@pytest.fixture
def temp_storage(tmp_path):
    """A fresh temporary directory for each test (cleaned up by pytest)."""
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def local_blobs(temp_storage):
    return LocalBlobStore(storage_root=temp_storage, base_url="http://test/media")


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG bytes: Start of Image (FFD8) + JFIF marker + End of Image (FFD9).
    Not a real photograph, but enough for type and size validation.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def mock_llm():
    """
    Stand-in for gemini_service. Set `mock_llm.generate.return_value` to the
    text the model should "answer" with.
    """
    llm = AsyncMock()
    llm.generate = AsyncMock(return_value='{"answer": "Keep them hydrated."}')
    llm.health_check = AsyncMock(return_value=True)
    return llm


@pytest_asyncio.fixture
async def test_client(store):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport,
    with the document store dependency pointed at the `store` fixture.

    Usage:
        async def test_get_me(test_client, store):
            response = await test_client.get("/api/me", headers={"X-Account-ID": "u1"})
    """
    from petproject.main import app

    app.dependency_overrides[get_document_store] = lambda: store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
