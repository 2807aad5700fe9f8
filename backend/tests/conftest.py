"""
SnackCart Backend — Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock database session (no real DB needed)
    ├── temp_storage: Temporary directory for file operations
    ├── sample_image_bytes: Minimal JPEG for upload tests
    ├── sample_snack_data: Field values matching the Snack model
    ├── make_snack: Factory for client-side Snack values
    └── test_client: HTTPX AsyncClient bound to the app, over a fresh SQLite schema
"""

import os
import tempfile

# Settings are read at import time, so the environment must be in place
# before anything from snackcart is imported.
_TEST_DIR = tempfile.mkdtemp(prefix="snackcart_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["UPLOADS_ROOT"] = os.path.join(_TEST_DIR, "uploads")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["RATE_LIMIT_WRITE_REQUESTS"] = "100000"

import uuid  # noqa: E402
from datetime import datetime, timezone  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_snack(mock_db_session):
            mock_db_session.execute.return_value.scalar_one_or_none.return_value = snack
            result = await snack_service.get_snack(mock_db_session, str(snack.id))
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    """A fresh uploads directory for each test (pytest cleans it up)."""
    storage_dir = tmp_path / "uploads"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG bytes: SOI marker + JFIF header + EOI marker.

    Not a viewable photo, but enough for extension, size and magic-byte checks.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def sample_snack_data():
    """Field values matching the Snack ORM model."""
    return {
        "id": uuid.uuid4(),
        "name": "Chips",
        "price": 50.0,
        "category": "Vegetarian",
        "img": "/uploads/2026/10/17/chips.jpg",
        "created_at": datetime.now(timezone.utc),
    }


@pytest.fixture
def make_snack():
    """Factory for client-side Snack values."""
    from snackcart.client.state import Snack

    def _make(snack_id="a", name="Chips", price=50, category="Vegetarian", img="/uploads/chips.jpg"):
        return Snack(id=snack_id, name=name, price=price, category=category, img=img)

    return _make


@pytest_asyncio.fixture
async def test_client():
    """
    HTTPX AsyncClient routed straight into the FastAPI app.

    The snacks table is created before the test and dropped after it, so
    every test starts from an empty catalog.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from snackcart.database import create_tables, drop_tables, engine
    from snackcart.main import app

    await create_tables()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await drop_tables()
    # Connections are bound to this test's event loop
    await engine.dispose()
