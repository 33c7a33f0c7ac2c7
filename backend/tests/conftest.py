"""
PhotoFiler Backend: Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set before any photofiler import so the
       global settings, engine and singletons point at throwaway locations.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── test_settings: Settings whose storage roots live under tmp_path
    ├── sample_image_bytes / photo_file: a tiny JPEG on disk
    ├── fixed_clock: 2024-01-01 09:30:15.123456
    ├── session_factory / handle_store: SQLite store in tmp_path
    ├── orchestrator: production wiring over the temp roots
    └── test_client: HTTPX AsyncClient with the orchestrator injected
"""

import os
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before any photofiler import
_SESSION_ROOT = tempfile.mkdtemp(prefix="photofiler_test_")
os.environ["PHOTOFILER_DATABASE_URL"] = f"sqlite+aiosqlite:///{_SESSION_ROOT}/test.db"
os.environ["PHOTOFILER_APP_PRIVATE_ROOT"] = f"{_SESSION_ROOT}/app_private"
os.environ["PHOTOFILER_MEDIA_LIBRARY_ROOT"] = f"{_SESSION_ROOT}/media_library"
os.environ["PHOTOFILER_DOCUMENTS_ROOT"] = f"{_SESSION_ROOT}/documents"
os.environ["PHOTOFILER_EXPORT_ROOT"] = f"{_SESSION_ROOT}/exports"
os.environ["PHOTOFILER_CACHE_ROOT"] = f"{_SESSION_ROOT}/cache"
os.environ["PHOTOFILER_IO_RETRY_MIN_WAIT"] = "0"
os.environ["PHOTOFILER_IO_RETRY_MAX_WAIT"] = "0"
os.environ["PHOTOFILER_LOG_LEVEL"] = "WARNING"

from photofiler.config import Settings, settings  # noqa: E402
from photofiler.database import create_engine, create_session_factory, init_models  # noqa: E402
from photofiler.services.handle_store import DirectoryHandleStore  # noqa: E402
from photofiler.services.save_orchestrator import build_orchestrator  # noqa: E402

FIXED_NOW = datetime(2024, 1, 1, 9, 30, 15, 123456)
DEVICE = "device"


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(tmp_path):
    """
    Settings with every storage root under tmp_path.

    The export root stays the session-wide one, because the export download
    route reads it from the global settings.
    """
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path}/photofiler.db",
        app_private_root=str(tmp_path / "app_private"),
        media_library_root=str(tmp_path / "media_library"),
        documents_root=str(tmp_path / "documents"),
        export_root=settings.export_root,
        cache_root=str(tmp_path / "cache"),
        device_model=DEVICE,
        platform="android",
        android_api_level=34,
    )


@pytest.fixture
def sample_image_bytes():
    """Minimal JPEG: Start of Image (FFD8) + JFIF marker + End of Image (FFD9)."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def photo_file(tmp_path, sample_image_bytes) -> Path:
    """A captured photo waiting to be filed."""
    capture_dir = tmp_path / "capture"
    capture_dir.mkdir()
    path = capture_dir / "IMG_0001.jpg"
    path.write_bytes(sample_image_bytes)
    return path


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def denying_permissions():
    """Permission gateway that refuses everything."""
    gateway = MagicMock()
    gateway.request_media_permission = AsyncMock(return_value=False)
    gateway.request_legacy_storage_permission = AsyncMock(return_value=False)
    return gateway


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Session factory over a fresh SQLite database with tables created."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path}/handles.db")
    await init_models(bind=engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def handle_store(session_factory):
    return DirectoryHandleStore(session_factory=session_factory)


@pytest.fixture
def orchestrator(test_settings, handle_store, fixed_clock):
    return build_orchestrator(config=test_settings, store=handle_store, clock=fixed_clock)


@pytest.fixture
def root_dir(tmp_path) -> Path:
    """A user folder that can be selected as the root folder."""
    path = tmp_path / "Pictures" / "Sorted"
    path.mkdir(parents=True)
    return path


@pytest_asyncio.fixture
async def test_client(orchestrator):
    """
    HTTPX AsyncClient talking to the app through ASGITransport, with the
    orchestrator dependency replaced by the temp-rooted one.
    """
    from photofiler.database import dispose_engine
    from photofiler.main import app
    from photofiler.services.save_orchestrator import get_save_orchestrator

    app.dependency_overrides[get_save_orchestrator] = lambda: orchestrator
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    # Pooled connections belong to this test's event loop
    await dispose_engine()
