"""
Pytest configuration and fixtures for event gallery tests.

Every test gets its own temporary metadata document, SQLite database and
in-memory blob store. Nothing touches the network.
"""
import os
import sys
import tempfile
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

# Add app to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Keep the app's import-time setup (static mount, json file) out of the repo
_TEST_DATA = tempfile.mkdtemp(prefix="gallery-tests-")
os.environ.setdefault("STORAGE_ROOT", os.path.join(_TEST_DATA, "blobs"))
os.environ.setdefault("EVENTS_FILE", os.path.join(_TEST_DATA, "events.json"))

from app.config import Settings
from app.core.validation import UploadLimits
from app.database import create_engine_for_url, create_session_factory, init_db
from app.metadata.json_store import JsonMetadataStore
from app.metadata.sql_store import SqlMetadataStore
from app.schemas.records import EventRecord
from tests.fixtures.memory_blob_store import MemoryBlobStore


# ============================================
# Stores
# ============================================

@pytest.fixture
def blob_store() -> MemoryBlobStore:
    """Fresh in-memory blob store."""
    return MemoryBlobStore()


@pytest.fixture
def json_store(tmp_path) -> JsonMetadataStore:
    """JSON metadata store in a temporary directory."""
    return JsonMetadataStore(str(tmp_path / "events.json"))


@pytest.fixture
async def sql_store(tmp_path):
    """SQL metadata store on a temporary SQLite file."""
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'gallery.db'}")
    await init_db(engine)
    yield SqlMetadataStore(create_session_factory(engine))
    await engine.dispose()


@pytest.fixture(params=["json", "sql"])
async def metadata_store(request, tmp_path):
    """Each metadata store implementation in turn."""
    if request.param == "json":
        yield JsonMetadataStore(str(tmp_path / "events.json"))
        return

    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'gallery.db'}")
    await init_db(engine)
    yield SqlMetadataStore(create_session_factory(engine))
    await engine.dispose()


@pytest.fixture
async def event(json_store) -> EventRecord:
    """An empty event stored in json_store."""
    return await json_store.create(
        EventRecord(id="e1", name="Wedding", link="http://test/event/e1")
    )


@pytest.fixture
def limits() -> UploadLimits:
    """Default upload limits."""
    return UploadLimits()


# ============================================
# API client
# ============================================

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings pointing every path at tmp_path."""
    return Settings(
        DEBUG=True,
        PUBLIC_BASE_URL="http://test",
        EVENTS_FILE=str(tmp_path / "events.json"),
        STORAGE_ROOT=str(tmp_path / "blobs"),
        MAX_FILES_PER_UPLOAD=3,
        MAX_FILE_SIZE_BYTES=1024,
    )


@pytest.fixture
async def test_client(test_settings, json_store, blob_store):
    """Async HTTP client against the app with stores replaced."""
    from app.api.deps import get_blob_store, get_metadata_store
    from app.config import get_settings
    from app.main import app

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_metadata_store] = lambda: json_store
    app.dependency_overrides[get_blob_store] = lambda: blob_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ============================================
# Pytest Configuration
# ============================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "fast: Fast unit tests (no I/O beyond tmp_path)"
    )
    config.addinivalue_line(
        "markers", "integration: Tests that exercise the HTTP API end to end"
    )
