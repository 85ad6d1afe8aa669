"""
Pytest Configuration and Fixtures
Shared fixtures and configuration for all tests
"""

import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TOKEN_CLEANUP_INTERVAL_SECONDS", "0")
os.environ.setdefault("UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "docvault-test-uploads"))

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docvault.db.models import UserRole
from docvault.db.session import build_engine, create_tables
from docvault.repositories.documents import DocumentRepository
from docvault.repositories.users import UserRepository


# ============================================
# PYTEST CONFIGURATION
# ============================================

def pytest_collection_modifyitems(config, items):
    """Add markers based on test file path"""
    for item in items:
        path = str(item.fspath)
        if "/unit/" in path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in path:
            item.add_marker(pytest.mark.integration)


# ============================================
# CLOCK
# ============================================

class FakeClock:
    """Controllable clock for token expiry tests"""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


# ============================================
# DATABASE FIXTURES
# ============================================

@pytest_asyncio.fixture
async def engine(tmp_path):
    """
    File-backed SQLite engine per test.
    A file (not :memory:) lets separate sessions use separate connections.
    """
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'docvault-test.db'}")
    await create_tables(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as db_session:
        yield db_session


@pytest_asyncio.fixture
async def users(session):
    """Owner, stranger and admin accounts"""
    repo = UserRepository(session)
    owner = await repo.create(f"owner_{uuid.uuid4().hex[:8]}@example.com")
    other = await repo.create(f"other_{uuid.uuid4().hex[:8]}@example.com")
    admin = await repo.create(f"admin_{uuid.uuid4().hex[:8]}@example.com", role=UserRole.ADMIN)
    await session.commit()
    return SimpleNamespace(owner=owner, other=other, admin=admin)


@pytest.fixture
def make_document(session):
    """Factory creating committed documents with optional tags and metadata"""

    async def _make(
        owner,
        name: str = "report.pdf",
        content_type: str = "application/pdf",
        size_bytes: int = 100,
        tags=(),
        metadata=None,
        created_at: datetime = None,
    ):
        repo = DocumentRepository(session)
        document = await repo.create(
            filename=name,
            original_name=name,
            content_type=content_type,
            size_bytes=size_bytes,
            storage_path=f"/nonexistent/{name}",
            owner_id=owner.id,
        )
        if created_at is not None:
            document.created_at = created_at
            await session.flush()
        for tag in tags:
            await repo.add_tag(document.id, tag)
        for key, value in (metadata or {}).items():
            await repo.add_metadata(document.id, key, value)
        await session.commit()
        return document

    return _make
