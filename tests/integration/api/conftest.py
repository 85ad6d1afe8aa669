"""
Conftest for API integration tests
Defines fixtures specific to API testing

Note: These tests use ASGI transport for testing without requiring a running server.
"""

import json
from types import SimpleNamespace

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from docvault.core.config import settings
from docvault.core.security import create_access_token
from docvault.db import session as db_session
from docvault.db.models import UserRole
from docvault.main import app
from docvault.repositories.users import UserRepository

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<\n/Type /Catalog\n>>\nendobj\n"


def auth(user) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def api(tmp_path, monkeypatch):
    """
    Test HTTP client with a fresh database and upload directory.
    ASGI transport does not run the lifespan, so the database is set up here.

    The namespace carries the client, three users (owner, other, admin) and
    the helpers auth(user) and upload(user, ...).
    """
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    await db_session.init_db(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")

    async with db_session.async_session_maker() as s:
        repo = UserRepository(s)
        owner = await repo.create("owner@example.com")
        other = await repo.create("other@example.com")
        admin = await repo.create("admin@example.com", role=UserRole.ADMIN)
        await s.commit()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:

        async def upload(user, name="report.pdf", content=PDF_BYTES, tags=None, metadata=None):
            data = {}
            if tags:
                data["tags"] = tags
            if metadata:
                data["metadata"] = json.dumps(metadata)
            response = await client.post(
                "/api/v1/documents",
                files={"file": (name, content, "application/pdf")},
                data=data,
                headers=auth(user),
            )
            assert response.status_code == 201, response.text
            return response.json()

        yield SimpleNamespace(
            client=client,
            owner=owner,
            other=other,
            admin=admin,
            auth=auth,
            upload=upload,
            sample_pdf=PDF_BYTES,
        )

    await db_session.close_db()
