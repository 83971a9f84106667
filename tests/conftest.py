"""Test fixtures — one in-memory SQLite app per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test builds its own app with create_app(Settings(...)), so the
   database handle, token service and policy all come from test settings.
2. The database is sqlite+aiosqlite in memory (StaticPool keeps the one
   connection alive), tables are created from the models, and the whole
   thing disappears when the engine is disposed.
3. Requests go through httpx.AsyncClient over ASGITransport, with the
   real auth pipeline. Helpers register users and hand back bearer
   headers, so tests read as "alice does X, bob tries Y".
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from bugtracker.config import Settings
from bugtracker.main import create_app

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": TEST_DB_URL,
        "environment": "test",
        "jwt_secret": "test-secret",
        "bcrypt_rounds": 4,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def settings():
    return make_settings()


@pytest_asyncio.fixture()
async def app(settings):
    app = create_app(settings)
    await app.state.db.create_all()
    yield app
    await app.state.db.dispose()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def db_session(app):
    """A session on the app's database, for arranging and inspecting rows."""
    async with app.state.db.session_factory() as session:
        yield session


async def register(client, username: str = None, password: str = "secret123") -> dict:
    """Register a user; returns {id, username, email, token, headers}."""
    username = username or f"user-{uuid.uuid4().hex[:8]}"
    r = await client.post(
        "/api/v1/auth/register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
        },
    )
    assert r.status_code == 201, r.text
    body = r.json()
    return {
        **body["user"],
        "token": body["token"],
        "headers": {"Authorization": f"Bearer {body['token']}"},
    }


async def create_project(client, owner: dict, name: str = None, **fields) -> dict:
    r = await client.post(
        "/api/v1/projects",
        json={"name": name or f"Project {uuid.uuid4().hex[:6]}", **fields},
        headers=owner["headers"],
    )
    assert r.status_code == 201, r.text
    return r.json()


async def create_issue(client, author: dict, project_id: str, title: str = "Login page crashes", **fields) -> dict:
    r = await client.post(
        "/api/v1/issues",
        json={"title": title, "project": project_id, **fields},
        headers=author["headers"],
    )
    assert r.status_code == 201, r.text
    return r.json()


async def add_comment(client, author: dict, issue_id: str, content: str = "Seen on staging too") -> dict:
    r = await client.post(
        f"/api/v1/issues/{issue_id}/comments",
        json={"content": content},
        headers=author["headers"],
    )
    assert r.status_code == 201, r.text
    return r.json()


@pytest_asyncio.fixture()
async def alice(client):
    return await register(client, "alice")


@pytest_asyncio.fixture()
async def bob(client):
    return await register(client, "bob")


@pytest_asyncio.fixture()
async def carol(client):
    return await register(client, "carol")
