"""Pytest fixtures for the forum API tests."""

import os

# Settings are read at import time, so set them before importing agora.
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789-abcdefghijklmnop")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from agora.database import Base, get_async_session, make_engine  # noqa: E402
from agora.main import app  # noqa: E402
from agora.models.forum_model import Comment, Forum  # noqa: E402
from agora.models.user_model import User  # noqa: E402


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database per test."""
    eng = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def asgi_transport(session_factory):
    """ASGI transport into the app with the session pointed at the test database."""

    async def _session_override():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = _session_override
    yield httpx.ASGITransport(app=app)
    app.dependency_overrides.clear()


@pytest.fixture
async def client(asgi_transport):
    async with httpx.AsyncClient(transport=asgi_transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register(client):
    """Register a user through the API and return (user_id, auth headers)."""

    async def _register(username: str):
        resp = await client.post(
            "/api/auth/register",
            json={"username": username, "email": f"{username}@agora.dev", "password": "pw-" + username},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}

    return _register


@pytest.fixture
def make_user(db):
    """Insert a user row directly (no password hashing round trip)."""

    async def _make(username: str) -> int:
        user = User(username=username, email=f"{username}@agora.dev", password="x")
        db.add(user)
        await db.commit()
        return user.id

    return _make


@pytest.fixture
def make_forum(db):
    async def _make(author_id: int, title: str = "Best hot sauce?", likes: int = 0) -> int:
        forum = Forum(title=title, description="Discuss.", tags=["food"], author_id=author_id, likes=likes)
        db.add(forum)
        await db.commit()
        return forum.id

    return _make


@pytest.fixture
def make_comment(db):
    async def _make(forum_id: int, author_id: int, content: str = "Sriracha.") -> int:
        comment = Comment(forum_id=forum_id, author_id=author_id, content=content)
        db.add(comment)
        await db.commit()
        return comment.id

    return _make
