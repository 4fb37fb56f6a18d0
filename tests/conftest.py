"""Test fixtures — a throwaway SQLite database and a real app per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own SQLite file under tmp_path (via aiosqlite), with
   the schema created straight from Base.metadata
2. create_app() receives test Settings and a session factory bound to that
   file, so the real auth stack runs: real tokens, real bcrypt (at 4
   rounds), real uniqueness constraints
3. The HTTP client talks to the app in-process through ASGITransport

Nothing is mocked between the route and the database, so a test that
logs in with a token exercises exactly what production does.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from eventease.config import Settings
from eventease.db.engine import build_session_factory
from eventease.db.models import Base
from eventease.main import create_app

TEST_SECRET = "test-signing-secret-with-enough-entropy-0123456789"


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'eventease.db'}",
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        environment="test",
        google_client_id=None,
        google_client_secret=None,
        google_callback_url=None,
    )


@pytest_asyncio.fixture()
async def engine(settings):
    engine = create_async_engine(settings.database_url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def app(settings, session_factory):
    return create_app(settings, session_factory)


@pytest.fixture()
def store(app):
    return app.state.store


@pytest.fixture()
def tokens(app):
    return app.state.tokens


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def make_user(store, tokens):
    """Factory: create a user directly in the store, return (user, token).

    Learn: Going through the store (not /register) is the only way to get
    an admin, same as the create-admin CLI command.
    """

    async def _make(role="guest", password="password123", **fields):
        fields.setdefault("name", f"{role.title()} User")
        fields.setdefault("email", f"{role}-{uuid.uuid4().hex[:8]}@example.com")
        user = await store.create(role=role, password=password, **fields)
        return user, tokens.issue(str(user.id))

    return _make


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
