"""
Test infrastructure for the Blog API.

Strategy
--------
- SQLite in-memory via aiosqlite replaces Postgres; StaticPool keeps every
  session on the one connection that holds the in-memory database.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after.
- The asset store is overridden with one rooted in pytest's ``tmp_path`` so
  uploads never touch the real upload directory and each test can inspect
  exactly which files exist.
- The Redis cache is disabled by setting cache._redis = None; the
  post cache treats that as a permanent miss.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blog_api.cache import cache
from blog_api.config import settings
from blog_api.database import Base, get_db, session_scope
from blog_api.dependencies import get_asset_store, get_credentials
from blog_api.main import app
from blog_api.security import CredentialService
from blog_api.storage import AssetStore

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with session_scope(async_session_test) as session:
        yield session


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def asset_store(tmp_path) -> AssetStore:
    """An asset store rooted in a per-test directory, also used by the app."""
    store = AssetStore(root=tmp_path / "uploads")
    app.dependency_overrides[get_asset_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_asset_store, None)


@pytest.fixture
def credentials() -> CredentialService:
    return get_credentials()


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Yield a live AsyncSession for tests that call services directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(asset_store: AssetStore) -> AsyncClient:
    """httpx.AsyncClient wired to the FastAPI app, with Redis disabled."""
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ---------------------------------------------------------------------------
# Helpers shared by the endpoint tests
# ---------------------------------------------------------------------------

USERS_URL = f"{settings.API_PREFIX}/users"
POSTS_URL = f"{settings.API_PREFIX}/posts"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
VALID_DESCRIPTION = "<p>A long enough description of the post.</p>"


async def register_and_login(
    client: AsyncClient,
    name: str = "Ada",
    email: str = "ada@example.com",
    password: str = "secret1",
) -> dict:
    """Register a user and return ``{"id", "name", "token", "headers"}``."""
    resp = await client.post(f"{USERS_URL}/register", json={
        "name": name, "email": email, "password": password, "password2": password,
    })
    assert resp.status_code == 201, resp.text
    resp = await client.post(f"{USERS_URL}/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    body["headers"] = {"Authorization": f"Bearer {body['token']}"}
    return body


async def create_post(
    client: AsyncClient,
    headers: dict,
    title: str = "First post",
    category: str = "Weather",
    description: str = VALID_DESCRIPTION,
    content: bytes = PNG_BYTES,
    filename: str = "sunny.png",
):
    return await client.post(
        POSTS_URL,
        data={"title": title, "category": category, "description": description},
        files={"thumbnail": (filename, content, "image/png")},
        headers=headers,
    )
