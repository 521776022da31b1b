"""
Test infrastructure for the Blog API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI, keeping the suite fast and self-contained.
- StaticPool forces all async tasks to share the same in-memory database
  connection, which is required because SQLite in-memory databases are
  connection-scoped; a new connection would see an empty database.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after, giving
  each test a clean isolated state without needing transactions or truncation.
- Redis is replaced by fakeredis, and the SMTP and S3 collaborators by
  recording doubles installed on the module-level singletons, so the auth
  and upload flows run end to end without any infrastructure.
- BCRYPT_ROUNDS is lowered before the app is imported; the production cost
  factor would make every register/login take a noticeable fraction of a
  second.
"""
import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")

import fakeredis
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blog_api.code_store import code_store
from blog_api.database import Base, get_db
from blog_api.mailer import mailer
from blog_api.main import app
from blog_api.middleware import install_query_counter
from blog_api.storage import storage

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Register the per-request SQL query counter on the test engine.
install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Dependency override: replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Collaborator doubles
# ---------------------------------------------------------------------------

class RecordingS3Client:
    """Stands in for a boto3 S3 client; keeps objects in a dict."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], dict] = {}
        self.deleted: list[tuple[str, str]] = []

    def put_object(self, Bucket, Key, Body, ContentType=None):
        self.objects[(Bucket, Key)] = {"body": Body, "content_type": ContentType}
        return {"ETag": '"test"'}

    def delete_object(self, Bucket, Key):
        self.objects.pop((Bucket, Key), None)
        self.deleted.append((Bucket, Key))
        return {}


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


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
    """Point the verification code store at a fresh in-memory Redis."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)
    code_store._redis = client
    yield client
    code_store._redis = None
    await client.aclose()


@pytest.fixture(autouse=True)
def s3_client():
    client = RecordingS3Client()
    storage._client = client
    yield client
    storage._client = None


@pytest.fixture(autouse=True)
def sent_mail(monkeypatch):
    """Capture outgoing messages instead of talking to an SMTP server."""
    outbox = []
    monkeypatch.setattr(mailer, "_send", outbox.append)
    return outbox


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that need to interact with the
    database directly (e.g. seeding data, asserting ORM state).
    """
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register(async_client: AsyncClient):
    """
    Return a coroutine that registers a user through the API and yields
    ``(user_id, auth_headers)``.
    """
    async def _register(
        username: str = "author",
        email: str | None = None,
        password: str = "secret123",
    ) -> tuple[int, dict]:
        resp = await async_client.post("/api/v1/auth/register", json={
            "email": email or f"{username}@example.com",
            "username": username,
            "password": password,
        })
        assert resp.status_code == 201, resp.text
        data = resp.json()
        return data["user"]["id"], {"Authorization": f"Bearer {data['token']}"}

    return _register
