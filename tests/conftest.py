"""
Test infrastructure for the Blog CMS API.

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
- The revocation set is backed by ``FakeRedis``, an in-memory stand-in for
  the three redis commands it uses, so logout/revocation flows run without
  Redis infrastructure.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blogcms.cache import RevocationSet
from blogcms.config import settings
from blogcms.database import Base, get_db
from blogcms.main import app
from blogcms.middleware import install_query_counter

# Cheap hashes keep register/login fast in tests.
settings.BCRYPT_ROUNDS = 4

# ---------------------------------------------------------------------------
# Test database engine — SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


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
# Redis doubles
# ---------------------------------------------------------------------------

class FakeRedis:
    """In-memory async stand-in for the redis commands RevocationSet uses."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def ping(self) -> bool:
        return True

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def get(self, key: str):
        return self.store.get(key)

    async def aclose(self) -> None:
        pass


class BrokenRedis(FakeRedis):
    """Every command fails as if the server were unreachable."""

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        raise ConnectionError("redis is down")

    async def get(self, key: str):
        raise ConnectionError("redis is down")


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


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """
    Yield a live AsyncSession for tests that need to interact with the
    database directly (e.g. seeding data, asserting ORM state).
    """
    async with async_session_test() as session:
        yield session


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def broken_redis() -> BrokenRedis:
    return BrokenRedis()


@pytest_asyncio.fixture
async def async_client(fake_redis: FakeRedis) -> AsyncClient:
    """
    Yield an httpx.AsyncClient wired to the FastAPI app via ASGITransport.

    Lifespan events are not run by ASGITransport, so the revocation set is
    installed on ``app.state`` directly.
    """
    app.state.revocations = RevocationSet(client=fake_redis)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def register_user(async_client: AsyncClient):
    """
    Return a coroutine that registers a user through the API and yields
    ``(user_dict, auth_headers)``.
    """

    async def _register(username: str, name: str | None = None, password: str = "secret123"):
        resp = await async_client.post("/users/register", json={
            "name": name or username.title(),
            "username": username,
            "password": password,
        })
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["user"], {"Authorization": f"Bearer {body['token']}"}

    return _register


@pytest.fixture
def create_article(async_client: AsyncClient):
    """Return a coroutine that creates an article as the given caller."""

    async def _create(headers: dict, title: str, content: str = "Some content", status: str = "draft", **extra):
        resp = await async_client.post(
            "/articles",
            json={"title": title, "content": content, "status": status, **extra},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["article"]

    return _create
