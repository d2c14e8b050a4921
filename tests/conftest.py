from typing import AsyncGenerator, Dict, List, Optional, Tuple

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import Settings
from app.core.context import SyncContext
from app.db.session import get_db, init_db
from app.main import app


class FakeRemote:
    """
    In-process stand-in for the remote backend.

    Records every request it answers. Set online=False to fail at the network level,
    or put a status code in fail_status keyed by (method, table) to answer with an error.
    """

    def __init__(self) -> None:
        self.online = True
        self.requests: List[httpx.Request] = []
        self.fail_status: Dict[Tuple[str, str], int] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        if not self.online:
            raise httpx.ConnectError("offline", request=request)
        self.requests.append(request)
        table = request.url.path.rsplit("/", 1)[-1]
        error = self.fail_status.get((request.method, table))
        if error is not None:
            return httpx.Response(error, json={"message": "rejected"})
        if request.method == "GET":
            return httpx.Response(200, json=[])
        return httpx.Response(201 if request.method == "POST" else 204)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def writes(self, table: Optional[str] = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.method != "GET" and (table is None or r.url.path.endswith(f"/{table}"))
        ]


@pytest.fixture()
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite file per test so background sessions see committed data."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", echo=False, future=True)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with session_factory() as session:
        yield session
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite+aiosqlite://",
        REMOTE_BASE_URL="http://remote.test",
        REMOTE_API_KEY="test-key",
        SYNC_AUTO_ACTIVATE=False,
        CONNECTIVITY_CHECK_INTERVAL_SECONDS=3600,
    )


@pytest.fixture()
async def sync_context(
    test_settings: Settings,
    session_factory: async_sessionmaker,
    remote: FakeRemote,
) -> AsyncGenerator[SyncContext, None]:
    """Started (waiting) context wired to the fake remote; the monitor is not polling."""
    ctx = SyncContext(test_settings, session_factory, transport=remote.transport())
    await ctx.start()
    yield ctx
    await ctx.teardown()


@pytest.fixture()
async def client(db_session: AsyncSession, sync_context: SyncContext) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    app.state.sync_context = sync_context
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.state.sync_context = None


@pytest.fixture()
async def school(client: AsyncClient) -> dict:
    response = await client.post("/api/v1/schools", json={"name": "Green Valley School"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture()
def headers(school: dict) -> Dict[str, str]:
    return {"X-School-Id": str(school["id"])}
