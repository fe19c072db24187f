import os
import sys
from pathlib import Path
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(str(Path(__file__).parents[1] / "src"))
sys.path.append(str(Path(__file__).parent))

ENV_TEST_PATH = Path(__file__).parents[1] / ".env.test"


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key, value)


_load_env_file(ENV_TEST_PATH)
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("GOCARDLESS_BASE_URL", "https://bank.test")
os.environ.setdefault("GOCARDLESS_SECRET_ID", "test-id")
os.environ.setdefault("GOCARDLESS_SECRET_KEY", "test-key")
os.environ.setdefault("LOG_JSON", "false")

from banksync.api.deps import (  # noqa: E402
    get_aggregator_config,
    get_http_client,
    get_sync_policy,
)
from banksync.config import AggregatorConfig, SyncPolicy  # noqa: E402
from banksync.db.session import build_engine, get_db  # noqa: E402
from banksync.main import app  # noqa: E402
from banksync.upstream.aggregator import AggregatorClient  # noqa: E402

from fake_bank import FakeBank, RecordingSleep  # noqa: E402

# In-memory SQLite unless a real database is provided (e.g. Postgres in CI).
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest.fixture(scope="function")
async def test_engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = build_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = build_engine(TEST_DATABASE_URL)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def setup_database(test_engine):
    """Create tables for tests that need the database, and drop them after.

    Not autouse, so pure unit tests run without a database.
    """
    from banksync.models.base import Base
    import banksync.models  # noqa: F401

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session(test_engine, setup_database):
    """Provide test database session with fresh connection per test."""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def auth_headers(user_id):
    """Provide authentication headers with valid JWT token."""
    from banksync.core.security import create_access_token

    token = create_access_token(user_id=user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def aggregator_config() -> AggregatorConfig:
    return AggregatorConfig(
        base_url="https://bank.test/api/v2",
        secret_id="test-id",
        secret_key="test-key",
        timeout_token=2.0,
        timeout_agreement=2.0,
        timeout_requisition=2.0,
        timeout_account=2.0,
        timeout_transactions=2.0,
        timeout_institutions=2.0,
    )


@pytest.fixture
def sync_policy() -> SyncPolicy:
    return SyncPolicy(inter_account_delay_seconds=0)


@pytest.fixture
def fake_bank() -> FakeBank:
    return FakeBank()


@pytest.fixture
def recorded_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
async def http_client(fake_bank):
    async with fake_bank.client() as client:
        yield client


@pytest.fixture
def aggregator(aggregator_config, http_client, recorded_sleep) -> AggregatorClient:
    return AggregatorClient.from_http(aggregator_config, http_client, sleep=recorded_sleep)


@pytest.fixture
async def client(db_session: AsyncSession, fake_bank, aggregator_config, sync_policy):
    """Provide test client with database and aggregator overrides."""

    async def override_get_db():
        yield db_session

    async def override_get_http_client():
        async with fake_bank.client() as http:
            yield http

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_http_client] = override_get_http_client
    app.dependency_overrides[get_aggregator_config] = lambda: aggregator_config
    app.dependency_overrides[get_sync_policy] = lambda: sync_policy

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def connected_bank(db_session: AsyncSession, user_id):
    from banksync.models.connected_bank import ConnectedBank
    from banksync.repositories.connected_bank import ConnectedBankRepository

    return await ConnectedBankRepository(db_session).create(
        ConnectedBank(
            user_id=user_id,
            institution_id="SEB_ESSESESS",
            bank_name="SEB",
            provider="gocardless",
            account_id="req-1",
            link_id="req-1",
            reference="ref-1",
            status="active",
            country="SE",
        )
    )


@pytest.fixture
async def bank_account(db_session: AsyncSession, user_id, connected_bank):
    from banksync.models.bank_account import BankAccount
    from banksync.repositories.bank_account import BankAccountRepository

    return await BankAccountRepository(db_session).create(
        BankAccount(
            user_id=user_id,
            connected_bank_id=connected_bank.id,
            provider="gocardless",
            account_id="acc-1",
            name="Lönekonto",
            currency="SEK",
            is_selected=True,
        )
    )
