"""Pytest configuration and fixtures."""

import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict, List, Optional

# Set test env vars before any app import
os.environ.setdefault("ALERTS_CRON_API_KEY", "test-cron-key")
os.environ.setdefault("ALERT_NOTIFICATION_EMAILS", "admin@portguard.app")
os.environ.setdefault("ALERT_COOLDOWN_MINUTES", "10")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Base
from app.models.alert import Alert, AlertOperator, AlertType
from app.models.notification import Notification
from app.models.portfolio_snapshot import PortfolioSnapshot
from app.repositories.alert_repository import AlertRepository
from app.repositories.notification_repository import NotificationRepository
from app.repositories.snapshot_repository import SnapshotRepository
from app.repositories.unit_of_work import UnitOfWork
from app.services.email_service import EmailResult

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
ADDRESS = "0x" + "ab" * 20

# One in-memory database per test, shared by every session of that test
TEST_DATABASE_URL = "sqlite+aiosqlite://"


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakeAlertRepository(AlertRepository):
    def __init__(self, alerts: Optional[List[Alert]] = None, fail: bool = False):
        self.alerts = list(alerts or [])
        self.fail = fail
        self.staged: Dict[uuid.UUID, datetime] = {}
        self.triggered: List[tuple] = []

    async def find_enabled(self) -> List[Alert]:
        if self.fail:
            raise ConnectionError("database unavailable")
        return [a for a in self.alerts if a.enabled]

    async def mark_triggered(self, alert_id, triggered_at) -> None:
        self.staged[alert_id] = triggered_at


class FakeSnapshotRepository(SnapshotRepository):
    def __init__(self, snapshots: Optional[List[PortfolioSnapshot]] = None):
        self.snapshots = list(snapshots or [])
        self.fail_for: set = set()

    def _for(self, address: str) -> List[PortfolioSnapshot]:
        if address in self.fail_for:
            raise RuntimeError(f"snapshot lookup failed for {address}")
        rows = [s for s in self.snapshots if s.address == address.lower()]
        return sorted(rows, key=lambda s: s.created_at, reverse=True)

    async def latest(self, address):
        rows = self._for(address)
        return rows[0] if rows else None

    async def before(self, address, created_at):
        for snapshot in self._for(address):
            if snapshot.created_at < created_at:
                return snapshot
        return None


class FakeNotificationRepository(NotificationRepository):
    def __init__(self):
        self.staged: List[Notification] = []
        self.rows: List[Notification] = []

    async def create(self, alert_id, address, title, message, type, triggered_at):
        notification = Notification(
            id=uuid.uuid4(),
            alert_id=alert_id,
            address=address,
            title=title,
            message=message,
            type=type,
            is_read=False,
            triggered_at=triggered_at,
            read_at=None,
        )
        self.staged.append(notification)
        return notification

    def _filtered(self, address, is_read):
        rows = [n for n in self.rows if n.address == address.lower()]
        if is_read is not None:
            rows = [n for n in rows if n.is_read == is_read]
        return sorted(rows, key=lambda n: n.triggered_at, reverse=True)

    async def list_for_address(self, address, is_read=None, limit=50, offset=0):
        return self._filtered(address, is_read)[offset:offset + limit]

    async def count_for_address(self, address, is_read=None):
        return len(self._filtered(address, is_read))

    async def owned_ids(self, address, notification_ids):
        wanted = set(notification_ids)
        return {n.id for n in self.rows if n.id in wanted and n.address == address.lower()}

    async def set_read(self, address, notification_ids, is_read, read_at):
        count = 0
        for n in self.rows:
            if n.id in set(notification_ids) and n.address == address.lower():
                n.is_read = is_read
                n.read_at = read_at
                count += 1
        return count

    async def delete(self, address, notification_ids):
        keep = [
            n for n in self.rows
            if not (n.id in set(notification_ids) and n.address == address.lower())
        ]
        count = len(self.rows) - len(keep)
        self.rows = keep
        return count


class FakeUnitOfWork(UnitOfWork):
    """Staged writes become visible only on commit, like a session."""

    def __init__(self, alerts=None, snapshots=None, fail_loading: bool = False):
        self.alerts = FakeAlertRepository(alerts, fail=fail_loading)
        self.snapshots = FakeSnapshotRepository(snapshots)
        self.notifications = FakeNotificationRepository()
        self.commits = 0
        self.rollbacks = 0
        self.fail_on_commit = False

    async def commit(self) -> None:
        if self.fail_on_commit:
            raise RuntimeError("commit failed")
        by_id = {a.id: a for a in self.alerts.alerts}
        for alert_id, triggered_at in self.alerts.staged.items():
            by_id[alert_id].last_triggered = triggered_at
            self.alerts.triggered.append((alert_id, triggered_at))
        self.alerts.staged.clear()
        self.notifications.rows.extend(self.notifications.staged)
        self.notifications.staged.clear()
        self.commits += 1

    async def rollback(self) -> None:
        self.alerts.staged.clear()
        self.notifications.staged.clear()
        self.rollbacks += 1


class FakePriceOracle:
    def __init__(self, prices: Optional[Dict[str, Optional[float]]] = None, failing=()):
        self.prices = prices or {}
        self.failing = set(failing)
        self.calls: List[str] = []

    async def get_token_price(self, symbol: str) -> Optional[float]:
        self.calls.append(symbol)
        if symbol in self.failing:
            raise RuntimeError(f"price API down for {symbol}")
        return self.prices.get(symbol)


class FakeEmailSender:
    def __init__(self, result: Optional[EmailResult] = None, raises: bool = False):
        self.result = result or EmailResult(success=True, id="email_123")
        self.raises = raises
        self.sent: List[dict] = []

    async def send_email(self, to, subject, html) -> EmailResult:
        self.sent.append({"to": list(to), "subject": subject, "html": html})
        if self.raises:
            raise RuntimeError("smtp exploded")
        return self.result


class FakePipeline:
    def __init__(self, redis: "FakeRedis"):
        self.redis = redis
        self.ops: List[tuple] = []

    def incrby(self, key, amount):
        self.ops.append(("incrby", key, amount))
        return self

    def set(self, key, value):
        self.ops.append(("set", key, value))
        return self

    async def execute(self):
        results = []
        for op, key, value in self.ops:
            if op == "incrby":
                results.append(await self.redis.incrby(key, value))
            else:
                results.append(await self.redis.set(key, value))
        self.ops.clear()
        return results


class FakeRedis:
    """Just enough of redis.asyncio.Redis (decode_responses=True)."""

    def __init__(self, fail: bool = False):
        self.store: Dict[str, str] = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise ConnectionError("redis unavailable")

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def mget(self, *keys):
        self._check()
        return [self.store.get(k) for k in keys]

    async def set(self, key, value):
        self._check()
        self.store[key] = str(value)
        return True

    async def setex(self, key, ttl, value):
        return await self.set(key, value)

    async def incrby(self, key, amount):
        self._check()
        value = int(self.store.get(key, "0")) + int(amount)
        self.store[key] = str(value)
        return value

    def pipeline(self, transaction: bool = True):
        self._check()
        return FakePipeline(self)

    async def ping(self):
        self._check()
        return True


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_alert(
    type: AlertType = AlertType.PRICE,
    operator: AlertOperator = AlertOperator.ABOVE,
    value: float = 100.0,
    token_symbol: Optional[str] = "ETH",
    address: str = ADDRESS,
    enabled: bool = True,
    last_triggered: Optional[datetime] = None,
) -> Alert:
    return Alert(
        id=uuid.uuid4(),
        address=address,
        type=type,
        token_symbol=token_symbol if type == AlertType.PRICE else None,
        operator=operator,
        value=value,
        enabled=enabled,
        created_at=NOW - timedelta(days=1),
        last_triggered=last_triggered,
    )


def make_snapshot(
    total_value: float, minutes_ago: int = 0, address: str = ADDRESS
) -> PortfolioSnapshot:
    return PortfolioSnapshot(
        id=uuid.uuid4(),
        address=address,
        total_value=total_value,
        created_at=NOW - timedelta(minutes=minutes_ago),
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def alert_factory():
    return make_alert


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def uow_factory():
    return FakeUnitOfWork


@pytest.fixture
def price_oracle_factory():
    return FakePriceOracle


@pytest.fixture
def email_sender_factory():
    return FakeEmailSender


@pytest.fixture
def redis_factory():
    return FakeRedis


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
def notification_repo() -> FakeNotificationRepository:
    return FakeNotificationRepository()


@pytest_asyncio.fixture(scope="function")
async def client(
    notification_repo: FakeNotificationRepository, fake_redis: FakeRedis
) -> AsyncGenerator[AsyncClient, None]:
    """Test client with repositories and Redis replaced by in-memory fakes."""
    from app.api.deps import get_cron_metrics_service, get_notification_repository
    from app.main import app
    from app.services.cron_metrics import CronMetricsService

    async def override_notification_repository():
        return notification_repo

    async def override_cron_metrics_service():
        return CronMetricsService(fake_redis)

    app.dependency_overrides[get_notification_repository] = override_notification_repository
    app.dependency_overrides[get_cron_metrics_service] = override_cron_metrics_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Session factory bound to a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def db_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose endpoints run against the test database."""
    from app.core.database import get_db
    from app.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
