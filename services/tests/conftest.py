"""
Cafeteria Queue — shared test fixtures

Each test gets its own SQLite file (aiosqlite) so several sessions can run
against the same data, the way concurrent requests do against PostgreSQL.
"""
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.clock import utcnow
from app.core.config import get_settings
from app.core.slot_locks import SlotLockRegistry
from app.db.booking_ops import BookingLifecycle
from app.db.database import Base
from app.models.booking import Booking, BookingStatus
from app.models.catalog import Slot, SlotName, MenuItem, MenuCategory
from app.models import crowd as crowd_models  # noqa: F401
from app.schemas.booking import BookingItemIn

settings = get_settings()


class FakeClock:
    """Callable clock the tests move by hand."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


class FakeRedis:
    """The slice of redis.asyncio.Redis the service uses."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value

    async def ping(self):
        return True

    async def aclose(self):
        pass


# ─── Database ──────────────────────────────────────────────────────────────────
@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Fresh schema in a per-test SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cafeteria.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# ─── Domain ────────────────────────────────────────────────────────────────────
@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 12, 0, 0))


@pytest.fixture
def lifecycle(clock):
    return BookingLifecycle(locks=SlotLockRegistry(), clock=clock)


@pytest.fixture
def make_slot(db_session):
    async def _make(name=SlotName.LUNCH, capacity=50, current_bookings=0, is_active=True,
                    start_time="12:00", end_time="14:00") -> Slot:
        slot = Slot(
            name=name,
            start_time=start_time,
            end_time=end_time,
            capacity=capacity,
            current_bookings=current_bookings,
            is_active=is_active,
        )
        db_session.add(slot)
        await db_session.commit()
        return slot
    return _make


@pytest_asyncio.fixture
async def menu_item(db_session):
    item = MenuItem(name="Chicken Biriyani", category=MenuCategory.NON_VEG, price=12000)
    db_session.add(item)
    await db_session.commit()
    return item


@pytest.fixture
def items(menu_item):
    """A one-line order of the menu_item fixture."""
    return [BookingItemIn(menu_item_id=menu_item.id, quantity=1)]


@pytest.fixture
def add_booking(db_session):
    """Insert a booking row directly, bypassing the lifecycle."""
    async def _add(slot_id: str, position: int, status=BookingStatus.PENDING, booked_at=None,
                   served_at=None, student_id="S-000", token="L000") -> Booking:
        booking = Booking(
            student_id=student_id,
            slot_id=slot_id,
            token_number=token,
            queue_position=position,
            status=status,
            estimated_wait_time=position * settings.AVERAGE_SERVICE_MINUTES,
            booked_at=booked_at or datetime(2026, 3, 2, 11, 0, 0),
            served_at=served_at,
        )
        db_session.add(booking)
        await db_session.commit()
        return booking
    return _add


# ─── HTTP ──────────────────────────────────────────────────────────────────────
def mint_token(user_id: str, role: str) -> str:
    claims = {"sub": user_id, "role": role, "exp": utcnow() + timedelta(hours=1)}
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def auth(user_id: str, role: str = "student") -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(user_id, role)}"}


@pytest.fixture
def fake_redis(monkeypatch):
    from app.core import redis_client

    fake = FakeRedis()
    monkeypatch.setattr(redis_client, "get_redis", lambda: fake)
    return fake


@pytest_asyncio.fixture
async def api_client(session_factory, lifecycle, fake_redis):
    """httpx client bound to the ASGI app, with storage and lifecycle swapped for the test ones."""
    import httpx

    from app.db.booking_ops import get_booking_lifecycle
    from app.db.database import get_db
    from app.main import app

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_booking_lifecycle] = lambda: lifecycle
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
