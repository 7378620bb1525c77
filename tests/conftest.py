"""
Shared fixtures.

The test store is a SQLite file behind a one-connection pool: concurrent
sessions queue for the connection and interleave at transaction
boundaries, like competing requests against one database.
"""
import os
import tempfile
from datetime import date, datetime, time, timezone
from decimal import Decimal

_TEST_DB_DIR = tempfile.mkdtemp(prefix="freegym-tests-")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ["DB_POOL_SIZE"] = "1"
os.environ["DB_MAX_OVERFLOW"] = "0"
os.environ["DB_RETRY_DELAY"] = "0"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_FORMAT"] = "text"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["CHECKIN_TOKEN_SECRET"] = "test-checkin-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from freegym.core import init_db  # noqa: F401  registers every model
from freegym.core.database import TransactionManager, async_session, db_manager, engine
from freegym.core.jwt_auth import jwt_manager
from freegym.billing.crud import ledger
from freegym.billing.crud.packages import create_package
from freegym.billing.models import PackageType
from freegym.billing.schemas.packages import PackageCreate
from freegym.members.crud.members import register_member
from freegym.members.models import MemberRole
from freegym.schedule.crud.lessons import create_lesson, create_room
from freegym.schedule.models import LessonType
from freegym.schedule.schemas.lessons import LessonCreate, RoomCreate

# Fixed clock for crud tests: Friday 1 March 2030, lessons on Monday the 4th
NOW = datetime(2030, 3, 1, 9, 0, tzinfo=timezone.utc)
LESSON_DAY = date(2030, 3, 4)


@pytest_asyncio.fixture
async def database():
    await db_manager.drop_tables()
    await db_manager.create_tables()
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with async_session() as s:
        yield s


@pytest_asyncio.fixture
async def client(database):
    from freegym.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    def _headers(member):
        token = jwt_manager.create_access_token(member.id, member.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_member(session):
    counter = {"n": 0}

    async def _make(email=None, referral_code=None, role=MemberRole.member, **kwargs):
        counter["n"] += 1
        return await register_member(
            session,
            email=email or f"member{counter['n']}@example.com",
            first_name="Test",
            last_name=f"Member{counter['n']}",
            referral_code=referral_code,
            role=role,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_package(session):
    async def _make(credits=12, validity_days=30, price="40.00", type=PackageType.monthly):
        return await create_package(
            session,
            PackageCreate(
                type=type,
                price=Decimal(price),
                credits=credits,
                validity_days=validity_days,
            ),
        )

    return _make


@pytest.fixture
def activate(session):
    """Give a member an active membership without going through payments"""

    async def _activate(member_id, package, approved_at=NOW, installments=1):
        async with TransactionManager(session):
            membership = await ledger.activate_membership(
                session, member_id, package, installments, approved_at
            )
        return membership

    return _activate


@pytest.fixture
def make_lesson(session):
    async def _make(
        day=LESSON_DAY, capacity=1, start=time(18, 0), end=time(19, 0), trainer_id=None
    ):
        room = await create_room(
            session,
            RoomCreate(name="Studio A", lesson_type=LessonType.pilates, capacity=capacity),
        )
        lesson = await create_lesson(
            session,
            LessonCreate(
                room_id=room.id,
                trainer_id=trainer_id,
                day_of_week=day.isoweekday(),
                start_time=start,
                end_time=end,
                month=day.month,
                year=day.year,
            ),
        )
        return lesson

    return _make
