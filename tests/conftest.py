"""Shared fixtures: a throwaway SQLite database and marketplace parties."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401
from app.core.immutability import register_immutability_enforcement
from app.database import Base
from app.models import Booking, Listing, SaleTransaction, User
from app.services.audit_service import AuditService
from app.services.transaction_repository import booking_repository, sale_repository
from app.services.transition_service import (
    AnalyticsHook,
    AuditHook,
    NotificationHook,
    PostCommitHook,
    TransitionExecutor,
)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'vendibook.db'}")

    # pysqlite/aiosqlite need explicit BEGIN for SAVEPOINT to work
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    register_immutability_enforcement()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with session_maker() as session:
        yield session


# ==================== PARTIES ====================


@pytest.fixture
def make_user(db):
    async def _make(name: str, role: str = "user", **kwargs) -> User:
        user = User(
            email=f"{name.lower().replace(' ', '.')}@vendibook.test",
            display_name=name,
            role=role,
            **kwargs,
        )
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
async def host(make_user):
    return await make_user("Hana Host")


@pytest.fixture
async def renter(make_user):
    return await make_user("Ray Renter")


@pytest.fixture
async def seller(make_user):
    return await make_user("Sam Seller", phone="512-555-0199")


@pytest.fixture
async def buyer(make_user):
    return await make_user("Bea Buyer")


@pytest.fixture
async def outsider(make_user):
    return await make_user("Oscar Outsider")


@pytest.fixture
async def admin(make_user):
    return await make_user("Ada Admin", role="admin")


# ==================== TRANSACTIONS ====================


@pytest.fixture
def make_listing(db):
    async def _make(owner: User, **kwargs) -> Listing:
        values = {
            "owner_id": owner.id,
            "title": "2019 Taco Truck",
            "listing_mode": "sale",
            "city": "Austin",
            "state": "TX",
            "full_street_address": "500 Congress Ave",
            "postal_code": "78701",
            "latitude": Decimal("30.26715000"),
            "longitude": Decimal("-97.74306000"),
            "asking_price": 4_500_000,
            "sale_status": "Available",
        }
        values.update(kwargs)
        listing = Listing(**values)
        db.add(listing)
        await db.commit()
        return listing

    return _make


@pytest.fixture
def make_booking(db, make_listing, host, renter):
    async def _make(status: str = "PENDING", **kwargs) -> Booking:
        listing = await make_listing(host, listing_mode="rent", asking_price=None)
        values = {
            "listing_id": listing.id,
            "host_id": host.id,
            "renter_id": renter.id,
            "start_date": date(2026, 11, 2),
            "end_date": date(2026, 11, 4),
            "total_price": 75_000,
            "status": status,
        }
        values.update(kwargs)
        booking = Booking(**values)
        db.add(booking)
        await db.commit()
        return booking

    return _make


@pytest.fixture
def make_sale(db, make_listing, seller, buyer):
    async def _make(status: str = "OfferPending", **kwargs) -> SaleTransaction:
        listing = await make_listing(seller)
        values = {
            "listing_id": listing.id,
            "seller_id": seller.id,
            "buyer_id": buyer.id,
            "asking_price": 4_500_000,
            "offer_amount": 4_200_000,
            "status": status,
        }
        values.update(kwargs)
        sale = SaleTransaction(**values)
        db.add(sale)
        await db.commit()
        return sale

    return _make


# ==================== COLLABORATORS ====================


class RecordingEnqueue:
    """Stands in for the Celery retry queue."""

    def __init__(self):
        self.entries = []

    def __call__(self, entry):
        self.entries.append(entry)


class FailingHook(PostCommitHook):
    name = "failing"

    async def run(self, db, event):
        raise RuntimeError("downstream unavailable")


class FailingAuditService(AuditService):
    async def append(self, db, entry):
        raise RuntimeError("audit store unavailable")


@pytest.fixture
def audit_retries():
    return RecordingEnqueue()


@pytest.fixture
def transaction_hooks(audit_retries):
    return [NotificationHook(), AuditHook(enqueue_retry=audit_retries), AnalyticsHook()]


@pytest.fixture
def booking_executor(transaction_hooks):
    return TransitionExecutor(booking_repository, hooks=transaction_hooks)


@pytest.fixture
def sale_executor(transaction_hooks):
    return TransitionExecutor(sale_repository, hooks=transaction_hooks)
