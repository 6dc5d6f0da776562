"""Shared test configuration and fixtures.

Uses a transactional rollback strategy per test for full isolation:
- Each test gets a fresh in-memory SQLite database (aiosqlite) with all tables.
- The session is wrapped in a transaction that rolls back after the test.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import timedelta
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from renthub.auth.jwt import create_token_pair
from renthub.auth.passwords import hash_password
from renthub.database import Base, get_db, utcnow
from renthub.main import app
from renthub.models.booking import Booking
from renthub.models.product import Product
from renthub.models.user import User

# ---------------------------------------------------------------------------
# Per-test engine: one in-memory database shared over a single connection
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """Create an in-memory engine with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session wrapped in a transaction that always rolls back."""
    async with test_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)

        try:
            yield session
        finally:
            await session.close()
            await transaction.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to use the test DB session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience fixtures: users
# ---------------------------------------------------------------------------


async def make_user(db_session: AsyncSession, prefix: str = "user", role: str = "user", is_active: bool = True) -> User:
    """Create a user directly in the DB."""
    unique = uuid.uuid4().hex[:8]
    user = User(
        email=f"{prefix}-{unique}@test.com",
        hashed_password=hash_password("testpass123"),
        name=f"{prefix.title()} User",
        is_active=is_active,
        role=role,
    )
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


def headers_for(user: User) -> dict[str, str]:
    tokens = create_token_pair(str(user.id))
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """The product owner."""
    return await make_user(db_session, "owner")


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict[str, str]:
    """Return Authorization headers for the owner."""
    return headers_for(test_user)


@pytest_asyncio.fixture
async def renter_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "renter")


@pytest_asyncio.fixture
async def renter_headers(renter_user: User) -> dict[str, str]:
    return headers_for(renter_user)


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin", role="admin")


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict[str, str]:
    return headers_for(admin_user)


# ---------------------------------------------------------------------------
# Convenience fixtures: products and bookings
# ---------------------------------------------------------------------------


async def make_product(
    db_session: AsyncSession,
    owner: User,
    status: str = "approved",
    **prices,
) -> Product:
    """Create a product directly in the DB. Defaults to a daily rate of 300."""
    if not prices:
        prices = {"price_per_day": Decimal("300")}
    product = Product(
        owner_id=owner.id,
        title="Canon EOS R6",
        description="Mirrorless camera body with two batteries.",
        category="cameras",
        brand="Canon",
        tags=["camera", "mirrorless"],
        location="Bengaluru",
        status=status,
        **prices,
    )
    db_session.add(product)
    await db_session.flush()
    await db_session.refresh(product)
    return product


async def make_booking(
    db_session: AsyncSession,
    product: Product,
    renter: User,
    start,
    end,
    status: str = "confirmed",
    payment_status: str = "paid",
    **fields,
) -> Booking:
    """Insert a booking as if it had gone through the request flow."""
    values = {
        "rate_tier": "daily",
        "base_price": Decimal("300.00"),
        "billing_units": 1,
        "subtotal": Decimal("300.00"),
        "tax": Decimal("54.00"),
        "total_price": Decimal("354.00"),
        "currency": "inr",
    }
    values.update(fields)
    booking = Booking(
        product_id=product.id,
        renter_id=renter.id,
        owner_id=product.owner_id,
        start_date=start,
        end_date=end,
        status=status,
        payment_status=payment_status,
        **values,
    )
    db_session.add(booking)
    await db_session.flush()
    await db_session.refresh(booking)
    return booking


@pytest_asyncio.fixture
async def test_product(db_session: AsyncSession, test_user: User) -> Product:
    """An approved product owned by ``test_user`` at 300/day."""
    return await make_product(db_session, test_user)


def future_window(offset_days: int = 30, days: int = 3) -> tuple[str, str]:
    """Return a (start, end) pair safely in the future as ISO strings."""
    start = (utcnow() + timedelta(days=offset_days)).replace(hour=10, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=days)
    return start.isoformat(), end.isoformat()
