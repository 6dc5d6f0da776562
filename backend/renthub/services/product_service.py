"""Product calendar queries: committed windows and live booking status."""

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from renthub.models.booking import RELEASED_STATUSES, Booking
from renthub.pricing import StatusProbe, Window, current_status
from renthub.pricing.availability import DEFAULT_PREPARING_HORIZON


async def get_blocking_bookings(
    db: AsyncSession,
    product_id: uuid.UUID,
) -> list[Booking]:
    """Bookings that still hold the product's calendar, ordered by start."""
    query = select(Booking).where(
        Booking.product_id == product_id,
        Booking.status.not_in(RELEASED_STATUSES),
    )
    result = await db.execute(query.order_by(Booking.start_date))
    return list(result.scalars().all())


async def get_blocking_windows(db: AsyncSession, product_id: uuid.UUID) -> list[Window]:
    return [b.window for b in await get_blocking_bookings(db, product_id)]


async def get_booked_product_ids(db: AsyncSession, window: Window) -> set[uuid.UUID]:
    """IDs of products with a committed booking overlapping ``window``."""
    result = await db.execute(
        select(Booking.product_id)
        .where(
            Booking.status.not_in(RELEASED_STATUSES),
            Booking.start_date < window.end,
            Booking.end_date > window.start,
        )
        .distinct()
    )
    return set(result.scalars().all())


async def get_booking_status(
    db: AsyncSession,
    product_id: uuid.UUID,
    now: datetime,
    horizon=DEFAULT_PREPARING_HORIZON,
) -> tuple[StatusProbe, list[Booking]]:
    """Return the status probe plus the bookings that are still active at ``now``."""
    bookings = await get_blocking_bookings(db, product_id)
    probe = current_status([b.window for b in bookings], now, horizon)
    active = [b for b in bookings if b.end_date > now]
    return probe, active
