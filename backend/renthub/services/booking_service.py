"""Booking service: server-side pricing and the booking lifecycle.

Quotes shown to renters are advisory. Every booking is re-priced and
re-checked for overlaps here, inside the request transaction, right before
it is inserted.
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal

import stripe
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from renthub.billing.stripe_client import cancel_payment_intent, create_payment_intent, refund_payment_intent
from renthub.config import settings
from renthub.database import utcnow
from renthub.models.booking import Booking
from renthub.models.product import Product
from renthub.models.user import User
from renthub.pricing import Quote, late_fee, price_booking, round2, split_payout
from renthub.pricing.quote import to_minor_units
from renthub.services.product_service import get_blocking_windows

logger = logging.getLogger(__name__)

# action -> (statuses it may start from, resulting status)
TRANSITIONS: dict[str, tuple[frozenset[str], str]] = {
    "accept": (frozenset({"requested"}), "pending_payment"),
    "reject": (frozenset({"requested"}), "rejected"),
    "confirm_payment": (frozenset({"pending_payment"}), "confirmed"),
    "pickup": (frozenset({"confirmed"}), "in_rental"),
    "complete": (frozenset({"in_rental"}), "completed"),
    "cancel": (frozenset({"requested", "pending_payment", "confirmed"}), "cancelled"),
}


class InvalidTransitionError(Exception):
    """The booking's current status does not allow the requested action."""

    def __init__(self, status: str, action: str) -> None:
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action.replace('_', ' ')} a booking that is {status.replace('_', ' ')}")


def _apply(booking: Booking, action: str) -> None:
    allowed, target = TRANSITIONS[action]
    if booking.status not in allowed:
        raise InvalidTransitionError(booking.status, action)
    logger.info("Booking %s: %s -> %s (%s)", booking.id, booking.status, target, action)
    booking.status = target


def product_lock_query(product_id: uuid.UUID) -> Select:
    """Row lock on the product. Bookings of one product are created one at a time."""
    return select(Product.id).where(Product.id == product_id).with_for_update()


async def lock_product(db: AsyncSession, product_id: uuid.UUID) -> None:
    await db.execute(product_lock_query(product_id))


async def quote_for_product(
    db: AsyncSession,
    product: Product,
    start: datetime,
    end: datetime,
    now: datetime | None = None,
) -> Quote:
    """Price a candidate window for ``product`` against its current calendar.

    Raises the ``renthub.pricing`` errors unchanged.
    """
    windows = await get_blocking_windows(db, product.id)
    return price_booking(
        product.rate_card,
        windows,
        start,
        end,
        config=settings.pricing_config(),
        now=now or utcnow(),
    )


async def create_booking(
    db: AsyncSession,
    product: Product,
    renter: User,
    start: datetime,
    end: datetime,
    notes: str | None = None,
    client_total: Decimal | None = None,
    now: datetime | None = None,
) -> Booking:
    """Create a rental request priced from the server-side quote.

    The product row is locked before the calendar is read, so a concurrent
    request for the same product waits and then sees this booking.
    """
    await lock_product(db, product.id)
    quote = await quote_for_product(db, product, start, end, now=now)

    if client_total is not None and round2(client_total) != quote.total:
        logger.warning(
            "Client quote %s differs from server quote %s for product %s; using server quote",
            client_total,
            quote.total,
            product.id,
        )

    payout = split_payout(quote.total, settings.commission_rate)
    booking = Booking(
        product_id=product.id,
        renter_id=renter.id,
        owner_id=product.owner_id,
        start_date=start,
        end_date=end,
        rate_tier=quote.rate_tier.value,
        base_price=quote.base_price,
        billing_units=quote.units,
        subtotal=quote.subtotal,
        tax=quote.tax,
        platform_fee=quote.platform_fee,
        total_price=quote.total,
        currency=quote.currency,
        commission=payout.commission,
        owner_amount=payout.owner_amount,
        status="requested",
        payment_status="unpaid",
        notes=notes,
    )
    db.add(booking)
    await db.flush()
    await db.refresh(booking)
    logger.info(
        "Rental request %s created for product %s by %s (%s %s)",
        booking.id,
        product.id,
        renter.id,
        quote.total,
        quote.currency,
    )
    return booking


async def accept_booking(db: AsyncSession, booking: Booking) -> Booking:
    _apply(booking, "accept")
    await db.flush()
    await db.refresh(booking)
    return booking


async def reject_booking(db: AsyncSession, booking: Booking, reason: str | None = None) -> Booking:
    _apply(booking, "reject")
    booking.cancel_reason = reason or "Rejected by owner"
    await db.flush()
    await db.refresh(booking)
    return booking


async def start_payment(db: AsyncSession, booking: Booking, renter: User):
    """Create a Stripe PaymentIntent for an accepted booking.

    Returns the Stripe PaymentIntent; the booking moves to ``payment_status=pending``.
    """
    if booking.status != "pending_payment":
        raise InvalidTransitionError(booking.status, "pay")

    intent = await create_payment_intent(
        amount=to_minor_units(booking.total_price),
        currency=booking.currency,
        booking_id=str(booking.id),
        renter_email=renter.email,
    )
    booking.stripe_payment_intent_id = intent.id
    booking.payment_status = "pending"
    await db.flush()
    await db.refresh(booking)
    return intent


async def get_booking_by_payment_intent(db: AsyncSession, payment_intent_id: str) -> Booking | None:
    result = await db.execute(select(Booking).where(Booking.stripe_payment_intent_id == payment_intent_id))
    return result.scalar_one_or_none()


async def mark_payment_succeeded(db: AsyncSession, payment_intent_id: str) -> Booking | None:
    """Confirm the booking paid through ``payment_intent_id``. Safe to repeat."""
    booking = await get_booking_by_payment_intent(db, payment_intent_id)
    if booking is None:
        logger.warning("No booking found for payment intent %s", payment_intent_id)
        return None
    if booking.payment_status == "paid":
        return booking

    _apply(booking, "confirm_payment")
    booking.payment_status = "paid"
    await db.flush()
    await db.refresh(booking)
    return booking


async def refund_unconfirmed_payment(db: AsyncSession, payment_intent_id: str) -> Booking | None:
    """Refund money captured for a booking that can no longer be confirmed. Safe to repeat."""
    booking = await get_booking_by_payment_intent(db, payment_intent_id)
    if booking is None or booking.payment_status == "refunded":
        return booking

    await refund_payment_intent(payment_intent_id)
    booking.payment_status = "refunded"
    await db.flush()
    await db.refresh(booking)
    logger.info("Refunded payment %s for %s booking %s", payment_intent_id, booking.status, booking.id)
    return booking


async def mark_payment_failed(db: AsyncSession, payment_intent_id: str) -> Booking | None:
    booking = await get_booking_by_payment_intent(db, payment_intent_id)
    if booking is None:
        logger.warning("No booking found for failed payment intent %s", payment_intent_id)
        return None
    booking.payment_status = "failed"
    await db.flush()
    logger.info("Payment failed for booking %s", booking.id)
    return booking


async def start_rental(db: AsyncSession, booking: Booking) -> Booking:
    """Owner handed the product over."""
    _apply(booking, "pickup")
    await db.flush()
    await db.refresh(booking)
    return booking


async def complete_booking(
    db: AsyncSession,
    booking: Booking,
    returned_at: datetime | None = None,
) -> Booking:
    """Owner received the product back; charge a late fee when overdue."""
    _apply(booking, "complete")
    booking.returned_at = returned_at or utcnow()
    booking.late_fee = late_fee(
        booking.total_price,
        booking.end_date,
        booking.returned_at,
        settings.late_fee_daily_rate,
    )
    if booking.late_fee:
        logger.info("Booking %s returned late, fee %s", booking.id, booking.late_fee)
    await db.flush()
    await db.refresh(booking)
    return booking


async def cancel_booking(db: AsyncSession, booking: Booking, reason: str | None = None) -> Booking:
    """Cancel a booking.

    A paid booking is refunded. A payment still in progress has its
    PaymentIntent cancelled so it can no longer be captured.
    """
    allowed, _ = TRANSITIONS["cancel"]
    if booking.status not in allowed:
        raise InvalidTransitionError(booking.status, "cancel")

    if booking.payment_status == "paid" and booking.stripe_payment_intent_id:
        await refund_payment_intent(booking.stripe_payment_intent_id)
        booking.payment_status = "refunded"
    elif booking.payment_status in ("pending", "failed") and booking.stripe_payment_intent_id:
        try:
            await cancel_payment_intent(booking.stripe_payment_intent_id)
            booking.payment_status = "unpaid"
        except stripe.InvalidRequestError as e:
            # Already captured: the succeeded webhook refunds it.
            logger.warning(
                "Could not cancel payment intent %s for booking %s: %s",
                booking.stripe_payment_intent_id,
                booking.id,
                e,
            )

    _apply(booking, "cancel")
    booking.cancel_reason = reason
    await db.flush()
    await db.refresh(booking)
    return booking
