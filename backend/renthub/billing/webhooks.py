"""Stripe webhook event handlers: sync booking payment state."""

import logging

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from renthub.services.booking_service import (
    InvalidTransitionError,
    mark_payment_failed,
    mark_payment_succeeded,
    refund_unconfirmed_payment,
)

logger = logging.getLogger(__name__)


def _booking_id_from_metadata(intent) -> str | None:
    metadata = getattr(intent, "metadata", None) or {}
    return metadata.get("renthub_booking_id")


async def handle_payment_intent_succeeded(db: AsyncSession, event: stripe.Event) -> None:
    """Handle payment_intent.succeeded: confirm the booking as paid.

    Money captured for a booking that was cancelled meanwhile is refunded.
    """
    intent = event.data.object
    try:
        booking = await mark_payment_succeeded(db, intent.id)
    except InvalidTransitionError as e:
        # e.g. the booking was cancelled while the renter was paying
        logger.warning(
            "Payment %s succeeded but booking %s cannot be confirmed: %s",
            intent.id,
            _booking_id_from_metadata(intent),
            e,
        )
        await refund_unconfirmed_payment(db, intent.id)
        return

    if booking is not None:
        logger.info("Payment %s succeeded: booking %s confirmed", intent.id, booking.id)


async def handle_payment_intent_failed(db: AsyncSession, event: stripe.Event) -> None:
    """Handle payment_intent.payment_failed: flag the booking's payment as failed."""
    intent = event.data.object
    booking = await mark_payment_failed(db, intent.id)
    if booking is not None:
        logger.info(
            "Payment %s failed for booking %s (metadata booking %s)",
            intent.id,
            booking.id,
            _booking_id_from_metadata(intent),
        )
