"""Async Stripe API wrapper for rental payments."""

import logging

import stripe
from stripe import StripeClient

from renthub.config import settings

logger = logging.getLogger(__name__)


def get_stripe_client() -> StripeClient:
    """Create a StripeClient instance with async HTTP support."""
    return StripeClient(
        settings.stripe_secret_key,
        http_client=stripe.HTTPXClient(),
    )


async def create_payment_intent(
    amount: int,
    currency: str,
    booking_id: str,
    renter_email: str,
) -> stripe.PaymentIntent:
    """Create a PaymentIntent for a booking. ``amount`` is in minor units."""
    client = get_stripe_client()
    logger.info("Creating payment intent for booking %s (%d %s)", booking_id, amount, currency)
    intent = await client.v1.payment_intents.create_async(
        params={
            "amount": amount,
            "currency": currency,
            "receipt_email": renter_email,
            "automatic_payment_methods": {"enabled": True},
            "metadata": {"renthub_booking_id": booking_id},
        }
    )
    logger.info("Created payment intent %s for booking %s", intent.id, booking_id)
    return intent


async def refund_payment_intent(payment_intent_id: str, amount: int | None = None) -> stripe.Refund:
    """Refund a captured PaymentIntent, fully unless ``amount`` is given."""
    client = get_stripe_client()
    params: dict = {"payment_intent": payment_intent_id}
    if amount is not None:
        params["amount"] = amount
    logger.info("Refunding payment intent %s", payment_intent_id)
    return await client.v1.refunds.create_async(params=params)


async def cancel_payment_intent(payment_intent_id: str) -> stripe.PaymentIntent:
    """Cancel a PaymentIntent that has not been captured yet."""
    client = get_stripe_client()
    logger.info("Cancelling payment intent %s", payment_intent_id)
    return await client.v1.payment_intents.cancel_async(payment_intent_id)


def construct_webhook_event(payload: bytes, sig_header: str) -> stripe.Event:
    """Verify and construct a Stripe webhook event (synchronous)."""
    client = get_stripe_client()
    return client.construct_event(payload, sig_header, settings.stripe_webhook_secret)
