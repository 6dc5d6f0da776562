"""Translate pricing/lifecycle errors into HTTP responses."""

from fastapi import HTTPException, status

from renthub.pricing import (
    ConfigurationError,
    InvalidBookingWindowError,
    PricingError,
    SlotUnavailableError,
)
from renthub.services.booking_service import InvalidTransitionError


def pricing_http_error(exc: PricingError) -> HTTPException:
    """Map a pricing error to the HTTPException the client should see."""
    if isinstance(exc, SlotUnavailableError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "Dates conflict with an existing booking",
                "conflicting_bookings": exc.conflicts,
                "next_available_date": (
                    exc.next_available_date.isoformat() if exc.next_available_date else None
                ),
            },
        )
    if isinstance(exc, (InvalidBookingWindowError, ConfigurationError)):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def transition_http_error(exc: InvalidTransitionError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
