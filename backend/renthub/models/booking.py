"""Booking model: tracks rental requests and their priced snapshot."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from renthub.database import Base, UUIDPrimaryKeyMixin
from renthub.pricing import Window

# Statuses that no longer hold the product's calendar. A completed booking
# has been returned, so any days left in its window are free again.
RELEASED_STATUSES = frozenset({"rejected", "cancelled", "completed"})

BOOKING_STATUSES = (
    "requested",
    "pending_payment",
    "rejected",
    "confirmed",
    "in_rental",
    "completed",
    "cancelled",
)


class Booking(UUIDPrimaryKeyMixin, Base):
    """A renter's reservation of a product for a time window."""

    __tablename__ = "bookings"

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    renter_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Pricing snapshot, always computed server-side
    rate_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    billing_units: Mapped[int] = mapped_column(Integer, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False)
    commission: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    owner_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))
    late_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    status: Mapped[str] = mapped_column(String(50), default="requested", index=True)
    payment_status: Mapped[str] = mapped_column(String(50), default="unpaid")
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    returned_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="bookings", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821

    __table_args__ = (Index("ix_bookings_product_window", "product_id", "start_date", "end_date"),)

    @property
    def window(self) -> Window:
        return Window(self.start_date, self.end_date)

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, product_id={self.product_id}, renter_id={self.renter_id}, status={self.status})>"
