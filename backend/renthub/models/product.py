"""Product model: items listed for rent with tiered prices."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from renthub.database import Base, UUIDPrimaryKeyMixin
from renthub.pricing import RateCard


class Product(UUIDPrimaryKeyMixin, Base):
    """An item an owner rents out by the hour, day, or week."""

    __tablename__ = "products"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    brand: Mapped[str | None] = mapped_column(String(100), default=None)
    tags: Mapped[list | None] = mapped_column(JSON, default=list)
    location: Mapped[str | None] = mapped_column(String(255), default=None)
    price_per_hour: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), default=None)
    price_per_day: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), default=None)
    price_per_week: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), default=None)
    status: Mapped[str] = mapped_column(String(50), default="pending", index=True)  # pending, approved, rejected
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    # Relationships
    owner: Mapped["User"] = relationship(back_populates="products", lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    bookings: Mapped[list["Booking"]] = relationship(  # type: ignore[name-defined]  # noqa: F821
        back_populates="product", lazy="selectin", cascade="all, delete-orphan"
    )

    @property
    def rate_card(self) -> RateCard:
        return RateCard.from_product(self)

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, title={self.title!r}, status={self.status!r})>"
