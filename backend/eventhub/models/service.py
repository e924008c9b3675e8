"""
EventHub Backend — Service SQLAlchemy Model
=============================================

What:  ORM model for the `services` table: the bookable offerings of the
       marketplace (venues, photographers, decorators, ...).
Who:   Managed by CatalogService; referenced by bookings and reviews.

Gallery:
    `images` is an ordered JSON list of URLs, at most
    settings.gallery_max_images entries. CatalogService always assigns a new
    list instead of mutating in place, so SQLAlchemy sees the change without
    a MutableList wrapper.

Deletion:
    A service with any booking (whatever its status) cannot be deleted.
    CatalogService enforces this before issuing the DELETE.
"""

from datetime import datetime, timezone
from typing import List, TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventhub.database import Base

if TYPE_CHECKING:
    from eventhub.models.booking import Booking
    from eventhub.models.review import Review


class Service(Base):
    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Integer currency units (no fractional amounts)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))

    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default=text("0"))
    review_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    location: Mapped[str] = mapped_column(String(200), nullable=False, default="", server_default=text("''"))
    duration: Mapped[str] = mapped_column(String(100), nullable=False, default="", server_default=text("''"))
    capacity: Mapped[str] = mapped_column(String(100), nullable=False, default="", server_default=text("''"))

    featured: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    # Cover image URL
    image: Mapped[str] = mapped_column(String(500), nullable=False, default="", server_default=text("''"))
    images: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # passive_deletes: never load these collections just to delete a service
    bookings: Mapped[List["Booking"]] = relationship(back_populates="service", passive_deletes=True)
    reviews: Mapped[List["Review"]] = relationship(back_populates="service", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name='{self.name}', category='{self.category}')>"
