"""
EventHub Backend — Booking SQLAlchemy Model
=============================================

What:  ORM model for the `bookings` table: one reservation of a service for
       one calendar day.
Who:   Written by AvailabilityService.reserve, status changes by
       BookingService.set_status, read by ReportService.

Table Design:
    - date: always the UTC midnight of the booked day. Two requests for the
      same day therefore carry the same value, whatever time-of-day the
      client sent.
    - price: snapshot taken at booking time; never updated afterwards.
    - status: 'confirmed' | 'cancelled', either one can follow the other.

Double-booking guard:
    uq_bookings_service_day_active is a partial unique index on
    (service_id, date) restricted to rows whose status is not 'cancelled'.
    The availability check in the service layer runs first and gives a
    friendly error; the index is what holds when two requests pass that
    check at the same time (across workers and instances). Any number of
    cancelled rows may share a day.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventhub.database import Base

if TYPE_CHECKING:
    from eventhub.models.service import Service
    from eventhub.models.user import User


STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"
BOOKING_STATUSES = (STATUS_CONFIRMED, STATUS_CANCELLED)

ACTIVE_DAY_INDEX = "uq_bookings_service_day_active"

ACTIVE_BOOKING_PREDICATE = "status <> 'cancelled'"


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    service_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("services.id"), nullable=False, index=True
    )

    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=STATUS_CONFIRMED,
        server_default=text("'confirmed'"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    user: Mapped["User"] = relationship(back_populates="bookings")
    service: Mapped["Service"] = relationship(back_populates="bookings")

    __table_args__ = (
        Index(
            ACTIVE_DAY_INDEX,
            "service_id",
            "date",
            unique=True,
            postgresql_where=text(ACTIVE_BOOKING_PREDICATE),
            sqlite_where=text(ACTIVE_BOOKING_PREDICATE),
        ),
        Index("idx_bookings_service_date", "service_id", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, service_id={self.service_id}, "
            f"date='{self.date}', status='{self.status}')>"
        )
