"""
EventHub Backend — User SQLAlchemy Model
==========================================

What:  ORM model representing the `users` table.
Who:   Used by CredentialService for registration, confirmation and login.

Lifecycle:
    1. Created on registration with email_confirmed=False and a one-time
       email_confirm_token
    2. Confirmation flips email_confirmed to True and clears the token
       (happens exactly once; the token is gone afterwards)
    3. password_hash never changes (there is no reset flow)
"""

from datetime import datetime, timezone
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from eventhub.database import Base

if TYPE_CHECKING:
    from eventhub.models.booking import Booking
    from eventhub.models.review import Review


ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)

    # Stored lowercased so the unique constraint is effectively case-insensitive
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    # passlib hash string (algorithm + salt + digest); the plaintext is never stored
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ROLE_USER,
        server_default=text("'user'"),
    )

    email_confirmed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    # Opaque single-use token; NULL once the address is confirmed
    email_confirm_token: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        unique=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    bookings: Mapped[List["Booking"]] = relationship(back_populates="user")
    reviews: Mapped[List["Review"]] = relationship(back_populates="user")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
