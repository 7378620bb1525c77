"""Booking Models - Member reservations and per-occurrence seat counters"""
from enum import Enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.sql import func, text

from freegym.core.clock import utcnow
from freegym.core.database import Base


class BookingStatus(str, Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no-show"


class Booking(Base):
    """
    A member's claim on one lesson occurrence.

    Rows are never deleted; cancellation is a status change.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False)

    status = Column(
        SQLEnum(BookingStatus, values_callable=lambda e: [m.value for m in e]),
        default=BookingStatus.confirmed,
        nullable=False,
    )

    # Opaque secret-bearing token shown to the member as a QR code
    checkin_token = Column(String(64), unique=True, nullable=False)

    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    checked_out_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        # One confirmed booking per member and occurrence; cancelled rows stay
        Index(
            "uq_bookings_member_occurrence_confirmed",
            "member_id",
            "lesson_id",
            "booking_date",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
        Index("ix_bookings_occurrence_status", "lesson_id", "booking_date", "status"),
        Index("ix_bookings_member_date", "member_id", "booking_date"),
    )

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, member_id={self.member_id}, lesson_id={self.lesson_id}, "
            f"date={self.booking_date}, status={self.status})>"
        )


class LessonOccupancy(Base):
    """
    Seats held on one occurrence by non-cancelled bookings.

    Only changed through conditional UPDATEs in the capacity tracker, which
    is what makes admission race-free.
    """
    __tablename__ = "lesson_occupancy"

    id = Column(Integer, primary_key=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False)
    booking_date = Column(Date, nullable=False)
    seats_taken = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("lesson_id", "booking_date", name="uq_lesson_occupancy_occurrence"),
        CheckConstraint("seats_taken >= 0", name="ck_lesson_occupancy_non_negative"),
    )

    def __repr__(self):
        return f"<LessonOccupancy(lesson_id={self.lesson_id}, date={self.booking_date}, seats={self.seats_taken})>"
