"""Lesson Model - Recurring weekly slot published for one calendar month"""
from datetime import date
from sqlalchemy import (
    Column,
    Integer,
    Time,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.sql import func

from freegym.core.clock import utcnow
from freegym.core.database import Base


class Lesson(Base):
    """
    A lesson template realized on every matching weekday of (month, year).
    A concrete occurrence is (lesson, booking_date).
    """
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="RESTRICT"), nullable=False, index=True)
    trainer_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)

    # ISO weekday: 1 = Monday ... 7 = Sunday
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("ix_lessons_year_month", "year", "month"),
        CheckConstraint("day_of_week BETWEEN 1 AND 7", name="ck_lessons_day_of_week"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_lessons_month"),
        CheckConstraint("end_time > start_time", name="ck_lessons_time_window"),
    )

    def occurs_on(self, day: date) -> bool:
        return (
            day.year == self.year
            and day.month == self.month
            and day.isoweekday() == self.day_of_week
        )

    def __repr__(self):
        return (
            f"<Lesson(id={self.id}, room_id={self.room_id}, "
            f"{self.year}-{self.month:02d} dow={self.day_of_week} {self.start_time})>"
        )
