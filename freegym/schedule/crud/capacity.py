"""
Capacity tracker - seats held per lesson occurrence.

``claim_slot`` is the admission decision: a conditional increment that
cannot succeed for more callers than there are seats, whatever the
interleaving. It must run inside the same transaction as the booking insert.
"""
from datetime import date
from typing import Dict, Iterable

from sqlalchemy import update
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.core.database import db_operation, dialect_insert
from freegym.core.exceptions import LessonFullError, NotFoundError
from freegym.schedule.models import Lesson, LessonOccupancy, Room


@db_operation
async def occupancy(session: AsyncSession, lesson_id: int, booking_date: date) -> int:
    """Seats currently held on (lesson, date)"""
    query = select(LessonOccupancy.seats_taken).where(
        LessonOccupancy.lesson_id == lesson_id,
        LessonOccupancy.booking_date == booking_date,
    )
    seats = (await session.execute(query)).scalar_one_or_none()
    return seats or 0


@db_operation
async def occupancy_by_lesson(
    session: AsyncSession, lesson_ids: Iterable[int], booking_date: date
) -> Dict[int, int]:
    lesson_ids = list(lesson_ids)
    if not lesson_ids:
        return {}

    query = select(LessonOccupancy.lesson_id, LessonOccupancy.seats_taken).where(
        LessonOccupancy.lesson_id.in_(lesson_ids),
        LessonOccupancy.booking_date == booking_date,
    )
    rows = (await session.execute(query)).all()
    counts = {lesson_id: 0 for lesson_id in lesson_ids}
    counts.update({row.lesson_id: row.seats_taken for row in rows})
    return counts


async def room_capacity(session: AsyncSession, lesson_id: int) -> int:
    query = (
        select(Room.capacity)
        .select_from(Lesson)
        .join(Room, Lesson.room_id == Room.id)
        .where(Lesson.id == lesson_id)
    )
    capacity = (await session.execute(query)).scalar_one_or_none()
    if capacity is None:
        raise NotFoundError("Lesson", str(lesson_id))
    return capacity


@db_operation
async def has_room(
    session: AsyncSession,
    lesson_id: int,
    booking_date: date,
    capacity: int = None,
) -> bool:
    """Advisory check; the binding decision is ``claim_slot``"""
    if capacity is None:
        capacity = await room_capacity(session, lesson_id)
    return await occupancy(session, lesson_id, booking_date) < capacity


async def claim_slot(
    session: AsyncSession, lesson_id: int, booking_date: date, capacity: int
) -> int:
    """Take one seat or raise LessonFullError. Returns seats now taken"""
    ensure_row = (
        dialect_insert(session, LessonOccupancy)
        .values(lesson_id=lesson_id, booking_date=booking_date, seats_taken=0)
        .on_conflict_do_nothing(index_elements=["lesson_id", "booking_date"])
    )
    await session.execute(ensure_row)

    stmt = (
        update(LessonOccupancy)
        .where(
            LessonOccupancy.lesson_id == lesson_id,
            LessonOccupancy.booking_date == booking_date,
            LessonOccupancy.seats_taken < capacity,
        )
        .values(seats_taken=LessonOccupancy.seats_taken + 1)
        .returning(LessonOccupancy.seats_taken)
        .execution_options(synchronize_session=False)
    )
    seats = (await session.execute(stmt)).scalar_one_or_none()
    if seats is None:
        raise LessonFullError(lesson_id, booking_date.isoformat(), capacity)
    return seats


async def release_slot(session: AsyncSession, lesson_id: int, booking_date: date) -> int:
    """Give one seat back. Never goes below zero"""
    stmt = (
        update(LessonOccupancy)
        .where(
            LessonOccupancy.lesson_id == lesson_id,
            LessonOccupancy.booking_date == booking_date,
            LessonOccupancy.seats_taken > 0,
        )
        .values(seats_taken=LessonOccupancy.seats_taken - 1)
        .returning(LessonOccupancy.seats_taken)
        .execution_options(synchronize_session=False)
    )
    seats = (await session.execute(stmt)).scalar_one_or_none()
    return seats or 0
