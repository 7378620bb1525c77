"""Room and Lesson CRUD - publishing the monthly timetable and reading it back"""
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import and_
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.core.database import TransactionManager, db_operation
from freegym.core.exceptions import NotFoundError, ValidationError
from freegym.core.logging_utils import log_business_event
from freegym.members.models import Member, MemberRole
from freegym.schedule.crud.capacity import occupancy_by_lesson
from freegym.schedule.models import Lesson, Room
from freegym.schedule.schemas.lessons import (
    CalendarLessonRead,
    CalendarResponse,
    LessonCreate,
    RoomCreate,
    TrainerScheduleResponse,
)


@db_operation
async def create_room(session: AsyncSession, room: RoomCreate) -> Room:
    async with TransactionManager(session):
        db_room = Room(**room.model_dump())
        session.add(db_room)
        await session.flush()

    log_business_event(
        "room_created", "room", db_room.id, {"capacity": db_room.capacity}
    )
    return db_room


@db_operation
async def get_room(session: AsyncSession, room_id: int) -> Optional[Room]:
    result = await session.execute(select(Room).where(Room.id == room_id))
    return result.scalar_one_or_none()


@db_operation
async def create_lesson(session: AsyncSession, lesson: LessonCreate) -> Lesson:
    room = await get_room(session, lesson.room_id)
    if not room or not room.is_active:
        raise NotFoundError("Room", str(lesson.room_id))

    if lesson.trainer_id is not None:
        trainer = await session.get(Member, lesson.trainer_id)
        if not trainer or trainer.role != MemberRole.trainer:
            raise NotFoundError("Trainer", str(lesson.trainer_id))

    if lesson.end_time <= lesson.start_time:
        raise ValidationError("Lesson must end after it starts")

    async with TransactionManager(session):
        db_lesson = Lesson(**lesson.model_dump())
        session.add(db_lesson)
        await session.flush()

    log_business_event(
        "lesson_published",
        "lesson",
        db_lesson.id,
        {"room_id": room.id, "month": lesson.month, "year": lesson.year},
    )
    return db_lesson


@db_operation
async def get_lesson_with_room(
    session: AsyncSession, lesson_id: int
) -> Tuple[Lesson, Room]:
    """Active lesson and its room, or NotFoundError"""
    query = (
        select(Lesson, Room)
        .select_from(Lesson)
        .join(Room, Lesson.room_id == Room.id)
        .where(Lesson.id == lesson_id, Lesson.is_active.is_(True))
    )
    row = (await session.execute(query)).first()
    if not row:
        raise NotFoundError("Lesson", str(lesson_id))
    return row[0], row[1]


@db_operation
async def list_lessons_for_month(
    session: AsyncSession,
    year: int,
    month: int,
    on_date: Optional[date] = None,
) -> CalendarResponse:
    """
    Timetable for (year, month).

    With ``on_date`` only lessons realized on that day are returned, each
    with the seats already taken on that occurrence.
    """
    if on_date and (on_date.year != year or on_date.month != month):
        raise ValidationError(
            "Date is outside the requested month",
            {"date": on_date.isoformat(), "year": year, "month": month},
        )

    conditions = [
        Lesson.year == year,
        Lesson.month == month,
        Lesson.is_active.is_(True),
    ]
    if on_date:
        conditions.append(Lesson.day_of_week == on_date.isoweekday())

    lessons = await _calendar_items(session, conditions, on_date)
    return CalendarResponse(month=month, year=year, lessons=lessons)


async def _calendar_items(
    session: AsyncSession, conditions: list, on_date: Optional[date]
) -> List[CalendarLessonRead]:
    query = (
        select(Lesson, Room, Member)
        .select_from(Lesson)
        .join(Room, Lesson.room_id == Room.id)
        .outerjoin(Member, Lesson.trainer_id == Member.id)
        .where(and_(*conditions))
        .order_by(Lesson.day_of_week, Lesson.start_time, Lesson.id)
    )
    rows = (await session.execute(query)).all()

    seats = {}
    if on_date:
        held = [lesson.id for lesson, _, _ in rows if lesson.occurs_on(on_date)]
        seats = await occupancy_by_lesson(session, held, on_date)

    lessons: List[CalendarLessonRead] = []
    for lesson, room, trainer in rows:
        item = CalendarLessonRead(
            id=lesson.id,
            room_id=lesson.room_id,
            trainer_id=lesson.trainer_id,
            day_of_week=lesson.day_of_week,
            start_time=lesson.start_time,
            end_time=lesson.end_time,
            month=lesson.month,
            year=lesson.year,
            is_active=lesson.is_active,
            room_name=room.name,
            lesson_type=room.lesson_type,
            capacity=room.capacity,
            trainer_name=trainer.full_name if trainer else None,
        )
        if lesson.id in seats:
            taken = seats[lesson.id]
            item.booking_date = on_date
            item.seats_taken = taken
            item.is_full = taken >= room.capacity
        lessons.append(item)

    return lessons


@db_operation
async def get_trainer_schedule(
    session: AsyncSession, trainer_id: int, on_date: date
) -> TrainerScheduleResponse:
    """
    The trainer's lessons for the month of ``on_date``.

    Lessons held on ``on_date`` carry the seats taken on that occurrence.
    """
    conditions = [
        Lesson.trainer_id == trainer_id,
        Lesson.year == on_date.year,
        Lesson.month == on_date.month,
        Lesson.is_active.is_(True),
    ]
    lessons = await _calendar_items(session, conditions, on_date)
    return TrainerScheduleResponse(
        trainer_id=trainer_id,
        booking_date=on_date,
        lessons=lessons,
        lessons_on_date=sum(1 for lesson in lessons if lesson.booking_date),
    )
