"""Schedule Router - rooms, lesson templates and the monthly calendar"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.core.clock import utcnow
from freegym.core.database import get_session
from freegym.core.dependencies import get_current_member, require_admin, require_trainer
from freegym.core.exceptions import ValidationError
from freegym.core.limits import limiter
from freegym.members.models import Member
from freegym.schedule.crud import capacity
from freegym.schedule.crud.lessons import (
    create_lesson,
    create_room,
    get_lesson_with_room,
    get_trainer_schedule,
    list_lessons_for_month,
)
from freegym.schedule.schemas.lessons import (
    CalendarResponse,
    LessonCreate,
    LessonRead,
    OccupancyRead,
    RoomCreate,
    RoomRead,
    TrainerScheduleResponse,
)

router = APIRouter(tags=["Schedule"])


@router.post("/admin/rooms", response_model=RoomRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def add_room(
    request: Request,
    room: RoomCreate,
    admin: Member = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return await create_room(db, room)


@router.post("/admin/lessons", response_model=LessonRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
async def add_lesson(
    request: Request,
    lesson: LessonCreate,
    admin: Member = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Publish a weekly lesson for one month"""
    return await create_lesson(db, lesson)


@router.get("/lessons", response_model=CalendarResponse)
@limiter.limit("60/minute")
async def get_calendar(
    request: Request,
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    on_date: Optional[date] = Query(None, alias="date", description="Only lessons on this day, with occupancy"),
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_session),
):
    """
    Lessons published for a month.

    Defaults to the month of ``date`` or, without it, the current month.
    """
    reference = on_date or utcnow().date()
    year = year or reference.year
    month = month or reference.month
    return await list_lessons_for_month(db, year, month, on_date)


@router.get("/lessons/trainer/me", response_model=TrainerScheduleResponse)
@limiter.limit("60/minute")
async def get_my_trainer_schedule(
    request: Request,
    on_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    trainer: Member = Depends(require_trainer),
    db: AsyncSession = Depends(get_session),
):
    """Lessons the trainer teaches this month, with occupancy for the given day"""
    return await get_trainer_schedule(db, trainer.id, on_date or utcnow().date())


@router.get("/lessons/{lesson_id}/occupancy", response_model=OccupancyRead)
@limiter.limit("120/minute")
async def get_occupancy(
    request: Request,
    lesson_id: int,
    on_date: date = Query(..., alias="date"),
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_session),
):
    lesson, room = await get_lesson_with_room(db, lesson_id)
    if not lesson.occurs_on(on_date):
        raise ValidationError(
            "The lesson does not take place on this date",
            {"lesson_id": lesson_id, "date": on_date.isoformat()},
        )

    seats = await capacity.occupancy(db, lesson_id, on_date)
    return OccupancyRead(
        lesson_id=lesson_id,
        booking_date=on_date,
        seats_taken=seats,
        capacity=room.capacity,
        has_room=seats < room.capacity,
        checked_at=utcnow(),
    )
