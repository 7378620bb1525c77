from datetime import time, timedelta

import pytest

from freegym.core.exceptions import NotFoundError, ValidationError
from freegym.members.models import MemberRole
from freegym.schedule.crud import bookings
from freegym.schedule.crud.lessons import (
    create_lesson,
    get_trainer_schedule,
    list_lessons_for_month,
)
from freegym.schedule.schemas.lessons import LessonCreate

from tests.conftest import LESSON_DAY, NOW


@pytest.mark.asyncio
async def test_calendar_for_a_day_reports_occupancy(
    session, make_member, make_package, activate, make_lesson
):
    member = await make_member()
    await activate(member.id, await make_package())
    lesson = await make_lesson(capacity=1)
    await make_lesson(day=LESSON_DAY + timedelta(days=1))
    await bookings.reserve_booking(session, member.id, lesson.id, LESSON_DAY, now=NOW)

    calendar = await list_lessons_for_month(session, 2030, 3, on_date=LESSON_DAY)

    assert [item.id for item in calendar.lessons] == [lesson.id]
    assert calendar.lessons[0].seats_taken == 1
    assert calendar.lessons[0].is_full is True

    month = await list_lessons_for_month(session, 2030, 3)
    assert len(month.lessons) == 2
    assert all(item.seats_taken is None for item in month.lessons)


@pytest.mark.asyncio
async def test_calendar_date_outside_month(session, database):
    with pytest.raises(ValidationError):
        await list_lessons_for_month(session, 2030, 4, on_date=LESSON_DAY)


@pytest.mark.asyncio
async def test_trainer_schedule(session, make_member, make_package, activate, make_lesson):
    trainer = await make_member(role=MemberRole.trainer)
    other_trainer = await make_member(role=MemberRole.trainer)
    member = await make_member()
    await activate(member.id, await make_package())

    monday = await make_lesson(capacity=4, trainer_id=trainer.id)
    tuesday = await make_lesson(
        day=LESSON_DAY + timedelta(days=1), start=time(9, 0), end=time(10, 0), trainer_id=trainer.id
    )
    await make_lesson(trainer_id=other_trainer.id)
    await make_lesson()
    await bookings.reserve_booking(session, member.id, monday.id, LESSON_DAY, now=NOW)

    schedule = await get_trainer_schedule(session, trainer.id, LESSON_DAY)

    assert schedule.trainer_id == trainer.id
    assert [item.id for item in schedule.lessons] == [monday.id, tuesday.id]
    assert schedule.lessons_on_date == 1
    by_id = {item.id: item for item in schedule.lessons}
    assert by_id[monday.id].seats_taken == 1
    assert by_id[monday.id].is_full is False
    assert by_id[monday.id].trainer_name == trainer.full_name
    assert by_id[tuesday.id].seats_taken is None


@pytest.mark.asyncio
async def test_trainer_schedule_is_per_month(session, make_member, make_lesson):
    trainer = await make_member(role=MemberRole.trainer)
    await make_lesson(trainer_id=trainer.id)

    schedule = await get_trainer_schedule(session, trainer.id, LESSON_DAY + timedelta(days=31))

    assert schedule.lessons == []
    assert schedule.lessons_on_date == 0


@pytest.mark.asyncio
async def test_lesson_trainer_must_have_trainer_role(session, make_member, make_lesson):
    plain = await make_member()
    room_lesson = await make_lesson()

    with pytest.raises(NotFoundError):
        await create_lesson(
            session,
            LessonCreate(
                room_id=room_lesson.room_id,
                trainer_id=plain.id,
                day_of_week=1,
                start_time=time(7, 0),
                end_time=time(8, 0),
                month=3,
                year=2030,
            ),
        )
