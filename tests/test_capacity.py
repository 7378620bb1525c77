import pytest

from freegym.core.database import TransactionManager
from freegym.core.exceptions import LessonFullError, NotFoundError
from freegym.schedule.crud import capacity

from tests.conftest import LESSON_DAY


@pytest.mark.asyncio
async def test_unbooked_occurrence_has_zero_occupancy(session, make_lesson):
    lesson = await make_lesson(capacity=2)

    assert await capacity.occupancy(session, lesson.id, LESSON_DAY) == 0
    assert await capacity.has_room(session, lesson.id, LESSON_DAY)


@pytest.mark.asyncio
async def test_claims_stop_at_room_capacity(session, make_lesson):
    lesson = await make_lesson(capacity=2)
    lesson_id = lesson.id

    async with TransactionManager(session):
        assert await capacity.claim_slot(session, lesson_id, LESSON_DAY, 2) == 1
        assert await capacity.claim_slot(session, lesson_id, LESSON_DAY, 2) == 2

    with pytest.raises(LessonFullError):
        async with TransactionManager(session):
            await capacity.claim_slot(session, lesson_id, LESSON_DAY, 2)

    assert await capacity.occupancy(session, lesson_id, LESSON_DAY) == 2
    assert not await capacity.has_room(session, lesson_id, LESSON_DAY)


@pytest.mark.asyncio
async def test_release_frees_a_seat_and_never_goes_negative(session, make_lesson):
    lesson = await make_lesson(capacity=1)

    async with TransactionManager(session):
        await capacity.claim_slot(session, lesson.id, LESSON_DAY, 1)
        assert await capacity.release_slot(session, lesson.id, LESSON_DAY) == 0
        assert await capacity.release_slot(session, lesson.id, LESSON_DAY) == 0

    assert await capacity.has_room(session, lesson.id, LESSON_DAY)


@pytest.mark.asyncio
async def test_occupancy_is_per_date(session, make_lesson):
    lesson = await make_lesson(capacity=1)
    next_week = LESSON_DAY.replace(day=LESSON_DAY.day + 7)

    async with TransactionManager(session):
        await capacity.claim_slot(session, lesson.id, LESSON_DAY, 1)

    counts = await capacity.occupancy_by_lesson(session, [lesson.id], next_week)
    assert counts == {lesson.id: 0}
    assert await capacity.has_room(session, lesson.id, next_week)


@pytest.mark.asyncio
async def test_room_capacity_of_unknown_lesson(session, database):
    with pytest.raises(NotFoundError):
        await capacity.room_capacity(session, 12345)
