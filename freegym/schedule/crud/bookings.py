"""Booking Engine - reserving and cancelling seats on lesson occurrences"""
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import and_, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.billing.crud import ledger
from freegym.core.clock import local_to_utc, utcnow
from freegym.core.config import CANCELLATION_CUTOFF_MINUTES
from freegym.core.database import TransactionManager, db_operation
from freegym.core.exceptions import (
    AlreadyBookedError,
    AlreadyCancelledError,
    BusinessLogicError,
    InsufficientCreditError,
    LessonFullError,
    NoMembershipError,
    NotFoundError,
    ValidationError,
)
from freegym.core.logging_utils import log_business_event
from freegym.schedule.crud import capacity
from freegym.schedule.crud.lessons import get_lesson_with_room
from freegym.schedule.models import Booking, BookingStatus, Lesson, Room
from freegym.schedule.schemas.bookings import (
    BookingListResponse,
    BookingRead,
    CancelBookingResponse,
    MemberBookingRead,
    ReserveBookingResponse,
)
from freegym.schedule.services.checkin_tokens import make_checkin_token

logger = logging.getLogger(__name__)


async def _confirmed_booking_exists(
    session: AsyncSession, member_id: int, lesson_id: int, booking_date: date
) -> bool:
    query = select(Booking.id).where(
        and_(
            Booking.member_id == member_id,
            Booking.lesson_id == lesson_id,
            Booking.booking_date == booking_date,
            Booking.status == BookingStatus.confirmed,
        )
    )
    return (await session.execute(query)).first() is not None


async def _next_attempt(
    session: AsyncSession, member_id: int, lesson_id: int, booking_date: date
) -> int:
    query = select(func.count(Booking.id)).where(
        and_(
            Booking.member_id == member_id,
            Booking.lesson_id == lesson_id,
            Booking.booking_date == booking_date,
        )
    )
    return ((await session.execute(query)).scalar() or 0) + 1


@db_operation
async def reserve_booking(
    session: AsyncSession,
    member_id: int,
    lesson_id: int,
    booking_date: date,
    now: Optional[datetime] = None,
) -> ReserveBookingResponse:
    """
    Reserve one seat on (lesson, booking_date) for a member.

    Checks, in order:
    - the occurrence exists and has not started
    - active membership not expired at the occurrence
    - at least one credit left
    - a seat is free
    - no confirmed booking of the same occurrence

    The seat claim, the booking insert and the credit debit commit together
    or not at all.
    """
    now = now or utcnow()

    lesson, room = await get_lesson_with_room(session, lesson_id)
    if not lesson.occurs_on(booking_date):
        raise ValidationError(
            "The lesson does not take place on this date",
            {"lesson_id": lesson_id, "booking_date": booking_date.isoformat()},
        )

    starts_at = local_to_utc(booking_date, lesson.start_time)
    if starts_at <= now:
        raise ValidationError(
            "The lesson has already started",
            {"lesson_id": lesson_id, "booking_date": booking_date.isoformat()},
        )

    membership = await ledger.get_active_membership(
        session, member_id, as_of=max(now, starts_at)
    )
    if not membership:
        raise NoMembershipError(member_id)

    if membership.credits_remaining <= 0:
        raise InsufficientCreditError(member_id, 1, membership.credits_remaining)

    if not await capacity.has_room(session, lesson_id, booking_date, room.capacity):
        raise LessonFullError(lesson_id, booking_date.isoformat(), room.capacity)

    if await _confirmed_booking_exists(session, member_id, lesson_id, booking_date):
        raise AlreadyBookedError(member_id, lesson_id, booking_date.isoformat())

    attempt = await _next_attempt(session, member_id, lesson_id, booking_date)
    token = make_checkin_token(member_id, lesson_id, booking_date, attempt)

    async with TransactionManager(session):
        await capacity.claim_slot(session, lesson_id, booking_date, room.capacity)

        booking = Booking(
            member_id=member_id,
            lesson_id=lesson_id,
            booking_date=booking_date,
            status=BookingStatus.confirmed,
            checkin_token=token,
        )
        session.add(booking)
        try:
            await session.flush()
        except IntegrityError:
            # Lost a race against the same member's other request
            raise AlreadyBookedError(member_id, lesson_id, booking_date.isoformat())

        balance = await ledger.debit(session, member_id, 1)

    log_business_event(
        "booking_reserved",
        "booking",
        booking.id,
        {
            "member_id": member_id,
            "lesson_id": lesson_id,
            "booking_date": booking_date.isoformat(),
            "credits_remaining": balance,
        },
    )

    return ReserveBookingResponse(
        booking=BookingRead.model_validate(booking), credits_remaining=balance
    )


@db_operation
async def get_booking(session: AsyncSession, booking_id: int) -> Optional[Booking]:
    query = (
        select(Booking)
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(query)).scalar_one_or_none()


@db_operation
async def cancel_booking(
    session: AsyncSession,
    booking_id: int,
    member_id: Optional[int] = None,
    now: Optional[datetime] = None,
    cutoff_minutes: int = CANCELLATION_CUTOFF_MINUTES,
) -> CancelBookingResponse:
    """
    Cancel a confirmed booking and refund its credit.

    ``member_id`` scopes the lookup to the owner's bookings; pass None for
    admin cancellations. Refunds are unconditional unless ``cutoff_minutes``
    is positive, in which case cancelling inside that window before the
    lesson starts is refused.
    """
    now = now or utcnow()

    booking = await get_booking(session, booking_id)
    if not booking or (member_id is not None and booking.member_id != member_id):
        raise NotFoundError("Booking", str(booking_id))

    if booking.status != BookingStatus.confirmed:
        raise AlreadyCancelledError(booking_id, booking.status.value)

    if cutoff_minutes > 0:
        lesson = await session.get(Lesson, booking.lesson_id)
        starts_at = local_to_utc(booking.booking_date, lesson.start_time)
        if now > starts_at - timedelta(minutes=cutoff_minutes):
            raise BusinessLogicError(
                f"Bookings can only be cancelled up to {cutoff_minutes} minutes before the lesson",
                {"booking_id": booking_id, "cutoff_minutes": cutoff_minutes},
                409,
                "CANCELLATION_CLOSED",
            )

    async with TransactionManager(session):
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BookingStatus.confirmed)
            .values(status=BookingStatus.cancelled, cancelled_at=now, updated_at=now)
            .returning(Booking.id)
            .execution_options(synchronize_session=False)
        )
        if (await session.execute(stmt)).scalar_one_or_none() is None:
            raise AlreadyCancelledError(booking_id, BookingStatus.cancelled.value)

        await capacity.release_slot(session, booking.lesson_id, booking.booking_date)
        balance = await ledger.credit(session, booking.member_id, 1, now=now)

    await session.refresh(booking)

    log_business_event(
        "booking_cancelled",
        "booking",
        booking.id,
        {
            "member_id": booking.member_id,
            "lesson_id": booking.lesson_id,
            "booking_date": booking.booking_date.isoformat(),
            "cancelled_by_owner": member_id is not None,
            "credits_remaining": balance,
        },
    )

    return CancelBookingResponse(
        booking=BookingRead.model_validate(booking), credits_remaining=balance
    )


@db_operation
async def get_member_bookings(
    session: AsyncSession,
    member_id: int,
    upcoming_only: bool = False,
    today: Optional[date] = None,
) -> BookingListResponse:
    """Member's bookings with lesson details, most recent occurrence first"""
    conditions = [Booking.member_id == member_id]
    if upcoming_only:
        today = today or utcnow().date()
        conditions.append(Booking.booking_date >= today)
        conditions.append(Booking.status == BookingStatus.confirmed)

    query = (
        select(Booking, Lesson, Room)
        .select_from(Booking)
        .join(Lesson, Booking.lesson_id == Lesson.id)
        .join(Room, Lesson.room_id == Room.id)
        .where(and_(*conditions))
        .order_by(Booking.booking_date.desc(), Lesson.start_time.desc())
    )
    rows = (await session.execute(query)).all()

    bookings = [
        MemberBookingRead(
            **BookingRead.model_validate(booking).model_dump(),
            start_time=lesson.start_time,
            end_time=lesson.end_time,
            room_name=room.name,
            lesson_type=room.lesson_type,
        )
        for booking, lesson, room in rows
    ]
    return BookingListResponse(bookings=bookings, total=len(bookings))
