"""Booking Router - reserve and cancel lesson seats"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.core.database import get_session
from freegym.core.dependencies import get_current_member
from freegym.core.limits import limiter
from freegym.members.models import Member
from freegym.schedule.crud.bookings import (
    cancel_booking,
    get_member_bookings,
    reserve_booking,
)
from freegym.schedule.schemas.bookings import (
    BookingCreate,
    BookingListResponse,
    CancelBookingResponse,
    ReserveBookingResponse,
)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=ReserveBookingResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def reserve(
    request: Request,
    booking: BookingCreate,
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_session),
):
    """
    Reserve a seat on a lesson occurrence.

    Costs one credit. Fails with NO_MEMBERSHIP, INSUFFICIENT_CREDIT,
    LESSON_FULL or ALREADY_BOOKED.
    """
    return await reserve_booking(db, member.id, booking.lesson_id, booking.booking_date)


@router.post("/{booking_id}/cancel", response_model=CancelBookingResponse)
@limiter.limit("20/minute")
async def cancel(
    request: Request,
    booking_id: int,
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_session),
):
    """Cancel a confirmed booking; the credit is refunded"""
    owner_id = None if member.is_admin else member.id
    return await cancel_booking(db, booking_id, member_id=owner_id)


@router.get("/me", response_model=BookingListResponse)
@limiter.limit("60/minute")
async def get_my_bookings(
    request: Request,
    upcoming: bool = Query(True, description="Only confirmed bookings from today on"),
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_session),
):
    return await get_member_bookings(db, member.id, upcoming_only=upcoming)
