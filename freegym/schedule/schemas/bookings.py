"""Booking Schemas"""
from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from freegym.schedule.models import BookingStatus, LessonType


class BookingCreate(BaseModel):
    lesson_id: int
    booking_date: date

    model_config = ConfigDict(
        json_schema_extra={"example": {"lesson_id": 1, "booking_date": "2026-03-02"}}
    )


class BookingRead(BaseModel):
    id: int
    member_id: int
    lesson_id: int
    booking_date: date
    status: BookingStatus
    checkin_token: str
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReserveBookingResponse(BaseModel):
    booking: BookingRead
    credits_remaining: int


class CancelBookingResponse(BaseModel):
    booking: BookingRead
    credits_remaining: int


class MemberBookingRead(BookingRead):
    """Booking with the lesson details the member's QR list shows"""
    start_time: time
    end_time: time
    room_name: str
    lesson_type: LessonType


class BookingListResponse(BaseModel):
    bookings: List[MemberBookingRead]
    total: int
