"""Room and Lesson Schemas"""
from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from freegym.schedule.models import LessonType


class RoomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    lesson_type: LessonType
    capacity: int = Field(..., gt=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Studio A", "lesson_type": "pilates", "capacity": 8}
        }
    )


class RoomRead(BaseModel):
    id: int
    name: str
    lesson_type: LessonType
    capacity: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class LessonCreate(BaseModel):
    room_id: int
    trainer_id: Optional[int] = None
    day_of_week: int = Field(..., ge=1, le=7, description="ISO weekday, 1 = Monday")
    start_time: time
    end_time: time
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)

    @model_validator(mode="after")
    def check_time_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "room_id": 1,
                "day_of_week": 1,
                "start_time": "18:00:00",
                "end_time": "19:00:00",
                "month": 3,
                "year": 2026,
            }
        }
    )


class LessonRead(BaseModel):
    id: int
    room_id: int
    trainer_id: Optional[int] = None
    day_of_week: int
    start_time: time
    end_time: time
    month: int
    year: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class CalendarLessonRead(LessonRead):
    """Lesson with room details and, when a date was given, its occupancy"""
    room_name: str
    lesson_type: LessonType
    capacity: int
    trainer_name: Optional[str] = None
    booking_date: Optional[date] = None
    seats_taken: Optional[int] = None
    is_full: Optional[bool] = None


class CalendarResponse(BaseModel):
    month: int
    year: int
    lessons: List[CalendarLessonRead]


class OccupancyRead(BaseModel):
    lesson_id: int
    booking_date: date
    seats_taken: int
    capacity: int
    has_room: bool
    checked_at: datetime


class TrainerScheduleResponse(BaseModel):
    trainer_id: int
    booking_date: date
    lessons: List[CalendarLessonRead]
    lessons_on_date: int = 0
