from .rooms import Room, LessonType
from .lessons import Lesson
from .bookings import Booking, BookingStatus, LessonOccupancy

__all__ = [
    "Room",
    "LessonType",
    "Lesson",
    "Booking",
    "BookingStatus",
    "LessonOccupancy",
]
