from enum import Enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.sql import func

from freegym.core.clock import utcnow
from freegym.core.database import Base


class LessonType(str, Enum):
    pilates = "pilates"
    personal_training_a = "personal-training-a"
    personal_training_b = "personal-training-b"
    kick_boxing = "kick-boxing"
    free_gym = "free-gym"


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    lesson_type = Column(
        SQLEnum(LessonType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    # Seats per lesson held in this room
    capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_rooms_capacity_positive"),
    )

    def __repr__(self):
        return f"<Room(id={self.id}, name='{self.name}', capacity={self.capacity})>"
