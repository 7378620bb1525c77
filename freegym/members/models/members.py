"""Member Model - Gym members, trainers and admins"""
from enum import Enum
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.sql import func

from freegym.core.clock import utcnow
from freegym.core.database import Base


class MemberRole(str, Enum):
    member = "member"
    trainer = "trainer"
    admin = "admin"


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(30), nullable=True)

    role = Column(SQLEnum(MemberRole), default=MemberRole.member, nullable=False)

    # Immutable once issued
    referral_code = Column(String(16), unique=True, nullable=False, index=True)
    referred_by_id = Column(
        Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True
    )

    # Reward credits earned before the member had a membership; folded into
    # the next activated membership
    banked_credits = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("banked_credits >= 0", name="ck_members_banked_credits_non_negative"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.admin

    def __repr__(self):
        return f"<Member(id={self.id}, email='{self.email}', role={self.role})>"
