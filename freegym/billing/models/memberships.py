"""Membership Model - A member's current entitlement: credits and validity window"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column,
    Integer,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.sql import func

from freegym.core.clock import as_utc, utcnow
from freegym.core.database import Base


class MembershipStatus(str, Enum):
    active = "active"
    expired = "expired"
    cancelled = "cancelled"


class Membership(Base):
    """
    One row per member. Activation overwrites the row, so "at most one
    active membership" is the unique ``member_id`` constraint.

    ``credits_remaining`` is only ever changed through the ledger's atomic
    UPDATE statements.
    """
    __tablename__ = "memberships"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(
        Integer,
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    package_id = Column(
        Integer, ForeignKey("membership_packages.id", ondelete="RESTRICT"), nullable=False
    )
    installments = Column(Integer, default=1, nullable=False)

    credits_remaining = Column(Integer, default=0, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(SQLEnum(MembershipStatus), default=MembershipStatus.active, nullable=False)

    activated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("credits_remaining >= 0", name="ck_memberships_credits_non_negative"),
    )

    def effective_status(self, now: datetime = None) -> MembershipStatus:
        """Stored status, except that an active row past its expiry reads as expired"""
        now = now or utcnow()
        if self.status == MembershipStatus.active and as_utc(self.expires_at) <= now:
            return MembershipStatus.expired
        return self.status

    def __repr__(self):
        return (
            f"<Membership(id={self.id}, member_id={self.member_id}, "
            f"credits={self.credits_remaining}, status={self.status})>"
        )
