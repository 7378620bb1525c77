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


class ReferralStatus(str, Enum):
    pending = "pending"
    completed = "completed"


class Referral(Base):
    """
    Created when the referred member registers; completed exactly once, on
    that member's first approved payment.
    """
    __tablename__ = "referrals"

    id = Column(Integer, primary_key=True, index=True)
    referrer_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    # A member can be referred only once
    referred_id = Column(
        Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    referral_code = Column(String(16), nullable=False)
    reward_credits = Column(Integer, nullable=False)

    status = Column(SQLEnum(ReferralStatus), default=ReferralStatus.pending, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint("referrer_id <> referred_id", name="ck_referrals_not_self"),
        CheckConstraint("reward_credits >= 0", name="ck_referrals_reward_non_negative"),
    )

    def __repr__(self):
        return (
            f"<Referral(id={self.id}, referrer_id={self.referrer_id}, "
            f"referred_id={self.referred_id}, status={self.status})>"
        )
