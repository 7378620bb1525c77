"""Payment Model - Membership purchase requests awaiting admin decision"""
from datetime import datetime
from enum import Enum
from sqlalchemy import (
    Column,
    Integer,
    DateTime,
    ForeignKey,
    Numeric,
    Index,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.sql import func, text

from freegym.core.clock import as_utc, utcnow
from freegym.core.database import Base


class PaymentStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    cancelled = "cancelled"


class PaymentDecision(str, Enum):
    approved = "approved"
    cancelled = "cancelled"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    member_id = Column(
        Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True
    )
    package_id = Column(
        Integer, ForeignKey("membership_packages.id", ondelete="RESTRICT"), nullable=False
    )

    # Full package price; the installment count is informational
    amount = Column(Numeric(10, 2), nullable=False)
    installments = Column(Integer, default=1, nullable=False)

    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.pending, nullable=False)

    # Request deadline. Advisory: passing it does not change the status
    expires_at = Column(DateTime(timezone=True), nullable=False)

    decided_at = Column(DateTime(timezone=True), nullable=True)
    decided_by_id = Column(
        Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True
    )

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        # At most one pending payment per member
        Index(
            "uq_payments_member_pending",
            "member_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("ix_payments_status_created", "status", "created_at"),
        CheckConstraint("installments >= 1", name="ck_payments_installments_positive"),
    )

    def is_expired(self, now: datetime = None) -> bool:
        """Pending request past its deadline (view only)"""
        now = now or utcnow()
        return self.status == PaymentStatus.pending and as_utc(self.expires_at) < now

    def __repr__(self):
        return f"<Payment(id={self.id}, member_id={self.member_id}, amount={self.amount}, status={self.status})>"
