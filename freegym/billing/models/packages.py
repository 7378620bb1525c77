from enum import Enum
from sqlalchemy import (
    Column,
    Integer,
    Numeric,
    Boolean,
    DateTime,
    CheckConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.sql import func

from freegym.core.clock import utcnow
from freegym.core.database import Base


class PackageType(str, Enum):
    monthly = "monthly"
    three_month = "3-month"
    six_month = "6-month"


class MembershipPackage(Base):
    """Catalog entry. Append-only: rows referenced by payments are never edited"""
    __tablename__ = "membership_packages"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(
        SQLEnum(PackageType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    price = Column(Numeric(10, 2), nullable=False)
    credits = Column(Integer, nullable=False)
    validity_days = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_packages_price_non_negative"),
        CheckConstraint("credits > 0", name="ck_packages_credits_positive"),
        CheckConstraint("validity_days > 0", name="ck_packages_validity_positive"),
    )

    def __repr__(self):
        return f"<MembershipPackage(id={self.id}, type='{self.type}', price={self.price})>"
