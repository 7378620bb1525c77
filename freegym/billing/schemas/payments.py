"""Payment Schemas"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from freegym.billing.models import PackageType, PaymentDecision, PaymentStatus
from freegym.billing.schemas.memberships import MembershipRead
from freegym.core.config import MAX_INSTALLMENTS


class PaymentCreate(BaseModel):
    package_id: int
    installments: int = Field(1, ge=1, le=MAX_INSTALLMENTS)

    model_config = ConfigDict(
        json_schema_extra={"example": {"package_id": 1, "installments": 2}}
    )


class PaymentDecisionRequest(BaseModel):
    decision: PaymentDecision


class PaymentRead(BaseModel):
    id: int
    member_id: int
    package_id: int
    amount: Decimal
    installments: int
    status: PaymentStatus
    expires_at: datetime
    # Pending request past its deadline; the stored status stays pending
    is_expired: bool = False
    decided_at: Optional[datetime] = None
    decided_by_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentListResponse(BaseModel):
    payments: List[PaymentRead]
    total: int


class PendingPaymentRead(PaymentRead):
    """Admin queue entry"""
    member_name: str
    member_email: str
    package_type: PackageType
    package_credits: int


class PendingPaymentListResponse(BaseModel):
    payments: List[PendingPaymentRead]
    total: int


class PaymentDecisionResponse(BaseModel):
    payment: PaymentRead
    membership: Optional[MembershipRead] = None
    referral_rewarded: bool = False


class MonthlyRevenue(BaseModel):
    year: int
    month: int
    total_amount: Decimal
    payments_count: int


class RevenueStats(BaseModel):
    months: List[MonthlyRevenue]
    total_amount: Decimal
    payments_count: int
