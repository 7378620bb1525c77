"""Membership Schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from freegym.billing.models import MembershipStatus, PackageType


class MembershipRead(BaseModel):
    """Member's membership; ``status`` is the effective status at read time"""
    id: int
    member_id: int
    package_id: int
    package_type: Optional[PackageType] = None
    installments: int
    credits_remaining: int
    expires_at: datetime
    status: MembershipStatus
    activated_at: datetime
    cancelled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
