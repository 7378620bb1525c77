"""Member Schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from freegym.billing.models import MembershipStatus
from freegym.members.models import MemberRole


class MemberCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    referral_code: Optional[str] = Field(None, max_length=16)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "maria@example.com",
                "first_name": "Maria",
                "last_name": "Papadopoulou",
                "phone": "+30 690 000 0000",
                "referral_code": "K7Q2M9XA",
            }
        }
    )


class MemberUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    # Empty string removes the phone number
    phone: Optional[str] = Field(None, max_length=30)


class MemberRead(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: MemberRole
    referral_code: str
    referred_by_id: Optional[int] = None
    banked_credits: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberRegistered(BaseModel):
    member: MemberRead
    access_token: str
    token_type: str = "bearer"


class DashboardStats(BaseModel):
    """Home screen numbers for a member"""
    credits_remaining: int = 0
    banked_credits: int = 0
    membership_status: Optional[MembershipStatus] = None
    membership_expires_at: Optional[datetime] = None
    total_bookings: int = 0
    bookings_this_month: int = 0
    upcoming_bookings: int = 0
    total_referrals: int = 0
