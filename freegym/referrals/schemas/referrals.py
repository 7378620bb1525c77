"""Referral Schemas"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from freegym.referrals.models import ReferralStatus


class ReferralRead(BaseModel):
    id: int
    referrer_id: int
    referred_id: int
    referred_name: Optional[str] = None
    referral_code: str
    reward_credits: int
    status: ReferralStatus
    completed_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReferralStats(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    total_reward_credits: int = 0


class ReferralListResponse(BaseModel):
    referral_code: str
    referrals: List[ReferralRead]
    stats: ReferralStats


class ReconcileResponse(BaseModel):
    member_id: int
    rewarded: bool
    referral: Optional[ReferralRead] = None
