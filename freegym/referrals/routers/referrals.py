"""Referral Router"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.core.database import get_session
from freegym.core.dependencies import get_current_member, require_admin
from freegym.core.limits import limiter
from freegym.members.models import Member
from freegym.referrals.crud.referrals import get_member_referrals, reconcile_referral
from freegym.referrals.schemas.referrals import ReconcileResponse, ReferralListResponse

router = APIRouter(tags=["Referrals"])


@router.get("/referrals/me", response_model=ReferralListResponse)
@limiter.limit("30/minute")
async def get_my_referrals(
    request: Request,
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_session),
):
    """The member's referral code, the members who used it and the rewards earned"""
    return await get_member_referrals(db, member)


@router.post("/admin/referrals/{member_id}/reconcile", response_model=ReconcileResponse)
@limiter.limit("10/minute")
async def reconcile(
    request: Request,
    member_id: int,
    admin: Member = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Reward a pending referral of a member who already has an approved payment"""
    return await reconcile_referral(db, member_id)
