"""Member Router - registration and the member's own profile"""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.core.database import get_session
from freegym.core.dependencies import get_current_member
from freegym.core.jwt_auth import jwt_manager
from freegym.core.limits import limiter
from freegym.members.crud.members import (
    get_dashboard_stats,
    register_member,
    update_member,
)
from freegym.members.models import Member
from freegym.members.schemas.members import (
    DashboardStats,
    MemberCreate,
    MemberRead,
    MemberRegistered,
    MemberUpdate,
)

router = APIRouter(prefix="/members", tags=["Members"])


@router.post("", response_model=MemberRegistered, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
async def register(
    request: Request,
    member_data: MemberCreate,
    db: AsyncSession = Depends(get_session),
):
    """
    Register a new member.

    An optional referral code links the new member to the member who shared
    it; both are rewarded once the new member's first payment is approved.
    """
    member = await register_member(
        db,
        email=member_data.email,
        first_name=member_data.first_name,
        last_name=member_data.last_name,
        phone=member_data.phone,
        referral_code=member_data.referral_code,
    )
    token = jwt_manager.create_access_token(member.id, member.role.value)
    return MemberRegistered(member=MemberRead.model_validate(member), access_token=token)


@router.get("/me", response_model=MemberRead)
@limiter.limit("60/minute")
async def get_me(
    request: Request,
    member: Member = Depends(get_current_member),
):
    return member


@router.patch("/me", response_model=MemberRead)
@limiter.limit("10/minute")
async def update_me(
    request: Request,
    member_data: MemberUpdate,
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_session),
):
    """Change first name, last name or phone"""
    return await update_member(db, member.id, member_data)


@router.get("/me/dashboard", response_model=DashboardStats)
@limiter.limit("30/minute")
async def get_my_dashboard(
    request: Request,
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_session),
):
    """Credits, membership expiry, booking and referral counts"""
    return await get_dashboard_stats(db, member)
