"""Membership Router"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.billing.crud import ledger
from freegym.billing.crud.packages import get_package
from freegym.billing.crud.payments import membership_to_read
from freegym.billing.schemas.memberships import MembershipRead
from freegym.core.database import get_session
from freegym.core.dependencies import get_current_member, require_admin
from freegym.core.exceptions import NotFoundError
from freegym.core.limits import limiter
from freegym.members.models import Member

router = APIRouter(tags=["Memberships"])


async def _membership_read(db: AsyncSession, membership) -> MembershipRead:
    package = await get_package(db, membership.package_id)
    return membership_to_read(membership, package.type if package else None)


@router.get("/memberships/me", response_model=MembershipRead)
@limiter.limit("60/minute")
async def get_my_membership(
    request: Request,
    member: Member = Depends(get_current_member),
    db: AsyncSession = Depends(get_session),
):
    """
    The member's membership with its effective status.

    A membership past its expiry is reported as expired even though the
    stored status is still active.
    """
    membership = await ledger.get_membership(db, member.id)
    if not membership:
        raise NotFoundError("Membership", f"member={member.id}")
    return await _membership_read(db, membership)


@router.post("/admin/memberships/{member_id}/cancel", response_model=MembershipRead)
@limiter.limit("20/minute")
async def cancel_member_membership(
    request: Request,
    member_id: int,
    admin: Member = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    membership = await ledger.cancel_membership(db, member_id)
    return await _membership_read(db, membership)
