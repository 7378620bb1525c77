"""
Referral Engine.

A referral is rewarded by flipping it pending -> completed with a
conditional UPDATE; only the caller whose UPDATE returned the row credits
the reward, so repeated or concurrent calls reward once.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, update
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.billing.crud import ledger
from freegym.billing.models import Payment, PaymentStatus
from freegym.core.clock import utcnow
from freegym.core.database import TransactionManager, db_operation, db_retry
from freegym.core.exceptions import NotFoundError
from freegym.core.logging_utils import log_business_event
from freegym.members.models import Member
from freegym.referrals.models import Referral, ReferralStatus
from freegym.referrals.schemas.referrals import (
    ReconcileResponse,
    ReferralListResponse,
    ReferralRead,
    ReferralStats,
)

logger = logging.getLogger(__name__)


@db_retry()
@db_operation
async def on_approved_payment(
    session: AsyncSession,
    member_id: int,
    now: Optional[datetime] = None,
) -> Optional[Referral]:
    """
    Complete the member's pending referral and reward both sides.

    Returns the completed referral, or None when there was nothing pending.
    """
    now = now or utcnow()

    async with TransactionManager(session):
        stmt = (
            update(Referral)
            .where(
                Referral.referred_id == member_id,
                Referral.status == ReferralStatus.pending,
            )
            .values(status=ReferralStatus.completed, completed_at=now)
            .returning(Referral.id, Referral.referrer_id, Referral.reward_credits)
            .execution_options(synchronize_session=False)
        )
        row = (await session.execute(stmt)).first()
        if row is None:
            logger.debug(f"No pending referral for member {member_id}")
            return None

        if row.reward_credits > 0:
            await ledger.credit(session, row.referrer_id, row.reward_credits, now=now)
            await ledger.credit(session, member_id, row.reward_credits, now=now)

    log_business_event(
        "referral_completed",
        "referral",
        row.id,
        {
            "referrer_id": row.referrer_id,
            "referred_id": member_id,
            "reward_credits": row.reward_credits,
        },
    )
    return await session.get(Referral, row.id, populate_existing=True)


@db_operation
async def reconcile_referral(session: AsyncSession, member_id: int) -> ReconcileResponse:
    """
    Admin repair: reward a pending referral whose member already has an
    approved payment (reward step failed after the approval committed).
    """
    member = await session.get(Member, member_id)
    if not member:
        raise NotFoundError("Member", str(member_id))

    approved = (
        await session.execute(
            select(Payment.id).where(
                and_(
                    Payment.member_id == member_id,
                    Payment.status == PaymentStatus.approved,
                )
            )
        )
    ).first()

    referral = None
    if approved:
        referral = await on_approved_payment(session, member_id)

    return ReconcileResponse(
        member_id=member_id,
        rewarded=referral is not None,
        referral=ReferralRead.model_validate(referral) if referral else None,
    )


@db_operation
async def get_member_referrals(session: AsyncSession, member: Member) -> ReferralListResponse:
    """Referrals made with the member's code, newest first"""
    query = (
        select(Referral, Member)
        .select_from(Referral)
        .join(Member, Referral.referred_id == Member.id)
        .where(Referral.referrer_id == member.id)
        .order_by(Referral.created_at.desc(), Referral.id.desc())
    )
    rows = (await session.execute(query)).all()

    referrals = []
    stats = ReferralStats()
    for referral, referred in rows:
        item = ReferralRead.model_validate(referral)
        item.referred_name = referred.full_name
        referrals.append(item)

        stats.total += 1
        if referral.status == ReferralStatus.completed:
            stats.completed += 1
            stats.total_reward_credits += referral.reward_credits
        else:
            stats.pending += 1

    return ReferralListResponse(
        referral_code=member.referral_code, referrals=referrals, stats=stats
    )
