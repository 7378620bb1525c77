"""
Credit ledger - the only writer of Membership.credits_remaining.

Every balance change is a single conditional UPDATE ... RETURNING executed
inside the caller's transaction; nothing here reads a balance and writes it
back. Functions in this module never commit, except the admin-facing
``cancel_membership`` which is its own unit of work.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import update
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.core.clock import utcnow
from freegym.core.database import TransactionManager, db_operation, dialect_insert
from freegym.core.exceptions import (
    InsufficientCreditError,
    NoMembershipError,
    NotFoundError,
    ValidationError,
)
from freegym.core.logging_utils import log_business_event
from freegym.billing.models import Membership, MembershipPackage, MembershipStatus
from freegym.members.models import Member

logger = logging.getLogger(__name__)


@db_operation
async def get_membership(session: AsyncSession, member_id: int) -> Optional[Membership]:
    """The member's membership row in any status"""
    query = (
        select(Membership)
        .where(Membership.member_id == member_id)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(query)
    return result.scalar_one_or_none()


@db_operation
async def get_active_membership(
    session: AsyncSession,
    member_id: int,
    as_of: Optional[datetime] = None,
) -> Optional[Membership]:
    """Membership that is active and not yet expired at ``as_of`` (default: now)"""
    as_of = as_of or utcnow()
    query = (
        select(Membership)
        .where(
            Membership.member_id == member_id,
            Membership.status == MembershipStatus.active,
            Membership.expires_at > as_of,
        )
        .execution_options(populate_existing=True)
    )
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def debit(session: AsyncSession, member_id: int, amount: int) -> int:
    """
    Atomically take ``amount`` credits from the member's active membership.

    Returns the new balance. Raises InsufficientCreditError (balance left
    unchanged) when the balance is lower than ``amount``.
    """
    if amount <= 0:
        raise ValidationError("Debit amount must be positive", {"amount": amount})

    stmt = (
        update(Membership)
        .where(
            Membership.member_id == member_id,
            Membership.status == MembershipStatus.active,
            Membership.credits_remaining >= amount,
        )
        .values(
            credits_remaining=Membership.credits_remaining - amount,
            updated_at=utcnow(),
        )
        .returning(Membership.credits_remaining)
        .execution_options(synchronize_session=False)
    )
    new_balance = (await session.execute(stmt)).scalar_one_or_none()

    if new_balance is None:
        row = (
            await session.execute(
                select(Membership.status, Membership.credits_remaining).where(
                    Membership.member_id == member_id
                )
            )
        ).first()
        if row is None or row.status != MembershipStatus.active:
            raise NoMembershipError(member_id)
        raise InsufficientCreditError(member_id, amount, row.credits_remaining)

    logger.debug(
        f"Debited {amount} credit(s) from member {member_id}",
        extra={"member_id": member_id, "amount": amount, "balance": new_balance},
    )
    return new_balance


async def credit(
    session: AsyncSession,
    member_id: int,
    amount: int,
    now: Optional[datetime] = None,
) -> int:
    """
    Atomically add ``amount`` credits to the member's live membership.

    A member without an active, unexpired membership at ``now`` gets the
    credits banked on the member record instead; they are folded into the
    next activation. Returns the resulting membership (or banked) balance.
    """
    if amount <= 0:
        raise ValidationError("Credit amount must be positive", {"amount": amount})

    now = now or utcnow()
    stmt = (
        update(Membership)
        .where(
            Membership.member_id == member_id,
            Membership.status == MembershipStatus.active,
            Membership.expires_at > now,
        )
        .values(
            credits_remaining=Membership.credits_remaining + amount,
            updated_at=now,
        )
        .returning(Membership.credits_remaining)
        .execution_options(synchronize_session=False)
    )
    new_balance = (await session.execute(stmt)).scalar_one_or_none()
    if new_balance is not None:
        logger.debug(
            f"Credited {amount} credit(s) to member {member_id}",
            extra={"member_id": member_id, "amount": amount, "balance": new_balance},
        )
        return new_balance

    banked_stmt = (
        update(Member)
        .where(Member.id == member_id)
        .values(banked_credits=Member.banked_credits + amount)
        .returning(Member.banked_credits)
        .execution_options(synchronize_session=False)
    )
    banked = (await session.execute(banked_stmt)).scalar_one_or_none()
    if banked is None:
        raise NotFoundError("Member", str(member_id))

    logger.info(
        f"Banked {amount} credit(s) for member {member_id} without a live membership",
        extra={"member_id": member_id, "amount": amount, "banked": banked},
    )
    return banked


async def activate_membership(
    session: AsyncSession,
    member_id: int,
    package: MembershipPackage,
    installments: int,
    approved_at: datetime,
) -> Membership:
    """
    Replace the member's membership row with a fresh active one.

    expires_at = approved_at + package.validity_days and the balance is the
    package grant plus any banked reward credits. Runs in the caller's
    transaction.
    """
    banked = (
        await session.execute(
            select(Member.banked_credits).where(Member.id == member_id).with_for_update()
        )
    ).scalar_one_or_none()
    if banked is None:
        raise NotFoundError("Member", str(member_id))

    if banked:
        # Subtract what was read so concurrent rewards are not lost
        await session.execute(
            update(Member)
            .where(Member.id == member_id)
            .values(banked_credits=Member.banked_credits - banked)
            .execution_options(synchronize_session=False)
        )

    values = {
        "package_id": package.id,
        "installments": installments,
        "credits_remaining": package.credits + banked,
        "expires_at": approved_at + timedelta(days=package.validity_days),
        "status": MembershipStatus.active,
        "activated_at": approved_at,
        "cancelled_at": None,
        "updated_at": approved_at,
    }
    stmt = (
        dialect_insert(session, Membership)
        .values(member_id=member_id, created_at=approved_at, **values)
        .on_conflict_do_update(index_elements=["member_id"], set_=values)
        .returning(Membership.id)
    )
    membership_id = (await session.execute(stmt)).scalar_one()

    membership = await session.get(Membership, membership_id, populate_existing=True)

    log_business_event(
        "membership_activated",
        "membership",
        membership.id,
        {
            "member_id": member_id,
            "package_id": package.id,
            "credits": membership.credits_remaining,
            "banked_credits_applied": banked,
        },
    )
    return membership


@db_operation
async def cancel_membership(
    session: AsyncSession,
    member_id: int,
    now: Optional[datetime] = None,
) -> Membership:
    """Admin action: active -> cancelled"""
    now = now or utcnow()

    async with TransactionManager(session):
        stmt = (
            update(Membership)
            .where(
                Membership.member_id == member_id,
                Membership.status == MembershipStatus.active,
            )
            .values(status=MembershipStatus.cancelled, cancelled_at=now, updated_at=now)
            .returning(Membership.id)
            .execution_options(synchronize_session=False)
        )
        membership_id = (await session.execute(stmt)).scalar_one_or_none()
        if membership_id is None:
            raise NotFoundError("Active membership", f"member={member_id}")

    log_business_event("membership_cancelled", "membership", membership_id, {"member_id": member_id})
    return await get_membership(session, member_id)
