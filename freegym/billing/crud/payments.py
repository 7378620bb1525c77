"""
Payment Pipeline - membership purchase requests and admin decisions.

Approval is a two-step transaction script:
  1. conditional status flip (pending -> approved) + membership upsert,
     committed together;
  2. the referral reward, idempotent by the referral's own status.
If step 2 fails the payment stays approved with its membership; the error
propagates and the reward can be reconciled later.
"""
import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import and_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.billing.crud import ledger
from freegym.billing.crud.packages import get_package
from freegym.billing.models import (
    MembershipPackage,
    Payment,
    PaymentDecision,
    PaymentStatus,
)
from freegym.billing.schemas.memberships import MembershipRead
from freegym.billing.schemas.payments import (
    MonthlyRevenue,
    PaymentDecisionResponse,
    PaymentListResponse,
    PaymentRead,
    PendingPaymentListResponse,
    PendingPaymentRead,
    RevenueStats,
)
from freegym.core.clock import as_utc, utcnow
from freegym.core.config import MAX_INSTALLMENTS, PAYMENT_REQUEST_TTL_HOURS
from freegym.core.database import TransactionManager, db_operation
from freegym.core.exceptions import (
    MembershipActiveError,
    NotFoundError,
    NotPendingError,
    PaymentPendingError,
    ValidationError,
)
from freegym.core.logging_utils import log_business_event
from freegym.members.models import Member
from freegym.referrals.crud import referrals as referral_engine

logger = logging.getLogger(__name__)


def payment_to_read(payment: Payment, now: Optional[datetime] = None) -> PaymentRead:
    return PaymentRead(
        id=payment.id,
        member_id=payment.member_id,
        package_id=payment.package_id,
        amount=payment.amount,
        installments=payment.installments,
        status=payment.status,
        expires_at=payment.expires_at,
        is_expired=payment.is_expired(now),
        decided_at=payment.decided_at,
        decided_by_id=payment.decided_by_id,
        created_at=payment.created_at,
    )


def membership_to_read(membership, package_type=None, now: Optional[datetime] = None) -> MembershipRead:
    return MembershipRead(
        id=membership.id,
        member_id=membership.member_id,
        package_id=membership.package_id,
        package_type=package_type,
        installments=membership.installments,
        credits_remaining=membership.credits_remaining,
        expires_at=membership.expires_at,
        status=membership.effective_status(now),
        activated_at=membership.activated_at,
        cancelled_at=membership.cancelled_at,
    )


@db_operation
async def get_payment(session: AsyncSession, payment_id: int) -> Optional[Payment]:
    query = (
        select(Payment)
        .where(Payment.id == payment_id)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(query)).scalar_one_or_none()


async def _pending_payment_exists(session: AsyncSession, member_id: int) -> bool:
    query = select(Payment.id).where(
        Payment.member_id == member_id, Payment.status == PaymentStatus.pending
    )
    return (await session.execute(query)).first() is not None


@db_operation
async def request_payment(
    session: AsyncSession,
    member_id: int,
    package_id: int,
    installments: int = 1,
    now: Optional[datetime] = None,
) -> Payment:
    """
    Create a pending payment for a package.

    The stored amount is always the full package price; ``installments`` is
    recorded for the admin only.
    """
    now = now or utcnow()

    package = await get_package(session, package_id)
    if not package or not package.is_active:
        raise NotFoundError("Package", str(package_id))

    if not 1 <= installments <= MAX_INSTALLMENTS:
        raise ValidationError(
            f"Installments must be between 1 and {MAX_INSTALLMENTS}",
            {"installments": installments},
        )

    if await ledger.get_active_membership(session, member_id, as_of=now):
        raise MembershipActiveError(member_id)

    if await _pending_payment_exists(session, member_id):
        raise PaymentPendingError(member_id)

    async with TransactionManager(session):
        payment = Payment(
            member_id=member_id,
            package_id=package.id,
            amount=package.price,
            installments=installments,
            status=PaymentStatus.pending,
            expires_at=now + timedelta(hours=PAYMENT_REQUEST_TTL_HOURS),
            created_at=now,
        )
        session.add(payment)
        try:
            await session.flush()
        except IntegrityError:
            raise PaymentPendingError(member_id)

    log_business_event(
        "payment_requested",
        "payment",
        payment.id,
        {
            "member_id": member_id,
            "package_id": package.id,
            "amount": str(payment.amount),
            "installments": installments,
        },
    )
    return payment


@db_operation
async def decide_payment(
    session: AsyncSession,
    payment_id: int,
    decision: PaymentDecision,
    approver_id: int,
    now: Optional[datetime] = None,
) -> PaymentDecisionResponse:
    """
    Approve or cancel a pending payment.

    Raises NotFoundError for an unknown payment and NotPendingError when the
    payment was already decided, including by a concurrent admin.
    """
    now = now or utcnow()
    new_status = PaymentStatus(decision.value)
    membership = None
    package = None

    async with TransactionManager(session):
        stmt = (
            update(Payment)
            .where(Payment.id == payment_id, Payment.status == PaymentStatus.pending)
            .values(status=new_status, decided_at=now, decided_by_id=approver_id)
            .returning(Payment.member_id, Payment.package_id, Payment.installments)
            .execution_options(synchronize_session=False)
        )
        row = (await session.execute(stmt)).first()

        if row is None:
            current = (
                await session.execute(select(Payment.status).where(Payment.id == payment_id))
            ).scalar_one_or_none()
            if current is None:
                raise NotFoundError("Payment", str(payment_id))
            raise NotPendingError(payment_id, current.value)

        member_id = row.member_id

        if new_status == PaymentStatus.approved:
            package = await session.get(MembershipPackage, row.package_id)
            membership = await ledger.activate_membership(
                session, member_id, package, row.installments, now
            )

    log_business_event(
        f"payment_{new_status.value}",
        "payment",
        payment_id,
        {"member_id": member_id, "decided_by": approver_id},
    )

    referral = None
    if new_status == PaymentStatus.approved:
        referral = await referral_engine.on_approved_payment(session, member_id, now=now)
        # Re-read: the reward may have changed the balance
        membership = await ledger.get_membership(session, member_id)

    payment = await get_payment(session, payment_id)

    return PaymentDecisionResponse(
        payment=payment_to_read(payment, now),
        membership=(
            membership_to_read(membership, package.type if package else None, now)
            if membership
            else None
        ),
        referral_rewarded=referral is not None,
    )


@db_operation
async def get_member_payments(
    session: AsyncSession, member_id: int, now: Optional[datetime] = None
) -> PaymentListResponse:
    query = (
        select(Payment)
        .where(Payment.member_id == member_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
    )
    payments = (await session.execute(query)).scalars().all()
    items = [payment_to_read(payment, now) for payment in payments]
    return PaymentListResponse(payments=items, total=len(items))


@db_operation
async def get_pending_payments(
    session: AsyncSession, now: Optional[datetime] = None
) -> PendingPaymentListResponse:
    """Admin queue, oldest request first"""
    query = (
        select(Payment, Member, MembershipPackage)
        .select_from(Payment)
        .join(Member, Payment.member_id == Member.id)
        .join(MembershipPackage, Payment.package_id == MembershipPackage.id)
        .where(Payment.status == PaymentStatus.pending)
        .order_by(Payment.created_at, Payment.id)
    )
    rows = (await session.execute(query)).all()

    items: List[PendingPaymentRead] = []
    for payment, member, package in rows:
        items.append(
            PendingPaymentRead(
                **payment_to_read(payment, now).model_dump(),
                member_name=member.full_name,
                member_email=member.email,
                package_type=package.type,
                package_credits=package.credits,
            )
        )
    return PendingPaymentListResponse(payments=items, total=len(items))


def _month_start(year: int, month: int, back: int):
    index = year * 12 + (month - 1) - back
    return index // 12, index % 12 + 1


@db_operation
async def get_revenue_stats(
    session: AsyncSession, months: int = 6, now: Optional[datetime] = None
) -> RevenueStats:
    """Approved payment totals per month, for the last ``months`` months"""
    now = now or utcnow()
    first_year, first_month = _month_start(now.year, now.month, months - 1)
    since = datetime(first_year, first_month, 1, tzinfo=now.tzinfo)

    buckets = OrderedDict()
    for back in range(months - 1, -1, -1):
        buckets[_month_start(now.year, now.month, back)] = [Decimal("0"), 0]

    query = select(Payment.amount, Payment.decided_at).where(
        and_(Payment.status == PaymentStatus.approved, Payment.decided_at >= since)
    )
    for amount, decided_at in (await session.execute(query)).all():
        decided_at = as_utc(decided_at)
        key = (decided_at.year, decided_at.month)
        if key in buckets:
            buckets[key][0] += Decimal(amount)
            buckets[key][1] += 1

    month_stats = [
        MonthlyRevenue(year=year, month=month, total_amount=total, payments_count=count)
        for (year, month), (total, count) in buckets.items()
    ]
    return RevenueStats(
        months=month_stats,
        total_amount=sum((m.total_amount for m in month_stats), Decimal("0")),
        payments_count=sum(m.payments_count for m in month_stats),
    )
