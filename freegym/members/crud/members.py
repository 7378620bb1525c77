"""Member CRUD - registration, lookups and the member dashboard"""
import logging
import secrets
import string
from datetime import date, datetime
from typing import Optional

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.billing.crud import ledger
from freegym.core.clock import utcnow
from freegym.core.config import REFERRAL_CODE_LENGTH, REFERRAL_REWARD_CREDITS
from freegym.core.database import TransactionManager, db_operation
from freegym.core.exceptions import (
    BusinessLogicError,
    DuplicateError,
    NotFoundError,
    ValidationError,
)
from freegym.core.logging_utils import log_business_event
from freegym.core.validations import (
    clean_phone_number,
    normalize_email,
    normalize_referral_code,
)
from freegym.members.models import Member, MemberRole
from freegym.members.schemas.members import DashboardStats, MemberUpdate
from freegym.referrals.models import Referral, ReferralStatus
from freegym.schedule.models import Booking, BookingStatus

logger = logging.getLogger(__name__)

REFERRAL_CODE_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_ATTEMPTS = 10


@db_operation
async def get_member(session: AsyncSession, member_id: int) -> Optional[Member]:
    result = await session.execute(select(Member).where(Member.id == member_id))
    return result.scalar_one_or_none()


@db_operation
async def get_member_by_email(session: AsyncSession, email: str) -> Optional[Member]:
    result = await session.execute(select(Member).where(Member.email == email))
    return result.scalar_one_or_none()


@db_operation
async def get_member_by_referral_code(session: AsyncSession, code: str) -> Optional[Member]:
    result = await session.execute(
        select(Member).where(Member.referral_code == normalize_referral_code(code))
    )
    return result.scalar_one_or_none()


async def generate_referral_code(session: AsyncSession) -> str:
    for _ in range(REFERRAL_CODE_ATTEMPTS):
        code = "".join(
            secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH)
        )
        if not await get_member_by_referral_code(session, code):
            return code
    raise BusinessLogicError(
        "Could not generate a unique referral code",
        {"attempts": REFERRAL_CODE_ATTEMPTS},
        503,
        "REFERRAL_CODE_UNAVAILABLE",
    )


@db_operation
async def register_member(
    session: AsyncSession,
    email: str,
    first_name: str,
    last_name: str,
    phone: Optional[str] = None,
    referral_code: Optional[str] = None,
    role: MemberRole = MemberRole.member,
    reward_credits: int = REFERRAL_REWARD_CREDITS,
) -> Member:
    """
    Create a member with its own referral code.

    A referral code, if given, must belong to an existing member; a pending
    referral is recorded and rewarded on this member's first approved payment.
    """
    email = normalize_email(email)
    phone = clean_phone_number(phone) if phone else None

    if await get_member_by_email(session, email):
        raise DuplicateError("Member", "email", email)

    referrer = None
    if referral_code:
        referrer = await get_member_by_referral_code(session, referral_code)
        if not referrer:
            raise NotFoundError("Referral code", normalize_referral_code(referral_code))

    code = await generate_referral_code(session)

    referrer_id = referrer.id if referrer else None
    try:
        async with TransactionManager(session):
            member = Member(
                email=email,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                phone=phone,
                role=role,
                referral_code=code,
                referred_by_id=referrer_id,
                banked_credits=0,
            )
            session.add(member)
            await session.flush()

            if referrer:
                session.add(
                    Referral(
                        referrer_id=referrer_id,
                        referred_id=member.id,
                        referral_code=referrer.referral_code,
                        reward_credits=reward_credits,
                        status=ReferralStatus.pending,
                    )
                )
    except IntegrityError:
        # Lost a race for the email or, rarely, for the generated code
        if await get_member_by_email(session, email):
            raise DuplicateError("Member", "email", email)
        raise DuplicateError("Member", "referral_code", code)

    log_business_event(
        "member_registered",
        "member",
        member.id,
        {"role": role.value, "referred_by": referrer_id},
    )
    return member


@db_operation
async def update_member(
    session: AsyncSession, member_id: int, member: MemberUpdate
) -> Member:
    """Update the member's own name and phone"""
    db_member = await get_member(session, member_id)
    if not db_member:
        raise NotFoundError("Member", str(member_id))

    member_data = member.model_dump(exclude_unset=True)
    if "phone" in member_data:
        phone = member_data["phone"]
        member_data["phone"] = clean_phone_number(phone) if phone else None
    for field in ("first_name", "last_name"):
        if field in member_data:
            value = (member_data[field] or "").strip()
            if not value:
                raise ValidationError(f"{field} cannot be empty")
            member_data[field] = value

    async with TransactionManager(session):
        for key, value in member_data.items():
            setattr(db_member, key, value)

    await session.refresh(db_member)

    log_business_event(
        "member_updated", "member", db_member.id, {"fields": sorted(member_data)}
    )
    return db_member


@db_operation
async def get_dashboard_stats(
    session: AsyncSession, member: Member, now: Optional[datetime] = None
) -> DashboardStats:
    now = now or utcnow()
    today = now.date()
    month_start = date(today.year, today.month, 1)
    next_month = date(today.year + today.month // 12, today.month % 12 + 1, 1)

    stats = DashboardStats(banked_credits=member.banked_credits)

    membership = await ledger.get_membership(session, member.id)
    if membership:
        stats.credits_remaining = membership.credits_remaining
        stats.membership_status = membership.effective_status(now)
        stats.membership_expires_at = membership.expires_at

    not_cancelled = Booking.status != BookingStatus.cancelled

    stats.total_bookings = (
        await session.execute(
            select(func.count(Booking.id)).where(
                and_(Booking.member_id == member.id, not_cancelled)
            )
        )
    ).scalar() or 0

    stats.bookings_this_month = (
        await session.execute(
            select(func.count(Booking.id)).where(
                and_(
                    Booking.member_id == member.id,
                    not_cancelled,
                    Booking.booking_date >= month_start,
                    Booking.booking_date < next_month,
                )
            )
        )
    ).scalar() or 0

    stats.upcoming_bookings = (
        await session.execute(
            select(func.count(Booking.id)).where(
                and_(
                    Booking.member_id == member.id,
                    Booking.status == BookingStatus.confirmed,
                    Booking.booking_date >= today,
                )
            )
        )
    ).scalar() or 0

    stats.total_referrals = (
        await session.execute(
            select(func.count(Referral.id)).where(Referral.referrer_id == member.id)
        )
    ).scalar() or 0

    return stats
