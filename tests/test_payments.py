import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func
from sqlalchemy.future import select

from freegym.billing.crud import ledger
from freegym.billing.crud import payments
from freegym.billing.models import Membership, PaymentDecision, PaymentStatus
from freegym.core.clock import as_utc
from freegym.core.database import async_session
from freegym.core.exceptions import (
    MembershipActiveError,
    NotFoundError,
    NotPendingError,
    PaymentPendingError,
    ValidationError,
)
from freegym.members.models import MemberRole
from freegym.referrals.crud import referrals
from freegym.referrals.models import Referral, ReferralStatus

from tests.conftest import NOW


@pytest.fixture
def admin(make_member):
    async def _make():
        return await make_member(email="admin@example.com", role=MemberRole.admin)

    return _make


async def _referral_for(session, member_id):
    query = (
        select(Referral)
        .where(Referral.referred_id == member_id)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(query)).scalar_one()


@pytest.mark.asyncio
async def test_request_creates_pending_payment_at_full_price(session, make_member, make_package):
    member = await make_member()
    package = await make_package(price="40.00")

    payment = await payments.request_payment(session, member.id, package.id, installments=2, now=NOW)

    assert payment.status == PaymentStatus.pending
    assert payment.amount == Decimal("40.00")
    assert payment.installments == 2
    assert as_utc(payment.expires_at) == NOW + timedelta(hours=48)
    assert not payment.is_expired(NOW + timedelta(hours=47))
    assert payment.is_expired(NOW + timedelta(hours=49))


@pytest.mark.asyncio
async def test_request_with_active_membership(session, make_member, make_package, activate):
    member = await make_member()
    package = await make_package()
    await activate(member.id, package)

    with pytest.raises(MembershipActiveError):
        await payments.request_payment(session, member.id, package.id, now=NOW)


@pytest.mark.asyncio
async def test_request_after_membership_expired(session, make_member, make_package, activate):
    member = await make_member()
    package = await make_package(validity_days=30)
    await activate(member.id, package)

    payment = await payments.request_payment(
        session, member.id, package.id, now=NOW + timedelta(days=31)
    )
    assert payment.status == PaymentStatus.pending


@pytest.mark.asyncio
async def test_second_pending_request(session, make_member, make_package):
    member = await make_member()
    package = await make_package()
    await payments.request_payment(session, member.id, package.id, now=NOW)

    with pytest.raises(PaymentPendingError):
        await payments.request_payment(session, member.id, package.id, now=NOW)


@pytest.mark.asyncio
async def test_request_validation(session, make_member, make_package):
    member = await make_member()
    package = await make_package()

    with pytest.raises(ValidationError):
        await payments.request_payment(session, member.id, package.id, installments=4, now=NOW)

    with pytest.raises(NotFoundError):
        await payments.request_payment(session, member.id, 999, now=NOW)


@pytest.mark.asyncio
async def test_approval_activates_membership(session, make_member, make_package, admin):
    approver = await admin()
    member = await make_member()
    package = await make_package(credits=12, validity_days=30)
    payment = await payments.request_payment(session, member.id, package.id, now=NOW)

    result = await payments.decide_payment(
        session, payment.id, PaymentDecision.approved, approver.id, now=NOW
    )

    assert result.payment.status == PaymentStatus.approved
    assert result.payment.decided_by_id == approver.id
    assert result.membership.credits_remaining == 12
    assert as_utc(result.membership.expires_at) == NOW + timedelta(days=30)
    assert result.referral_rewarded is False
    assert await ledger.get_active_membership(session, member.id, as_of=NOW)


@pytest.mark.asyncio
async def test_cancel_decision_has_no_other_effect(session, make_member, make_package, admin):
    approver = await admin()
    member = await make_member()
    package = await make_package()
    payment = await payments.request_payment(session, member.id, package.id, now=NOW)

    result = await payments.decide_payment(
        session, payment.id, PaymentDecision.cancelled, approver.id, now=NOW
    )

    assert result.payment.status == PaymentStatus.cancelled
    assert result.membership is None
    assert await ledger.get_membership(session, member.id) is None

    # The member may ask again
    again = await payments.request_payment(session, member.id, package.id, now=NOW)
    assert again.status == PaymentStatus.pending


@pytest.mark.asyncio
async def test_second_decision_is_rejected(session, make_member, make_package, admin):
    approver = await admin()
    member = await make_member()
    package = await make_package(credits=12)
    member_id, approver_id = member.id, approver.id
    payment = await payments.request_payment(session, member_id, package.id, now=NOW)
    payment_id = payment.id
    await payments.decide_payment(session, payment_id, PaymentDecision.approved, approver_id, now=NOW)

    with pytest.raises(NotPendingError) as exc_info:
        await payments.decide_payment(
            session, payment_id, PaymentDecision.approved, approver_id, now=NOW
        )
    assert exc_info.value.details["status"] == "approved"

    count = (
        await session.execute(
            select(func.count(Membership.id)).where(Membership.member_id == member_id)
        )
    ).scalar()
    assert count == 1
    assert (await ledger.get_membership(session, member_id)).credits_remaining == 12


@pytest.mark.asyncio
async def test_concurrent_approvals_activate_once(session, make_member, make_package, admin):
    approver = await admin()
    member = await make_member()
    package = await make_package(credits=12)
    payment = await payments.request_payment(session, member.id, package.id, now=NOW)
    await session.commit()

    async def approve():
        async with async_session() as s:
            return await payments.decide_payment(
                s, payment.id, PaymentDecision.approved, approver.id, now=NOW
            )

    results = await asyncio.gather(approve(), approve(), return_exceptions=True)

    assert sum(1 for r in results if isinstance(r, NotPendingError)) == 1
    assert (await ledger.get_membership(session, member.id)).credits_remaining == 12


@pytest.mark.asyncio
async def test_decide_unknown_payment(session, admin):
    approver = await admin()

    with pytest.raises(NotFoundError):
        await payments.decide_payment(session, 999, PaymentDecision.approved, approver.id, now=NOW)


@pytest.mark.asyncio
async def test_referred_member_approval_rewards_both(
    session, make_member, make_package, activate, admin
):
    approver = await admin()
    referrer = await make_member()
    await activate(referrer.id, await make_package(credits=12))
    referred = await make_member(referral_code=referrer.referral_code.lower())

    package = await make_package(price="40.00", credits=12, validity_days=30)
    payment = await payments.request_payment(session, referred.id, package.id, installments=2, now=NOW)
    result = await payments.decide_payment(
        session, payment.id, PaymentDecision.approved, approver.id, now=NOW
    )

    assert result.payment.status == PaymentStatus.approved
    assert result.payment.amount == Decimal("40.00")
    assert result.referral_rewarded is True
    assert result.membership.credits_remaining == 12 + 5
    assert as_utc(result.membership.expires_at) == NOW + timedelta(days=30)

    referral = await _referral_for(session, referred.id)
    assert referral.status == ReferralStatus.completed
    assert referral.referrer_id == referrer.id
    assert (await ledger.get_membership(session, referrer.id)).credits_remaining == 12 + 5


@pytest.mark.asyncio
async def test_referral_rewarded_only_once(session, make_member, make_package, activate, admin):
    approver = await admin()
    referrer = await make_member()
    await activate(referrer.id, await make_package(credits=10, validity_days=365))
    referred = await make_member(referral_code=referrer.referral_code)
    package = await make_package(credits=12, validity_days=30)

    first = await payments.request_payment(session, referred.id, package.id, now=NOW)
    await payments.decide_payment(session, first.id, PaymentDecision.approved, approver.id, now=NOW)

    # Renewal after the first membership expired
    later = NOW + timedelta(days=31)
    renewal = await payments.request_payment(session, referred.id, package.id, now=later)
    result = await payments.decide_payment(
        session, renewal.id, PaymentDecision.approved, approver.id, now=later
    )

    assert result.referral_rewarded is False
    assert result.membership.credits_remaining == 12
    assert (await ledger.get_membership(session, referrer.id)).credits_remaining == 15
    assert await referrals.on_approved_payment(session, referred.id, now=later) is None


@pytest.mark.asyncio
async def test_failed_reward_keeps_approval_and_can_be_reconciled(
    session, make_member, make_package, activate, admin, monkeypatch
):
    approver = await admin()
    referrer = await make_member()
    await activate(referrer.id, await make_package(credits=10))
    referred = await make_member(referral_code=referrer.referral_code)
    package = await make_package(credits=12)
    payment = await payments.request_payment(session, referred.id, package.id, now=NOW)

    async def broken_reward(*args, **kwargs):
        raise RuntimeError("reward step failed")

    with monkeypatch.context() as patch:
        patch.setattr(referrals, "on_approved_payment", broken_reward)
        with pytest.raises(RuntimeError):
            await payments.decide_payment(
                session, payment.id, PaymentDecision.approved, approver.id, now=NOW
            )

    stored = await payments.get_payment(session, payment.id)
    assert stored.status == PaymentStatus.approved
    assert (await ledger.get_membership(session, referred.id)).credits_remaining == 12
    assert (await _referral_for(session, referred.id)).status == ReferralStatus.pending

    reconciled = await referrals.reconcile_referral(session, referred.id)

    assert reconciled.rewarded is True
    assert (await ledger.get_membership(session, referred.id)).credits_remaining == 17
    assert (await ledger.get_membership(session, referrer.id)).credits_remaining == 15

    again = await referrals.reconcile_referral(session, referred.id)
    assert again.rewarded is False


@pytest.mark.asyncio
async def test_reward_before_referrer_has_membership_is_banked(
    session, make_member, make_package, activate, admin
):
    approver = await admin()
    referrer = await make_member()
    referred = await make_member(referral_code=referrer.referral_code)
    package = await make_package(credits=12)
    payment = await payments.request_payment(session, referred.id, package.id, now=NOW)
    await payments.decide_payment(session, payment.id, PaymentDecision.approved, approver.id, now=NOW)

    membership = await activate(referrer.id, package)
    assert membership.credits_remaining == 12 + 5


@pytest.mark.asyncio
async def test_reward_to_lapsed_referrer_survives_renewal(
    session, make_member, make_package, activate, admin
):
    approver = await admin()
    referrer = await make_member()
    package = await make_package(credits=12, validity_days=30)
    await activate(referrer.id, package)
    referred = await make_member(referral_code=referrer.referral_code)
    lapsed = NOW + timedelta(days=31)

    payment = await payments.request_payment(session, referred.id, package.id, now=lapsed)
    result = await payments.decide_payment(
        session, payment.id, PaymentDecision.approved, approver.id, now=lapsed
    )
    assert result.referral_rewarded is True

    renewal = await payments.request_payment(session, referrer.id, package.id, now=lapsed)
    renewed = await payments.decide_payment(
        session, renewal.id, PaymentDecision.approved, approver.id, now=lapsed
    )

    assert renewed.membership.credits_remaining == 12 + 5


@pytest.mark.asyncio
async def test_pending_queue_flags_expired_requests(session, make_member, make_package):
    member = await make_member()
    package = await make_package()
    await payments.request_payment(session, member.id, package.id, now=NOW)

    fresh = await payments.get_pending_payments(session, now=NOW + timedelta(hours=1))
    stale = await payments.get_pending_payments(session, now=NOW + timedelta(hours=49))

    assert fresh.total == 1
    assert fresh.payments[0].member_email == member.email
    assert fresh.payments[0].is_expired is False
    assert stale.payments[0].is_expired is True
    assert stale.payments[0].status == PaymentStatus.pending


@pytest.mark.asyncio
async def test_revenue_per_month(session, make_member, make_package, admin):
    approver = await admin()
    package = await make_package(price="40.00")
    january = datetime(2030, 1, 15, 12, 0, tzinfo=timezone.utc)

    for approved_at in (january, NOW):
        member = await make_member()
        payment = await payments.request_payment(session, member.id, package.id, now=approved_at)
        await payments.decide_payment(
            session, payment.id, PaymentDecision.approved, approver.id, now=approved_at
        )

    stats = await payments.get_revenue_stats(session, months=6, now=NOW + timedelta(days=3))

    assert [(m.year, m.month) for m in stats.months] == [
        (2029, 10), (2029, 11), (2029, 12), (2030, 1), (2030, 2), (2030, 3),
    ]
    by_month = {(m.year, m.month): m for m in stats.months}
    assert by_month[(2030, 1)].total_amount == Decimal("40.00")
    assert by_month[(2030, 2)].payments_count == 0
    assert by_month[(2030, 3)].payments_count == 1
    assert stats.total_amount == Decimal("80.00")
    assert stats.payments_count == 2
