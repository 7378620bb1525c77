from datetime import timedelta

import pytest

from freegym.billing.crud import ledger
from freegym.billing.models import MembershipStatus
from freegym.core.database import TransactionManager
from freegym.core.exceptions import (
    InsufficientCreditError,
    NoMembershipError,
    NotFoundError,
    ValidationError,
)
from freegym.members.crud.members import get_member

from tests.conftest import NOW


@pytest.mark.asyncio
async def test_activation_grants_package_credits_and_validity(session, make_member, make_package, activate):
    member = await make_member()
    package = await make_package(credits=12, validity_days=30)

    membership = await activate(member.id, package)

    assert membership.credits_remaining == 12
    assert membership.status == MembershipStatus.active
    assert membership.effective_status(NOW) == MembershipStatus.active
    active = await ledger.get_active_membership(session, member.id, as_of=NOW)
    assert active is not None
    assert active.id == membership.id


@pytest.mark.asyncio
async def test_expires_at_is_approval_plus_validity(session, make_member, make_package, activate):
    member = await make_member()
    package = await make_package(validity_days=30)
    await activate(member.id, package)

    assert await ledger.get_active_membership(
        session, member.id, as_of=NOW + timedelta(days=29, hours=23)
    )
    assert await ledger.get_active_membership(
        session, member.id, as_of=NOW + timedelta(days=30)
    ) is None

    membership = await ledger.get_membership(session, member.id)
    assert membership.effective_status(NOW + timedelta(days=31)) == MembershipStatus.expired


@pytest.mark.asyncio
async def test_debit_decrements_balance(session, make_member, make_package, activate):
    member = await make_member()
    await activate(member.id, await make_package(credits=3))

    async with TransactionManager(session):
        balance = await ledger.debit(session, member.id, 2)

    assert balance == 1
    assert (await ledger.get_membership(session, member.id)).credits_remaining == 1


@pytest.mark.asyncio
async def test_debit_beyond_balance_fails_and_leaves_balance(session, make_member, make_package, activate):
    member = await make_member()
    member_id = member.id
    await activate(member_id, await make_package(credits=1))

    with pytest.raises(InsufficientCreditError) as exc_info:
        async with TransactionManager(session):
            await ledger.debit(session, member_id, 2)

    assert exc_info.value.details["available"] == 1
    assert (await ledger.get_membership(session, member_id)).credits_remaining == 1


@pytest.mark.asyncio
async def test_debit_without_membership(session, make_member):
    member = await make_member()

    with pytest.raises(NoMembershipError):
        async with TransactionManager(session):
            await ledger.debit(session, member.id, 1)


@pytest.mark.asyncio
async def test_debit_rejects_non_positive_amount(session, make_member):
    member = await make_member()

    with pytest.raises(ValidationError):
        await ledger.debit(session, member.id, 0)


@pytest.mark.asyncio
async def test_credit_adds_to_membership(session, make_member, make_package, activate):
    member = await make_member()
    await activate(member.id, await make_package(credits=2))

    async with TransactionManager(session):
        balance = await ledger.credit(session, member.id, 5)

    assert balance == 7


@pytest.mark.asyncio
async def test_credit_without_membership_is_banked_and_applied_on_activation(
    session, make_member, make_package, activate
):
    member = await make_member()

    async with TransactionManager(session):
        banked = await ledger.credit(session, member.id, 5)
    assert banked == 5

    membership = await activate(member.id, await make_package(credits=12))

    assert membership.credits_remaining == 17
    refreshed = await get_member(session, member.id)
    await session.refresh(refreshed)
    assert refreshed.banked_credits == 0


@pytest.mark.asyncio
async def test_credit_after_expiry_is_banked_for_renewal(
    session, make_member, make_package, activate
):
    member = await make_member()
    package = await make_package(credits=12, validity_days=30)
    await activate(member.id, package)
    lapsed = NOW + timedelta(days=31)

    async with TransactionManager(session):
        banked = await ledger.credit(session, member.id, 5, now=lapsed)

    assert banked == 5
    assert (await ledger.get_membership(session, member.id)).credits_remaining == 12

    renewed = await activate(member.id, package, approved_at=lapsed)
    assert renewed.credits_remaining == 12 + 5


@pytest.mark.asyncio
async def test_credit_after_admin_cancel_is_banked(session, make_member, make_package, activate):
    member = await make_member()
    await activate(member.id, await make_package(credits=3))
    await ledger.cancel_membership(session, member.id, now=NOW)

    async with TransactionManager(session):
        banked = await ledger.credit(session, member.id, 1, now=NOW)

    assert banked == 1
    assert (await ledger.get_membership(session, member.id)).credits_remaining == 3


@pytest.mark.asyncio
async def test_credit_unknown_member(session):
    with pytest.raises(NotFoundError):
        async with TransactionManager(session):
            await ledger.credit(session, 999, 1)


@pytest.mark.asyncio
async def test_reactivation_replaces_the_single_membership_row(
    session, make_member, make_package, activate
):
    member = await make_member()
    first = await activate(member.id, await make_package(credits=4, validity_days=2))
    second = await activate(
        member.id, await make_package(credits=10), approved_at=NOW + timedelta(days=5)
    )

    assert second.id == first.id
    assert second.credits_remaining == 10
    assert await ledger.get_active_membership(session, member.id, as_of=NOW + timedelta(days=6))


@pytest.mark.asyncio
async def test_cancel_membership(session, make_member, make_package, activate):
    member = await make_member()
    await activate(member.id, await make_package())

    membership = await ledger.cancel_membership(session, member.id, now=NOW)

    assert membership.status == MembershipStatus.cancelled
    assert await ledger.get_active_membership(session, member.id, as_of=NOW) is None

    with pytest.raises(NotFoundError):
        await ledger.cancel_membership(session, member.id, now=NOW)
