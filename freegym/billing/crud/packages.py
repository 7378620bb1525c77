"""Membership package catalog"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from freegym.core.database import TransactionManager, db_operation
from freegym.core.logging_utils import log_business_event
from freegym.billing.models import MembershipPackage, PackageType
from freegym.billing.schemas.packages import PackageCreate

logger = logging.getLogger(__name__)

DEFAULT_PACKAGES = [
    {"type": PackageType.monthly, "price": Decimal("40.00"), "credits": 12, "validity_days": 30},
    {"type": PackageType.three_month, "price": Decimal("110.00"), "credits": 36, "validity_days": 90},
    {"type": PackageType.six_month, "price": Decimal("200.00"), "credits": 72, "validity_days": 180},
]


@db_operation
async def list_active_packages(session: AsyncSession) -> List[MembershipPackage]:
    query = (
        select(MembershipPackage)
        .where(MembershipPackage.is_active.is_(True))
        .order_by(MembershipPackage.price, MembershipPackage.id)
    )
    result = await session.execute(query)
    return result.scalars().all()


@db_operation
async def get_package(session: AsyncSession, package_id: int) -> Optional[MembershipPackage]:
    result = await session.execute(
        select(MembershipPackage).where(MembershipPackage.id == package_id)
    )
    return result.scalar_one_or_none()


@db_operation
async def create_package(session: AsyncSession, package: PackageCreate) -> MembershipPackage:
    async with TransactionManager(session):
        db_package = MembershipPackage(**package.model_dump())
        session.add(db_package)
        await session.flush()

    log_business_event(
        "package_created",
        "package",
        db_package.id,
        {"type": db_package.type.value, "credits": db_package.credits},
    )
    return db_package


@db_operation
async def seed_default_packages(session: AsyncSession) -> int:
    """Insert the default catalog into an empty packages table"""
    count = (await session.execute(select(func.count(MembershipPackage.id)))).scalar()
    if count:
        return 0

    async with TransactionManager(session):
        session.add_all(MembershipPackage(**values) for values in DEFAULT_PACKAGES)

    logger.info(f"Seeded {len(DEFAULT_PACKAGES)} default membership packages")
    return len(DEFAULT_PACKAGES)
