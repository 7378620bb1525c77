import asyncio
import logging

from freegym.core.config import SEED_DEFAULT_PACKAGES
from freegym.core.database import async_session, db_manager
from freegym.core.exceptions import DatabaseError

# Model modules register their tables on Base.metadata
from freegym.members import models as member_models  # noqa: F401
from freegym.billing import models as billing_models  # noqa: F401
from freegym.schedule import models as schedule_models  # noqa: F401
from freegym.referrals import models as referral_models  # noqa: F401
from freegym.billing.crud.packages import seed_default_packages

logger = logging.getLogger(__name__)


async def create_initial_packages():
    """Seed the default package catalog when the table is empty"""
    async with async_session() as session:
        created = await seed_default_packages(session)
        if created:
            logger.info(f"Default packages created ({created})")
        else:
            logger.info("Package catalog already populated, skipping seed")


async def init_database(seed_packages: bool = SEED_DEFAULT_PACKAGES):
    """Initialize database with tables and initial data"""
    try:
        logger.info("Starting database initialization...")

        await db_manager.create_tables()
        logger.info("✅ Database tables created/verified")

        if seed_packages:
            await create_initial_packages()
            logger.info("✅ Initial data created/verified")

        logger.info("🎉 Database initialization completed successfully")

    except DatabaseError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during database initialization: {e}")
        raise DatabaseError(f"Database initialization failed: {str(e)}")


if __name__ == "__main__":
    import sys

    try:
        asyncio.run(init_database())
    except KeyboardInterrupt:
        logger.info("Database initialization cancelled by user")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        sys.exit(1)
