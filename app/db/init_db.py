import asyncio
import logging

from sqlalchemy import select

from app.core.security import get_password_hash
from app.core.settings import settings
from app.db.session import AsyncSessionLocal
from app.models.user import User
from app.schemas.common import Role

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """
    Seed an initial MANAGER account when SEED_MANAGER_EMAIL and SEED_MANAGER_PASSWORD are set.
    """
    if not settings.seed_manager_email or not settings.seed_manager_password:
        logger.info("Manager seeding not configured; skipping")
        return

    email = settings.seed_manager_email.strip().lower()
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.email == email))
        if result.scalar_one_or_none() is not None:
            logger.info("Seed manager %s already exists", email)
            return

        session.add(
            User(
                name=settings.seed_manager_name,
                email=email,
                hashed_password=get_password_hash(settings.seed_manager_password),
                role=Role.MANAGER.value,
                deleted=False,
            )
        )
        await session.commit()
        logger.info("Seed manager %s created", email)


if __name__ == "__main__":
    asyncio.run(init_db())
