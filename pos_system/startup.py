from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from .config import AdminSeed
from .database import Base, async_session_maker, engine
from .identity.store import SqlIdentityStore
from .models.users import ROLE_DESCRIPTIONS, RoleName, User

logger = structlog.get_logger(__name__)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables in the database."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_roles(db: AsyncSession) -> None:
    identity = SqlIdentityStore(db)
    for role in RoleName:
        if not await identity.role_exists(role.value):
            await identity.create_role(role.value, ROLE_DESCRIPTIONS[role])
            logger.info("Seeded role", role=role.value)


async def seed_admin(db: AsyncSession, seed: AdminSeed) -> None:
    identity = SqlIdentityStore(db)
    if await identity.find_by_email(seed.email) is not None:
        return

    admin = User(
        username=seed.username,
        email=seed.email,
        full_name=seed.full_name,
        branch_id=seed.branch_id,
        branch_name=seed.branch_name,
        is_active=True,
    )
    result = await identity.create(admin, seed.password)
    if not result.succeeded:
        for error in result.errors:
            logger.error("Error creating admin user", error=error)
        return

    await identity.add_to_role(admin, RoleName.ADMIN.value)
    logger.info("Seeded admin user", username=seed.username)


async def startup() -> None:
    """Application startup tasks."""
    await create_tables(engine)
    async with async_session_maker() as session:
        await seed_roles(session)
        await seed_admin(session, AdminSeed.from_env())
