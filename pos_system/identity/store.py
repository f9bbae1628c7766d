"""
SQL-backed identity store.

Implements user lookup, credential verification with lockout, and role
membership over the async session.
"""

from __future__ import annotations

from datetime import timedelta
from typing import List, Optional

import structlog
from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import IdentityOptions, get_identity_options
from ..models.users import Role, User, user_roles
from ..time_utils import utcnow
from .interfaces import IdentityResult, SignInResult
from .passwords import get_password_hash_async, validate_password, verify_password_async

logger = structlog.get_logger(__name__)


class SqlIdentityStore:
    """UserRepository, CredentialVerifier and RoleDirectory over one session."""

    def __init__(self, db: AsyncSession, options: Optional[IdentityOptions] = None):
        self.db = db
        self.options = options or get_identity_options()

    # ---------- users ----------

    async def find_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.username) == username.lower())
        )
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def create(self, user: User, password: str) -> IdentityResult:
        errors = []
        if await self.find_by_username(user.username):
            errors.append(f"Username '{user.username}' is already taken.")
        if user.email and await self.find_by_email(user.email):
            errors.append(f"Email '{user.email}' is already taken.")
        errors.extend(validate_password(password, self.options))
        if errors:
            return IdentityResult.failed(*errors)

        user.password_hash = await get_password_hash_async(password)
        if user.is_active is None:
            user.is_active = True
        user.access_failed_count = 0
        if user.created_at is None:
            user.created_at = utcnow()

        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return IdentityResult.failed("A user with this username or email already exists.")
        return IdentityResult.success()

    async def update(self, user: User) -> IdentityResult:
        self.db.add(user)
        await self.db.commit()
        return IdentityResult.success()

    # ---------- credentials ----------

    async def check_password(
        self, user: User, password: str, lockout_on_failure: bool
    ) -> SignInResult:
        now = utcnow()
        if user.lockout_end is not None and user.lockout_end > now:
            return SignInResult.LOCKED_OUT

        if await verify_password_async(password, user.password_hash):
            if user.access_failed_count or user.lockout_end is not None:
                user.access_failed_count = 0
                user.lockout_end = None
                await self.db.commit()
            return SignInResult.SUCCESS

        if not lockout_on_failure:
            return SignInResult.FAILED

        user.access_failed_count = (user.access_failed_count or 0) + 1
        if user.access_failed_count >= self.options.max_failed_access_attempts:
            user.lockout_end = now + timedelta(minutes=self.options.lockout_minutes)
            user.access_failed_count = 0
            await self.db.commit()
            logger.warning("User locked out after repeated failures", user_id=user.id)
            return SignInResult.LOCKED_OUT

        await self.db.commit()
        return SignInResult.FAILED

    async def change_password(
        self, user: User, current_password: str, new_password: str
    ) -> IdentityResult:
        if not await verify_password_async(current_password, user.password_hash):
            return IdentityResult.failed("Incorrect password.")

        errors = validate_password(new_password, self.options)
        if errors:
            return IdentityResult.failed(*errors)

        user.password_hash = await get_password_hash_async(new_password)
        await self.db.commit()
        return IdentityResult.success()

    # ---------- roles ----------

    async def _find_role(self, name: str) -> Optional[Role]:
        result = await self.db.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    async def get_roles(self, user: User) -> List[str]:
        result = await self.db.execute(
            select(Role.name)
            .join(user_roles, user_roles.c.role_id == Role.id)
            .where(user_roles.c.user_id == user.id)
            .order_by(Role.name)
        )
        return list(result.scalars().all())

    async def role_exists(self, role: str) -> bool:
        return await self._find_role(role) is not None

    async def add_to_role(self, user: User, role: str) -> IdentityResult:
        role_row = await self._find_role(role)
        if role_row is None:
            return IdentityResult.failed(f"Role '{role}' does not exist.")
        if role in await self.get_roles(user):
            return IdentityResult.failed(f"User already in role '{role}'.")

        await self.db.execute(insert(user_roles).values(user_id=user.id, role_id=role_row.id))
        await self.db.commit()
        return IdentityResult.success()

    async def remove_from_role(self, user: User, role: str) -> IdentityResult:
        role_row = await self._find_role(role)
        if role_row is None or role not in await self.get_roles(user):
            return IdentityResult.failed(f"User is not in role '{role}'.")

        await self.db.execute(
            delete(user_roles).where(
                user_roles.c.user_id == user.id,
                user_roles.c.role_id == role_row.id,
            )
        )
        await self.db.commit()
        return IdentityResult.success()

    async def create_role(self, name: str, description: Optional[str] = None) -> Role:
        role = Role(name=name, description=description)
        self.db.add(role)
        await self.db.commit()
        return role
