"""
Refresh Token Store

Persistence for issued refresh tokens. State changes are conditional updates
so that a token leaves the ACTIVE state at most once, even when concurrent
requests race on the same row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Set

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .models.tokens import RefreshToken

logger = structlog.get_logger(__name__)


class RefreshTokenStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, refresh_token: RefreshToken) -> RefreshToken:
        self.db.add(refresh_token)
        await self.db.commit()
        return refresh_token

    async def get(self, token: str) -> Optional[RefreshToken]:
        result = await self.db.execute(select(RefreshToken).where(RefreshToken.token == token))
        return result.scalar_one_or_none()

    async def consume(self, refresh_token: RefreshToken, now: datetime) -> bool:
        """
        Move an ACTIVE, unexpired token to CONSUMED (used and revoked).

        Returns False when another request already consumed or revoked it.
        """
        result = await self.db.execute(
            update(RefreshToken)
            .where(
                RefreshToken.id == refresh_token.id,
                RefreshToken.used.is_(False),
                RefreshToken.revoked.is_(False),
                RefreshToken.expiry_date > now,
            )
            .values(used=True, revoked=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Nothing changed; close the transaction without expiring loaded rows
            await self.db.commit()
            return False

        await self.db.commit()
        await self.db.refresh(refresh_token)
        return True

    async def revoke(self, token: str) -> bool:
        try:
            result = await self.db.execute(
                update(RefreshToken)
                .where(RefreshToken.token == token)
                .values(revoked=True)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.db.commit()
                return False
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning("Refresh token revocation conflict", error=str(e))
            return False

        await self._refresh_loaded({token})
        return True

    async def revoke_many(self, tokens: Iterable[str]) -> int:
        """Revoke every listed token that is not already revoked; returns rows flipped."""
        tokens = list(tokens)
        if not tokens:
            return 0

        result = await self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.token.in_(tokens), RefreshToken.revoked.is_(False))
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        count = result.rowcount
        await self.db.commit()

        await self._refresh_loaded(set(tokens))
        return count

    async def active_tokens_for_user(self, user_id: str) -> List[str]:
        result = await self.db.execute(
            select(RefreshToken.token).where(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked.is_(False),
            )
        )
        return list(result.scalars().all())

    async def _refresh_loaded(self, tokens: Set[str]) -> None:
        # Bulk updates bypass the identity map; reload any copy this session holds.
        for obj in list(self.db.identity_map.values()):
            if isinstance(obj, RefreshToken) and obj.token in tokens:
                await self.db.refresh(obj)
