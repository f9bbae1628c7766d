"""
Request-scoped service composition for FastAPI routes.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .auth_service import AuthService
from .config import JwtSettings, get_jwt_settings
from .database import get_db
from .identity.store import SqlIdentityStore
from .order_service import OrderService
from .token_store import RefreshTokenStore
from .tokens import TokenService


def build_auth_service(db: AsyncSession, settings: JwtSettings) -> AuthService:
    identity = SqlIdentityStore(db)
    token_store = RefreshTokenStore(db)
    tokens = TokenService(settings, token_store, users=identity, roles=identity)
    return AuthService(
        users=identity,
        credentials=identity,
        roles=identity,
        tokens=tokens,
        token_store=token_store,
    )


async def get_auth_service(
    db: AsyncSession = Depends(get_db),
    settings: JwtSettings = Depends(get_jwt_settings),
) -> AuthService:
    return build_auth_service(db, settings)


async def get_order_service(db: AsyncSession = Depends(get_db)) -> OrderService:
    return OrderService(db)
