"""
Token Issuer

Builds signed HS256 access tokens and their companion refresh tokens, and
rotates a pair on refresh. Each refresh token is bound to the `jti` of the
access token it was issued with and can be exchanged exactly once.
"""

from __future__ import annotations

import base64
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from jose import JWTError, jwt

from .config import JwtSettings
from .identity.interfaces import RoleDirectory, UserRepository
from .models.api import AuthResponse, RefreshRequest
from .models.tokens import RefreshToken
from .models.users import User
from .token_store import RefreshTokenStore

logger = structlog.get_logger(__name__)

# Claim names
USER_ID_CLAIM = "nameid"
DISPLAY_NAME_CLAIM = "unique_name"
EMAIL_CLAIM = "email"
BRANCH_CLAIM = "branchId"
ROLE_CLAIM = "role"

REFRESH_TOKEN_BYTES = 64


@dataclass
class TokenPrincipal:
    """Identity carried by a validated access token."""
    user_id: str
    username: str
    jwt_id: str
    display_name: str
    email: Optional[str] = None
    branch_id: Optional[str] = None
    roles: List[str] = field(default_factory=list)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> Optional[TokenPrincipal]:
        user_id = claims.get(USER_ID_CLAIM)
        jwt_id = claims.get("jti")
        if not user_id or not jwt_id:
            return None

        roles = claims.get(ROLE_CLAIM, [])
        if isinstance(roles, str):
            roles = [roles]

        return cls(
            user_id=user_id,
            username=claims.get("sub", ""),
            jwt_id=jwt_id,
            display_name=claims.get(DISPLAY_NAME_CLAIM, ""),
            email=claims.get(EMAIL_CLAIM),
            branch_id=claims.get(BRANCH_CLAIM),
            roles=list(roles),
        )


def generate_refresh_token_string() -> str:
    """64 bytes from the OS CSPRNG, base64 encoded."""
    return base64.b64encode(secrets.token_bytes(REFRESH_TOKEN_BYTES)).decode("ascii")


def decode_access_token(
    token: str, settings: JwtSettings, verify_lifetime: bool = True
) -> Optional[TokenPrincipal]:
    """
    Validate signature, algorithm, issuer and audience and return the principal.

    Lifetime is only checked when verify_lifetime is set, which lets the
    refresh flow read an expired token. Any failure yields None.
    """
    try:
        header = jwt.get_unverified_header(token)
        if str(header.get("alg", "")).upper() != settings.algorithm.upper():
            return None

        claims = jwt.decode(
            token,
            settings.key,
            algorithms=[settings.algorithm],
            audience=settings.audience,
            issuer=settings.issuer,
            options={
                "verify_exp": verify_lifetime,
                "require_aud": True,
                "require_iss": True,
                "require_exp": verify_lifetime,
                "require_jti": True,
                "leeway": 0,
            },
        )
    except JWTError:
        return None
    except Exception as e:
        logger.warning("Unexpected access token decode failure", error=str(e))
        return None

    # exp must be present even when its lifetime is not checked
    if "exp" not in claims:
        return None

    return TokenPrincipal.from_claims(claims)


class TokenService:
    """Issues, rotates and revokes token pairs."""

    def __init__(
        self,
        settings: JwtSettings,
        token_store: RefreshTokenStore,
        users: UserRepository,
        roles: RoleDirectory,
    ):
        self.settings = settings
        self.token_store = token_store
        self.users = users
        self.roles = roles

    def create_access_token(
        self, user: User, roles: Iterable[str], jwt_id: str, now: datetime
    ) -> Tuple[str, datetime]:
        """Sign an access token for the user; returns the token and its expiry."""
        expires_at = now + timedelta(minutes=self.settings.access_token_expiration_minutes)

        claims: Dict[str, Any] = {
            "sub": user.username,
            USER_ID_CLAIM: user.id,
            "jti": jwt_id,
            DISPLAY_NAME_CLAIM: user.display_name,
            "iss": self.settings.issuer,
            "aud": self.settings.audience,
            "iat": now,
            "nbf": now,
            "exp": expires_at,
        }
        if user.email:
            claims[EMAIL_CLAIM] = user.email
        if user.branch_id:
            claims[BRANCH_CLAIM] = user.branch_id

        role_list = list(roles)
        if role_list:
            claims[ROLE_CLAIM] = role_list

        token = jwt.encode(claims, self.settings.key, algorithm=self.settings.algorithm)
        return token, expires_at

    async def generate_tokens(self, user: User) -> AuthResponse:
        roles = await self.roles.get_roles(user)
        now = datetime.now(timezone.utc)
        jwt_id = str(uuid.uuid4())

        access_token, expires_at = self.create_access_token(user, roles, jwt_id, now)

        refresh_token = generate_refresh_token_string()
        naive_now = now.replace(tzinfo=None)
        await self.token_store.add(
            RefreshToken(
                token=refresh_token,
                jwt_id=jwt_id,
                creation_date=naive_now,
                expiry_date=naive_now + timedelta(days=self.settings.refresh_token_expiration_days),
                user_id=user.id,
                used=False,
                revoked=False,
            )
        )

        return AuthResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            roles=roles,
        )

    def decode_access_token(
        self, token: str, verify_lifetime: bool = True
    ) -> Optional[TokenPrincipal]:
        return decode_access_token(token, self.settings, verify_lifetime)

    async def refresh_tokens(self, request: RefreshRequest) -> Optional[AuthResponse]:
        principal = self.decode_access_token(request.access_token, verify_lifetime=False)
        if principal is None:
            return None

        stored = await self.token_store.get(request.refresh_token)
        if stored is None:
            return None

        # Reject pairs whose halves were not issued together
        if stored.user_id != principal.user_id or stored.jwt_id != principal.jwt_id:
            return None

        now = datetime.now(timezone.utc).replace(tzinfo=None)
        if not stored.is_exchangeable(now):
            return None

        if not await self.token_store.consume(stored, now):
            logger.warning("Refresh token already consumed", user_id=principal.user_id)
            return None

        user = await self.users.find_by_id(principal.user_id)
        if user is None:
            return None

        return await self.generate_tokens(user)

    async def revoke_refresh_token(self, token: str) -> bool:
        return await self.token_store.revoke(token)

    async def revoke_batch(self, tokens: Iterable[str]) -> int:
        return await self.token_store.revoke_many(tokens)
