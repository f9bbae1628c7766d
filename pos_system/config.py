from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./pos_system.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

DEFAULT_ACCESS_TOKEN_MINUTES = 15
DEFAULT_REFRESH_TOKEN_DAYS = 7
MIN_SIGNING_KEY_BYTES = 32


@dataclass(frozen=True)
class JwtSettings:
    """Signing and lifetime settings for access and refresh tokens."""
    key: str
    issuer: str
    audience: str
    access_token_expiration_minutes: int = DEFAULT_ACCESS_TOKEN_MINUTES
    refresh_token_expiration_days: int = DEFAULT_REFRESH_TOKEN_DAYS
    algorithm: str = "HS256"

    def __post_init__(self) -> None:
        if len(self.key.encode("utf-8")) < MIN_SIGNING_KEY_BYTES:
            raise ValueError(
                f"JWT signing key must be at least {MIN_SIGNING_KEY_BYTES} bytes"
            )

    @classmethod
    def from_env(cls) -> JwtSettings:
        return cls(
            key=os.getenv("JWT_SECRET_KEY", "your-secret-key-change-in-production"),
            issuer=os.getenv("JWT_ISSUER", "pos-system"),
            audience=os.getenv("JWT_AUDIENCE", "pos-system-clients"),
            access_token_expiration_minutes=int(
                os.getenv("JWT_ACCESS_TOKEN_MINUTES", DEFAULT_ACCESS_TOKEN_MINUTES)
            ),
            refresh_token_expiration_days=int(
                os.getenv("JWT_REFRESH_TOKEN_DAYS", DEFAULT_REFRESH_TOKEN_DAYS)
            ),
        )


@dataclass(frozen=True)
class IdentityOptions:
    """Password policy and lockout rules applied by the identity store."""
    required_length: int = 6
    require_digit: bool = True
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_non_alphanumeric: bool = True
    max_failed_access_attempts: int = 5
    lockout_minutes: int = 5


@dataclass(frozen=True)
class AdminSeed:
    username: str
    email: str
    password: str
    full_name: str = "System Admin"
    branch_id: str = "BRANCH_MAIN"
    branch_name: str = "Main Branch"

    @classmethod
    def from_env(cls) -> AdminSeed:
        return cls(
            username=os.getenv("POS_ADMIN_USERNAME", "admin"),
            email=os.getenv("POS_ADMIN_EMAIL", "admin@pos.local"),
            password=os.getenv("POS_ADMIN_PASSWORD", "Admin@1234!"),
        )


@lru_cache(maxsize=1)
def get_jwt_settings() -> JwtSettings:
    return JwtSettings.from_env()


@lru_cache(maxsize=1)
def get_identity_options() -> IdentityOptions:
    return IdentityOptions()
