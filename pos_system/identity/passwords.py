from __future__ import annotations

import asyncio
from typing import List

from passlib.context import CryptContext

from ..config import BCRYPT_ROUNDS, IdentityOptions

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


async def verify_password_async(plain_password: str, hashed_password: str) -> bool:
    return await asyncio.to_thread(verify_password, plain_password, hashed_password)


async def get_password_hash_async(password: str) -> str:
    return await asyncio.to_thread(get_password_hash, password)


def validate_password(password: str, options: IdentityOptions) -> List[str]:
    """
    Check a candidate password against the configured policy.

    Returns every violated rule; an empty list means the password is acceptable.
    """
    errors = []
    if len(password) < options.required_length:
        errors.append(f"Passwords must be at least {options.required_length} characters.")
    if options.require_digit and not any(c.isdigit() for c in password):
        errors.append("Passwords must have at least one digit ('0'-'9').")
    if options.require_lowercase and not any(c.islower() for c in password):
        errors.append("Passwords must have at least one lowercase ('a'-'z').")
    if options.require_uppercase and not any(c.isupper() for c in password):
        errors.append("Passwords must have at least one uppercase ('A'-'Z').")
    if options.require_non_alphanumeric and all(c.isalnum() for c in password):
        errors.append("Passwords must have at least one non alphanumeric character.")
    return errors
