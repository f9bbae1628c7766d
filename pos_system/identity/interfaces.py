"""
Identity capability interfaces.

The auth flows depend on three narrow capabilities rather than one identity
manager: user lookup/persistence, credential checks, and role membership.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol

from ..models.users import User


class SignInResult(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    LOCKED_OUT = "locked_out"

    @property
    def succeeded(self) -> bool:
        return self is SignInResult.SUCCESS


@dataclass
class IdentityResult:
    """Outcome of an identity mutation, with human-readable errors on failure."""
    succeeded: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def success(cls) -> IdentityResult:
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: str) -> IdentityResult:
        return cls(succeeded=False, errors=list(errors))


class UserRepository(Protocol):
    async def find_by_username(self, username: str) -> Optional[User]: ...

    async def find_by_email(self, email: str) -> Optional[User]: ...

    async def find_by_id(self, user_id: str) -> Optional[User]: ...

    async def create(self, user: User, password: str) -> IdentityResult: ...

    async def update(self, user: User) -> IdentityResult: ...


class CredentialVerifier(Protocol):
    async def check_password(
        self, user: User, password: str, lockout_on_failure: bool
    ) -> SignInResult: ...

    async def change_password(
        self, user: User, current_password: str, new_password: str
    ) -> IdentityResult: ...


class RoleDirectory(Protocol):
    async def get_roles(self, user: User) -> List[str]: ...

    async def add_to_role(self, user: User, role: str) -> IdentityResult: ...

    async def remove_from_role(self, user: User, role: str) -> IdentityResult: ...

    async def role_exists(self, role: str) -> bool: ...
