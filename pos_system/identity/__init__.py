"""
Identity capabilities: user records, credential checks and role membership.
"""

from .interfaces import (
    CredentialVerifier,
    IdentityResult,
    RoleDirectory,
    SignInResult,
    UserRepository,
)
from .store import SqlIdentityStore

__all__ = [
    "CredentialVerifier",
    "IdentityResult",
    "RoleDirectory",
    "SignInResult",
    "UserRepository",
    "SqlIdentityStore",
]
