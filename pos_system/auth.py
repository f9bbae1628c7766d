from __future__ import annotations

from typing import List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from .config import JwtSettings, get_jwt_settings
from .tokens import TokenPrincipal, decode_access_token

# Bearer token extraction
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    user_id: str
    username: str
    display_name: str
    email: Optional[str] = None
    branch_id: Optional[str] = None
    roles: List[str] = []

    @classmethod
    def from_principal(cls, principal: TokenPrincipal) -> CurrentUser:
        return cls(
            user_id=principal.user_id,
            username=principal.username,
            display_name=principal.display_name,
            email=principal.email,
            branch_id=principal.branch_id,
            roles=principal.roles,
        )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: JwtSettings = Depends(get_jwt_settings),
) -> CurrentUser:
    """Extract and validate current user from JWT token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    principal = decode_access_token(credentials.credentials, settings)
    if principal is None:
        raise credentials_exception

    return CurrentUser.from_principal(principal)


def require_roles(*allowed: str):
    """Dependency to require membership in any of the given roles."""
    def role_checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not set(allowed) & set(current_user.roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Operation requires one of roles: {', '.join(allowed)}"
            )
        return current_user
    return role_checker


# Common role requirements
require_admin_or_manager = require_roles("Admin", "Manager")
