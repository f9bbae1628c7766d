"""
Authentication Service

Login, registration, token refresh/revocation, logout, password change and
role management. Every flow degrades to None/False/[] on failure so callers
never see raw exceptions; failure reasons go to the log only.
"""

from __future__ import annotations

from typing import List, Optional

import structlog

from .identity.interfaces import CredentialVerifier, RoleDirectory, UserRepository
from .models.api import AuthResponse, RefreshRequest, RegisterRequest
from .models.users import DEFAULT_ROLE, User
from .time_utils import utcnow
from .token_store import RefreshTokenStore
from .tokens import TokenService

logger = structlog.get_logger(__name__)


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        credentials: CredentialVerifier,
        roles: RoleDirectory,
        tokens: TokenService,
        token_store: RefreshTokenStore,
    ):
        self.users = users
        self.credentials = credentials
        self.roles = roles
        self.tokens = tokens
        self.token_store = token_store

    async def login(self, username: str, password: str) -> Optional[AuthResponse]:
        try:
            user = await self.users.find_by_username(username) or await self.users.find_by_email(username)

            if user is None or not user.is_active:
                logger.warning("Login attempt failed", username=username)
                return None

            result = await self.credentials.check_password(user, password, lockout_on_failure=True)
            if not result.succeeded:
                logger.warning("Password check failed", user_id=user.id, result=result.value)
                return None

            user.last_login_at = utcnow()
            await self.users.update(user)

            auth_response = await self.tokens.generate_tokens(user)
            logger.info("User logged in successfully", user_id=user.id)
            return auth_response

        except Exception as e:
            logger.error("Error during login", username=username, error=str(e))
            return None

    async def register(self, request: RegisterRequest) -> Optional[AuthResponse]:
        try:
            existing = await self.users.find_by_username(request.username) or await self.users.find_by_email(request.email)
            if existing is not None:
                logger.warning(
                    "Registration attempt with existing username/email",
                    username=request.username,
                    email=request.email,
                )
                return None

            if request.role and not await self.roles.role_exists(request.role):
                logger.warning("Registration attempt with invalid role", role=request.role)
                return None

            user = User(
                username=request.username,
                email=request.email,
                full_name=request.full_name,
                branch_id=request.branch_id,
                is_active=True,
                created_at=utcnow(),
            )

            result = await self.users.create(user, request.password)
            if not result.succeeded:
                logger.warning(
                    "User creation failed",
                    username=request.username,
                    errors=", ".join(result.errors),
                )
                return None

            role_to_assign = request.role or DEFAULT_ROLE.value
            role_result = await self.roles.add_to_role(user, role_to_assign)
            if not role_result.succeeded:
                logger.warning(
                    "Role assignment failed during registration",
                    user_id=user.id,
                    role=role_to_assign,
                    errors=", ".join(role_result.errors),
                )

            auth_response = await self.tokens.generate_tokens(user)
            logger.info("User registered successfully", user_id=user.id, role=role_to_assign)
            return auth_response

        except Exception as e:
            logger.error("Error during registration", username=request.username, error=str(e))
            return None

    async def refresh_token(self, request: RefreshRequest) -> Optional[AuthResponse]:
        try:
            result = await self.tokens.refresh_tokens(request)
            if result is not None:
                logger.info("Token refreshed successfully")
            else:
                logger.warning("Token refresh failed")
            return result

        except Exception as e:
            logger.error("Error during token refresh", error=str(e))
            return None

    async def revoke_token(self, refresh_token: str) -> bool:
        try:
            result = await self.tokens.revoke_refresh_token(refresh_token)
            if result:
                logger.info("Refresh token revoked successfully")
            else:
                logger.warning("Failed to revoke refresh token")
            return result

        except Exception as e:
            logger.error("Error revoking refresh token", error=str(e))
            return False

    async def logout(self, user_id: str) -> bool:
        try:
            user_tokens = await self.token_store.active_tokens_for_user(user_id)
            if user_tokens:
                revoked = await self.tokens.revoke_batch(user_tokens)
                logger.info("Revoked refresh tokens on logout", user_id=user_id, count=revoked)

            logger.info("User logged out successfully", user_id=user_id)
            return True

        except Exception as e:
            logger.error("Error during logout", user_id=user_id, error=str(e))
            return False

    async def change_password(self, user_id: str, current_password: str, new_password: str) -> bool:
        try:
            user = await self.users.find_by_id(user_id)
            if user is None or not user.is_active:
                return False

            result = await self.credentials.change_password(user, current_password, new_password)
            if result.succeeded:
                logger.info("Password changed successfully", user_id=user_id)
                return True

            logger.warning("Password change failed", user_id=user_id, errors=", ".join(result.errors))
            return False

        except Exception as e:
            logger.error("Error changing password", user_id=user_id, error=str(e))
            return False

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        try:
            return await self.users.find_by_id(user_id)
        except Exception as e:
            logger.error("Error retrieving user", user_id=user_id, error=str(e))
            return None

    async def assign_role(self, user_id: str, role: str) -> bool:
        try:
            user = await self.users.find_by_id(user_id)
            if user is None or not await self.roles.role_exists(role):
                return False

            result = await self.roles.add_to_role(user, role)
            if result.succeeded:
                logger.info("Role assigned to user", role=role, user_id=user_id)
                return True
            return False

        except Exception as e:
            logger.error("Error assigning role", role=role, user_id=user_id, error=str(e))
            return False

    async def remove_role(self, user_id: str, role: str) -> bool:
        try:
            user = await self.users.find_by_id(user_id)
            if user is None:
                return False

            result = await self.roles.remove_from_role(user, role)
            if result.succeeded:
                logger.info("Role removed from user", role=role, user_id=user_id)
                return True
            return False

        except Exception as e:
            logger.error("Error removing role", role=role, user_id=user_id, error=str(e))
            return False

    async def get_user_roles(self, user_id: str) -> List[str]:
        try:
            user = await self.users.find_by_id(user_id)
            if user is None:
                return []
            return await self.roles.get_roles(user)

        except Exception as e:
            logger.error("Error retrieving roles", user_id=user_id, error=str(e))
            return []
