"""
Authentication Endpoints

Login, registration, token rotation, logout, profile and role management.
Failures are reported with generic messages that do not reveal which
credential was wrong.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..auth import CurrentUser, get_current_user, require_admin_or_manager
from ..auth_service import AuthService
from ..dependencies import get_auth_service
from ..mapping import to_user_profile
from ..models.api import (
    APIMessage,
    AssignRoleRequest,
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    RevokeTokenRequest,
    UserProfile,
    UserRoles,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=AuthResponse)
async def login(
    login_request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    result = await auth_service.login(login_request.username, login_request.password)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    return result


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    register_request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
    current_user: CurrentUser = Depends(require_admin_or_manager),
):
    result = await auth_service.register(register_request)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Registration failed. User may already exist or invalid data provided.",
        )
    return result


@router.post("/refresh", response_model=AuthResponse)
async def refresh_token(
    refresh_request: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    result = await auth_service.refresh_token(refresh_request)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )
    return result


@router.post("/revoke", response_model=APIMessage)
async def revoke_token(
    revoke_request: RevokeTokenRequest,
    auth_service: AuthService = Depends(get_auth_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    if not await auth_service.revoke_token(revoke_request.refresh_token):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to revoke token")
    return APIMessage(message="Token revoked successfully")


@router.post("/logout", response_model=APIMessage)
async def logout(
    auth_service: AuthService = Depends(get_auth_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    if not await auth_service.logout(current_user.user_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Logout failed")
    return APIMessage(message="Logged out successfully")


@router.post("/change-password", response_model=APIMessage)
async def change_password(
    change_request: ChangePasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    changed = await auth_service.change_password(
        current_user.user_id,
        change_request.current_password,
        change_request.new_password,
    )
    if not changed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password change failed. Please check your current password.",
        )
    return APIMessage(message="Password changed successfully")


@router.get("/profile", response_model=UserProfile)
async def get_profile(
    auth_service: AuthService = Depends(get_auth_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    user = await auth_service.get_user_by_id(current_user.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    roles = await auth_service.get_user_roles(current_user.user_id)
    return to_user_profile(user, roles)


@router.post("/assign-role", response_model=APIMessage)
async def assign_role(
    assign_request: AssignRoleRequest,
    auth_service: AuthService = Depends(get_auth_service),
    current_user: CurrentUser = Depends(require_admin_or_manager),
):
    if not await auth_service.assign_role(assign_request.user_id, assign_request.role):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to assign role. User or role may not exist.",
        )
    return APIMessage(message=f"Role '{assign_request.role}' assigned successfully")


@router.post("/remove-role", response_model=APIMessage)
async def remove_role(
    remove_request: AssignRoleRequest,
    auth_service: AuthService = Depends(get_auth_service),
    current_user: CurrentUser = Depends(require_admin_or_manager),
):
    if not await auth_service.remove_role(remove_request.user_id, remove_request.role):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to remove role")
    return APIMessage(message=f"Role '{remove_request.role}' removed successfully")


@router.get("/users/{user_id}/roles", response_model=UserRoles)
async def get_user_roles(
    user_id: str,
    auth_service: AuthService = Depends(get_auth_service),
    current_user: CurrentUser = Depends(require_admin_or_manager),
):
    roles = await auth_service.get_user_roles(user_id)
    return UserRoles(user_id=user_id, roles=roles)
