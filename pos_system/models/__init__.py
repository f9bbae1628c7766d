"""
POS Data Models

Database models and Pydantic schemas for the POS backend.
"""

from .users import DEFAULT_ROLE, ROLE_DESCRIPTIONS, Role, RoleName, User, user_roles
from .tokens import RefreshToken, TokenState
from .inventory import (
    Category, Order, OrderItem, OrderStatus, PaymentMethod, Product, ProductLineItem
)
from .api import (
    APIMessage, HealthResponse,
    LoginRequest, RegisterRequest, RefreshRequest, RevokeTokenRequest,
    ChangePasswordRequest, AssignRoleRequest, AuthResponse, UserProfile, UserRoles,
    OrderItemRequest, CreateOrderRequest, OrderItemResponse, OrderResponse
)

__all__ = [
    # Database models
    "User",
    "Role",
    "RoleName",
    "ROLE_DESCRIPTIONS",
    "DEFAULT_ROLE",
    "user_roles",
    "RefreshToken",
    "TokenState",
    "Category",
    "Product",
    "ProductLineItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    # API models
    "APIMessage",
    "HealthResponse",
    "LoginRequest",
    "RegisterRequest",
    "RefreshRequest",
    "RevokeTokenRequest",
    "ChangePasswordRequest",
    "AssignRoleRequest",
    "AuthResponse",
    "UserProfile",
    "UserRoles",
    "OrderItemRequest",
    "CreateOrderRequest",
    "OrderItemResponse",
    "OrderResponse",
]
