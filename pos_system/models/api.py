"""
POS API Models

Pydantic models for API requests/responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from .inventory import PaymentMethod


class APIMessage(BaseModel):
    """Plain acknowledgement or error body"""
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"


# ---------- Authentication ----------

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, description="Username or email")
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1)
    full_name: Optional[str] = Field(None, max_length=200)
    branch_id: Optional[str] = Field(None, max_length=50)
    role: Optional[str] = Field(None, description="Role to grant; Cashier when omitted")


class RefreshRequest(BaseModel):
    access_token: str = Field(..., description="Current, possibly expired, access token")
    refresh_token: str = Field(..., description="Refresh token issued alongside it")


class RevokeTokenRequest(BaseModel):
    refresh_token: str


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class AssignRoleRequest(BaseModel):
    user_id: str
    role: str


class AuthResponse(BaseModel):
    """Access/refresh token pair"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_at: datetime
    roles: List[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    id: str
    username: str
    email: str = ""
    full_name: str = ""
    branch_id: str = ""
    branch_name: str = ""
    employee_id: Optional[str] = None
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None
    roles: List[str] = Field(default_factory=list)


class UserRoles(BaseModel):
    user_id: str
    roles: List[str]


# ---------- Orders ----------

class OrderItemRequest(BaseModel):
    product_line_item_id: str = Field(..., min_length=1)
    sales_price: Decimal = Field(..., ge=0, description="Price actually charged per unit")
    quantity: int = Field(..., ge=1, le=1000, description="Quantity must be at least 1")


class CreateOrderRequest(BaseModel):
    payment_method: PaymentMethod
    is_pending: bool = False
    order_items: List[OrderItemRequest] = Field(..., min_length=1)


class OrderItemResponse(BaseModel):
    id: str
    product_line_item_id: str
    product_name: str
    display_price: Decimal
    sales_price: Decimal
    quantity: int
    sub_total: Decimal


class OrderResponse(BaseModel):
    id: str
    order_number: str
    order_date: datetime
    total_amount: Decimal
    payment_method: str
    status: str
    cashier_name: Optional[str] = None
    order_items: List[OrderItemResponse]
