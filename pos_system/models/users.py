"""
User and Role Models

Identity records for authentication and role-based authorization.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Table, func
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base
from ..time_utils import utcnow


class RoleName(str, Enum):
    """Fixed set of roles a user can hold"""
    ADMIN = "Admin"
    MANAGER = "Manager"
    CASHIER = "Cashier"
    STOCK_CLERK = "StockClerk"
    ACCOUNTANT = "Accountant"


ROLE_DESCRIPTIONS = {
    RoleName.ADMIN: "System Administrator with full access",
    RoleName.MANAGER: "Branch Manager with management privileges",
    RoleName.CASHIER: "Cashier with sales transaction access",
    RoleName.STOCK_CLERK: "Stock management and inventory access",
    RoleName.ACCOUNTANT: "Financial reporting and accounting access",
}

DEFAULT_ROLE = RoleName.CASHIER


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self):
        return f"<Role(id={self.id}, name='{self.name}')>"


class User(Base):
    """User model for authentication and authorization"""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile information
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    employee_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    branch_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    branch_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Soft disable and lockout
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    access_failed_count: Mapped[int] = mapped_column(Integer, default=0)
    lockout_end: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"

    @property
    def display_name(self) -> str:
        return self.full_name or self.username


# Lookups are case-insensitive, so uniqueness is too
Index("uq_users_username_lower", func.lower(User.username), unique=True)
Index("uq_users_email_lower", func.lower(User.email), unique=True)
