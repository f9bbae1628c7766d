"""Refresh token persistence model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base


class TokenState(str, Enum):
    """Lifecycle of a stored refresh token. CONSUMED and REVOKED are terminal."""
    ACTIVE = "active"
    CONSUMED = "consumed"
    REVOKED = "revoked"


class RefreshToken(Base):
    """Stored refresh token bound to the access token generation it was issued with."""

    __tablename__ = "refresh_tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    jwt_id: Mapped[str] = mapped_column(String(64), nullable=False)
    creation_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expiry_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    @property
    def state(self) -> TokenState:
        if self.used:
            return TokenState.CONSUMED
        if self.revoked:
            return TokenState.REVOKED
        return TokenState.ACTIVE

    def is_exchangeable(self, now: datetime) -> bool:
        return self.state is TokenState.ACTIVE and self.expiry_date > now

    def __repr__(self):
        return f"<RefreshToken(id={self.id}, user_id='{self.user_id}', state='{self.state.value}')>"
