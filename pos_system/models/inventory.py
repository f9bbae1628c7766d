"""
Inventory and Order Models

Catalog rows (categories, products, stocked line items) and the orders that
deduct from them. Order items carry snapshot fields copied at sale time.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..database import Base
from ..time_utils import utcnow

Money = Numeric(18, 2)


class OrderStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    CARD = "Card"


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)


class Product(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("categories.id"), nullable=True
    )

    category: Mapped[Optional[Category]] = relationship(lazy="selectin")


class ProductLineItem(Base):
    """Stocked unit of a product. Quantity is only mutated by order placement."""
    __tablename__ = "product_line_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    barcode_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    product_id: Mapped[str] = mapped_column(String(36), ForeignKey("products.id"), nullable=False)
    cost: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    display_price: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    discounted_price: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    product: Mapped[Product] = relationship(lazy="selectin")


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    order_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    order_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    total_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    cashier_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    items: Mapped[List[OrderItem]] = relationship(
        back_populates="order", cascade="all, delete-orphan", lazy="selectin"
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_line_item_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product_line_items.id"), nullable=False
    )

    # Snapshot
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    display_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    sales_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    sub_total: Mapped[Decimal] = mapped_column(Money, nullable=False)
    cost: Mapped[Decimal] = mapped_column(Money, nullable=False)

    order: Mapped[Order] = relationship(back_populates="items")
