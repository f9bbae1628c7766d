"""
Order Placement

Creates orders against live inventory inside a single transaction: every
line item is looked up, snapshotted, stock-checked and deducted, and the
whole order commits or rolls back as a unit.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime
from decimal import Decimal
from typing import List

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models.api import CreateOrderRequest
from .models.inventory import Order, OrderItem, OrderStatus, Product, ProductLineItem
from .time_utils import utcnow

logger = structlog.get_logger(__name__)

ORDER_NUMBER_PREFIX = "INV"


class OrderError(ValueError):
    """Order cannot be placed against current inventory."""


class ProductLineItemNotFoundError(OrderError):
    def __init__(self, product_line_item_id: str):
        self.product_line_item_id = product_line_item_id
        super().__init__(f"Product {product_line_item_id} not found.")


class InsufficientStockError(OrderError):
    def __init__(self, product_line_item_id: str, available: int, requested: int):
        self.product_line_item_id = product_line_item_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Not enough stock for {product_line_item_id}. Only Available {available}"
        )


def generate_order_number(now: datetime) -> str:
    """Date-stamped order number with a random suffix, e.g. INV-20250101-3F9A1C."""
    return f"{ORDER_NUMBER_PREFIX}-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


class OrderService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_order(
        self, request: CreateOrderRequest, user_id: str, cashier_name: str
    ) -> Order:
        now = utcnow()
        order = Order(
            id=str(uuid.uuid4()),
            order_number=generate_order_number(now),
            order_date=now,
            payment_method=request.payment_method.value,
            user_id=user_id,
            cashier_name=cashier_name,
            status=(OrderStatus.PENDING if request.is_pending else OrderStatus.COMPLETED).value,
            total_amount=Decimal("0"),
        )

        try:
            items = []
            total = Decimal("0")
            for requested in request.order_items:
                row = (
                    await self.db.execute(
                        select(ProductLineItem, Product.name)
                        .join(Product, Product.id == ProductLineItem.product_id)
                        .where(ProductLineItem.id == requested.product_line_item_id)
                        .with_for_update(of=ProductLineItem)
                    )
                ).first()
                if row is None:
                    raise ProductLineItemNotFoundError(requested.product_line_item_id)
                line_item, product_name = row

                sub_total = requested.sales_price * requested.quantity
                items.append(
                    OrderItem(
                        id=str(uuid.uuid4()),
                        order_id=order.id,
                        product_line_item_id=line_item.id,
                        product_name=product_name,
                        display_price=line_item.display_price,
                        sales_price=requested.sales_price,
                        quantity=requested.quantity,
                        sub_total=sub_total,
                        cost=line_item.cost,
                    )
                )
                total += sub_total

                if line_item.quantity < requested.quantity:
                    raise InsufficientStockError(line_item.id, line_item.quantity, requested.quantity)

                # Conditional decrement: a concurrent order that drained the row makes this a no-op
                deducted = await self.db.execute(
                    update(ProductLineItem)
                    .where(
                        ProductLineItem.id == line_item.id,
                        ProductLineItem.quantity >= requested.quantity,
                    )
                    .values(quantity=ProductLineItem.quantity - requested.quantity)
                    .execution_options(synchronize_session=False)
                )
                if deducted.rowcount != 1:
                    await self.db.refresh(line_item)
                    raise InsufficientStockError(line_item.id, line_item.quantity, requested.quantity)
                await self.db.refresh(line_item)

            order.total_amount = total
            order.items = items
            self.db.add(order)
            await self.db.commit()

        except Exception as e:
            await self.db.rollback()
            logger.warning("Order placement failed", user_id=user_id, error=str(e))
            raise

        logger.info(
            "Order created",
            order_id=order.id,
            order_number=order.order_number,
            total_amount=str(order.total_amount),
        )
        return order

    async def get_orders(self) -> List[Order]:
        result = await self.db.execute(select(Order).order_by(Order.order_date.desc()))
        return list(result.scalars().all())
