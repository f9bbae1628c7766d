"""
Boundary conversions between persisted rows and API responses.
"""

from __future__ import annotations

from typing import Iterable, List

from .models.api import OrderItemResponse, OrderResponse, UserProfile
from .models.inventory import Order, OrderItem
from .models.users import User
from .time_utils import as_utc


def to_order_item_response(item: OrderItem) -> OrderItemResponse:
    return OrderItemResponse(
        id=item.id,
        product_line_item_id=item.product_line_item_id,
        product_name=item.product_name,
        display_price=item.display_price,
        sales_price=item.sales_price,
        quantity=item.quantity,
        sub_total=item.sub_total,
    )


def to_order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        order_date=as_utc(order.order_date),
        total_amount=order.total_amount,
        payment_method=order.payment_method,
        status=order.status,
        cashier_name=order.cashier_name,
        order_items=[to_order_item_response(item) for item in order.items],
    )


def to_order_responses(orders: Iterable[Order]) -> List[OrderResponse]:
    return [to_order_response(order) for order in orders]


def to_user_profile(user: User, roles: Iterable[str]) -> UserProfile:
    return UserProfile(
        id=user.id,
        username=user.username,
        email=user.email or "",
        full_name=user.full_name or "",
        branch_id=user.branch_id or "",
        branch_name=user.branch_name or "",
        employee_id=user.employee_id,
        is_active=user.is_active,
        created_at=as_utc(user.created_at),
        last_login_at=as_utc(user.last_login_at) if user.last_login_at else None,
        roles=list(roles),
    )
