"""
Order Endpoints
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
import structlog

from ..auth import CurrentUser, get_current_user
from ..dependencies import get_order_service
from ..mapping import to_order_response, to_order_responses
from ..models.api import CreateOrderRequest, OrderResponse
from ..order_service import OrderError, OrderService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get("", response_model=List[OrderResponse])
async def get_orders(
    order_service: OrderService = Depends(get_order_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    """List all orders, newest first"""
    return to_order_responses(await order_service.get_orders())


@router.post("", response_model=OrderResponse)
async def create_order(
    order_request: CreateOrderRequest,
    order_service: OrderService = Depends(get_order_service),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Place an order and deduct stock for every item"""
    try:
        order = await order_service.create_order(
            order_request,
            user_id=current_user.user_id,
            cashier_name=current_user.display_name or current_user.username,
        )
    except OrderError as e:
        logger.warning("Order rejected", error=str(e), user_id=current_user.user_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return to_order_response(order)
