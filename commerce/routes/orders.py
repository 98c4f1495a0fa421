from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from commerce.constants.order_status import OrderStatus
from commerce.database import get_session
from commerce.schemas.orders_schemas import (
    OrderDetail,
    OrderResponse,
    OrderStats,
    OrderStatusUpdate,
    to_order_detail,
    to_order_response,
)
from commerce.services.order_service import (
    get_order,
    get_order_items,
    get_order_stats,
    list_user_orders,
    update_order_status,
)
from commerce.utils.token import get_current_admin_id, get_current_user_id

router = APIRouter()


@router.get("")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[OrderStatus] = None,
    session: Session = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
):
    result = list_user_orders(session, user_id, page=page, limit=limit, status=status)

    return {
        "total": result["total"],
        "total_pages": result["total_pages"],
        "page": result["page"],
        "limit": result["limit"],
        "results": [to_order_response(order) for order in result["results"]],
    }


@router.get("/stats", response_model=OrderStats)
def order_stats(
    session: Session = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
):
    return get_order_stats(session, user_id)


@router.get("/{order_id}", response_model=OrderDetail)
def order_detail(
    order_id: int,
    session: Session = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
):
    order = get_order(session, order_id, user_id=user_id)
    return to_order_detail(order, get_order_items(session, order.id))


@router.patch("/{order_id}/status", response_model=OrderResponse)
def change_status(
    order_id: int,
    data: OrderStatusUpdate,
    session: Session = Depends(get_session),
    _: int = Depends(get_current_admin_id),
):
    return to_order_response(update_order_status(session, order_id, data.status))
