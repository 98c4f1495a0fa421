"""Order lookups and the order/payment status state machine."""

import logging
from typing import Optional

from sqlalchemy import case, func
from sqlmodel import Session, select

from commerce.constants.order_status import (
    ALLOWED_PAYMENT_TRANSITIONS,
    ALLOWED_TRANSITIONS,
    OrderStatus,
    PaymentStatus,
    can_transition,
)
from commerce.exceptions import InvalidTransition, OrderNotFound
from commerce.models.order import Order
from commerce.models.order_item import OrderItem
from commerce.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


def ensure_order_transition(current: OrderStatus, target: OrderStatus) -> None:
    if not can_transition(ALLOWED_TRANSITIONS, current, target):
        raise InvalidTransition(current, target)


def ensure_payment_transition(current: PaymentStatus, target: PaymentStatus) -> None:
    if not can_transition(ALLOWED_PAYMENT_TRANSITIONS, current, target):
        raise InvalidTransition(current, target)


def get_order(session: Session, order_id: int, user_id: Optional[int] = None) -> Order:
    order = session.get(Order, order_id)
    if not order or (user_id is not None and order.user_id != user_id):
        raise OrderNotFound(order_id)
    return order


def lock_order(session: Session, order_id: int) -> Order:
    order = session.exec(
        select(Order)
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
    if not order:
        raise OrderNotFound(order_id)
    return order


def get_order_items(session: Session, order_id: int):
    return session.exec(
        select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
    ).all()


def apply_order_status(order: Order, target: OrderStatus) -> Order:
    ensure_order_transition(order.order_status, target)
    order.order_status = target
    order.updated_at = utcnow()
    return order


def set_payment_status(order: Order, target: PaymentStatus) -> Order:
    """Mirror the payment record onto the order; the payment row is checked first."""
    if order.payment_status != target:
        order.payment_status = target
        order.updated_at = utcnow()
    return order


def update_order_status(session: Session, order_id: int, target: OrderStatus) -> Order:
    try:
        order = lock_order(session, order_id)
        previous = order.order_status
        apply_order_status(order, target)
        session.add(order)
        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(order)
    logger.info(f"Order {order.order_number}: {previous.value} -> {target.value}")
    return order


def list_user_orders(
    session: Session,
    user_id: int,
    page: int = 1,
    limit: int = 10,
    status: Optional[OrderStatus] = None,
):
    """Newest first; ``results`` holds at most ``limit`` orders."""
    page = max(page, 1)
    limit = limit if limit > 0 else 10

    query = select(Order).where(Order.user_id == user_id)
    if status:
        query = query.where(Order.order_status == status)

    total = session.exec(select(func.count()).select_from(query.subquery())).one()
    results = session.exec(
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return {
        "total": total,
        "total_pages": -(-total // limit),
        "page": page,
        "limit": limit,
        "results": results,
    }


def get_order_stats(session: Session, user_id: int) -> dict:
    in_progress = [OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.SHIPPED]

    row = session.exec(
        select(
            func.count(Order.id),
            func.sum(case((Order.order_status.in_(in_progress), 1), else_=0)),
            func.sum(case((Order.order_status == OrderStatus.DELIVERED, 1), else_=0)),
            func.sum(
                case(
                    (Order.payment_status == PaymentStatus.SUCCESS, Order.total_amount),
                    else_=0,
                )
            ),
        ).where(Order.user_id == user_id)
    ).one()

    total_orders, pending_orders, completed_orders, total_spent = row
    return {
        "total_orders": int(total_orders or 0),
        "pending_orders": int(pending_orders or 0),
        "completed_orders": int(completed_orders or 0),
        "total_spent": round(float(total_spent or 0), 2),
    }
