"""Cart to order conversion.

One checkout is one database transaction: the order row, its item
snapshots, the inventory movements and the cart clear-out are committed
together or not at all.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from commerce.config import settings
from commerce.exceptions import (
    CheckoutFailed,
    CommerceError,
    EmptyCart,
    InsufficientStock,
    ValidationError,
)
from commerce.models.cart import ShoppingCart
from commerce.models.order import Order, new_order
from commerce.models.order_item import new_order_item
from commerce.models.product import Product
from commerce.services.cart_service import (
    clear_cart,
    get_cart_summary,
    validate_cart_stock,
)
from commerce.services.inventory_service import allocate_stock
from commerce.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


def generate_order_number(session: Session, now: Optional[datetime] = None) -> str:
    """``ORD`` + UTC date + per-day sequence, e.g. ``ORD202401150003``."""
    now = now or utcnow()
    day_start = datetime(now.year, now.month, now.day)
    day_end = day_start + timedelta(days=1)

    today_count = session.exec(
        select(func.count(Order.id)).where(
            Order.created_at >= day_start,
            Order.created_at < day_end,
        )
    ).one()

    sequence = str(today_count + 1).zfill(settings.order_number_padding)
    return f"ORD{now.strftime('%Y%m%d')}{sequence}"


def _lock_user_cart(session: Session, user_id: int) -> Optional[ShoppingCart]:
    return session.exec(
        select(ShoppingCart)
        .where(ShoppingCart.user_id == user_id)
        .order_by(ShoppingCart.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()


def _is_order_number_collision(exc: IntegrityError) -> bool:
    return "order_number" in str(exc.orig)


def _place_order(session: Session, user_id: int, shipping_address: str) -> Order:
    cart = _lock_user_cart(session, user_id)
    if cart is None:
        raise EmptyCart()

    shortages = validate_cart_stock(session, cart)
    if shortages:
        raise InsufficientStock(shortages)

    summary = get_cart_summary(session, cart)
    if not summary.items:
        raise EmptyCart()

    order = new_order(
        user_id=user_id,
        order_number=generate_order_number(session),
        shipping_address=shipping_address,
        subtotal=summary.subtotal,
        total_gst=summary.total_gst,
        total_amount=summary.total_amount,
    )
    if isinstance(order, ValidationError):
        raise order

    session.add(order)
    session.flush()

    # locks every inventory row and re-checks availability before touching any
    allocate_stock(session, {line.product_id: line.quantity for line in summary.items})

    for line in summary.items:
        product = session.get(Product, line.product_id)
        item = new_order_item(
            order_id=order.id,
            product_id=line.product_id,
            product_name=product.name,
            sku=product.sku,
            quantity=line.quantity,
            base_price=line.base_price,
            gst_percentage=line.gst_percentage,
            subtotal=line.subtotal,
            gst_amount=line.gst_amount,
            item_total=line.total,
        )
        if isinstance(item, ValidationError):
            raise item
        session.add(item)

    clear_cart(session, cart, commit=False)
    session.commit()
    session.refresh(order)
    return order


def create_order_from_cart(
    session: Session, user_id: int, shipping_address: str
) -> Order:
    attempts = settings.order_number_retries + 1

    for attempt in range(1, attempts + 1):
        try:
            order = _place_order(session, user_id, shipping_address)
        except IntegrityError as exc:
            session.rollback()
            if _is_order_number_collision(exc) and attempt < attempts:
                logger.warning(
                    f"Order number collision for user {user_id}, "
                    f"retrying ({attempt}/{attempts - 1})"
                )
                continue
            logger.error(f"Checkout failed for user {user_id}: {exc}")
            raise CheckoutFailed("Failed to create order") from exc
        except CommerceError:
            session.rollback()
            raise
        except Exception as exc:
            session.rollback()
            logger.exception(f"Checkout failed for user {user_id}")
            raise CheckoutFailed(f"Failed to create order: {exc}") from exc

        logger.info(
            f"Order {order.order_number} created for user {user_id}, "
            f"total {order.total_amount}"
        )
        return order
