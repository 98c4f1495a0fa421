import logging
from typing import List, Optional

from sqlmodel import Session, select

from commerce.exceptions import (
    CartItemNotFound,
    InsufficientStock,
    InvalidInput,
    ValidationError,
)
from commerce.models.cart import CartItem, ShoppingCart, new_cart
from commerce.models.product import Product
from commerce.schemas.cart_schemas import CartLine, CartSummary, StockShortage
from commerce.schemas.tax_schemas import TaxableLine
from commerce.services.catalog_service import get_product
from commerce.services.inventory_service import get_available_stock
from commerce.services.tax_service import calculate_cart_tax, calculate_item_tax
from commerce.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


def find_cart(
    session: Session, user_id: Optional[int] = None, session_id: Optional[str] = None
) -> Optional[ShoppingCart]:
    statement = select(ShoppingCart)
    if user_id is not None:
        statement = statement.where(ShoppingCart.user_id == user_id)
    elif session_id:
        statement = statement.where(ShoppingCart.session_id == session_id)
    else:
        return None
    return session.exec(statement.order_by(ShoppingCart.id)).first()


def get_or_create_cart(
    session: Session, user_id: Optional[int] = None, session_id: Optional[str] = None
) -> ShoppingCart:
    cart = find_cart(session, user_id=user_id, session_id=session_id)
    if cart:
        return cart

    cart = new_cart(user_id=user_id, session_id=session_id)
    if isinstance(cart, ValidationError):
        raise cart

    session.add(cart)
    session.commit()
    session.refresh(cart)
    return cart


def get_cart_items(session: Session, cart: ShoppingCart) -> List[CartItem]:
    return session.exec(
        select(CartItem).where(CartItem.cart_id == cart.id).order_by(CartItem.id)
    ).all()


def _touch(session: Session, cart: ShoppingCart) -> None:
    cart.updated_at = utcnow()
    session.add(cart)


def add_item(
    session: Session, cart: ShoppingCart, product_id: int, quantity: int
) -> CartItem:
    """Add a product; an existing line keeps its original price snapshot."""
    if quantity <= 0:
        raise InvalidInput("Quantity must be positive")

    product = get_product(session, product_id)

    existing_item = session.exec(
        select(CartItem).where(
            CartItem.cart_id == cart.id,
            CartItem.product_id == product_id,
        )
    ).first()

    if existing_item:
        existing_item.quantity += quantity
        existing_item.updated_at = utcnow()
        item = existing_item
    else:
        item = CartItem(
            cart_id=cart.id,
            product_id=product.id,
            quantity=quantity,
            base_price=product.base_price,
            gst_percentage=product.gst_percentage,
        )

    session.add(item)
    _touch(session, cart)
    session.commit()
    session.refresh(item)
    return item


def _get_cart_item(session: Session, cart: ShoppingCart, item_id: int) -> CartItem:
    item = session.get(CartItem, item_id)
    if not item or item.cart_id != cart.id:
        raise CartItemNotFound(item_id)
    return item


def update_item_quantity(
    session: Session, cart: ShoppingCart, item_id: int, quantity: int
) -> CartItem:
    if quantity <= 0:
        raise InvalidInput("Quantity must be positive")

    item = _get_cart_item(session, cart, item_id)

    available = get_available_stock(session, item.product_id)
    if quantity > available:
        product = session.get(Product, item.product_id)
        raise InsufficientStock(
            [
                StockShortage(
                    product_id=item.product_id,
                    product_name=product.name if product else "Unknown",
                    requested=quantity,
                    available=available,
                )
            ],
            f"Only {available} units available",
        )

    item.quantity = quantity
    item.updated_at = utcnow()
    session.add(item)
    _touch(session, cart)
    session.commit()
    session.refresh(item)
    return item


def remove_item(session: Session, cart: ShoppingCart, item_id: int) -> None:
    item = _get_cart_item(session, cart, item_id)
    session.delete(item)
    _touch(session, cart)
    session.commit()


def clear_cart(session: Session, cart: ShoppingCart, commit: bool = True) -> int:
    """Delete every line. Checkout passes ``commit=False`` to stay atomic."""
    items = get_cart_items(session, cart)

    for item in items:
        session.delete(item)
    _touch(session, cart)

    if commit:
        session.commit()
    else:
        session.flush()
    return len(items)


def get_cart_summary(session: Session, cart: ShoppingCart) -> CartSummary:
    """Totals over the snapshots stored on the cart lines."""
    items = get_cart_items(session, cart)

    lines = []
    for item in items:
        tax = calculate_item_tax(item.base_price, item.gst_percentage, item.quantity)
        lines.append(
            CartLine(
                item_id=item.id,
                product_id=item.product_id,
                quantity=item.quantity,
                base_price=item.base_price,
                gst_percentage=item.gst_percentage,
                subtotal=tax.subtotal,
                gst_amount=tax.gst_amount,
                total=tax.total_amount,
            )
        )

    totals = calculate_cart_tax(
        TaxableLine(
            base_price=item.base_price,
            gst_percentage=item.gst_percentage,
            quantity=item.quantity,
        )
        for item in items
    )

    return CartSummary(
        cart_id=cart.id,
        items=lines,
        subtotal=totals.subtotal,
        total_gst=totals.total_gst,
        total_amount=totals.total_amount,
        item_count=sum(item.quantity for item in items),
        gst_breakup=totals.gst_breakup,
    )


def validate_cart_stock(session: Session, cart: ShoppingCart) -> List[StockShortage]:
    """Non-locking check of every line; returns all shortages, not just the first."""
    shortages = []

    for item in get_cart_items(session, cart):
        available = get_available_stock(session, item.product_id)
        if item.quantity > available:
            product = session.get(Product, item.product_id)
            shortages.append(
                StockShortage(
                    product_id=item.product_id,
                    product_name=product.name if product else "Unknown",
                    requested=item.quantity,
                    available=available,
                )
            )

    if shortages:
        logger.info(f"Cart {cart.id} has {len(shortages)} line(s) short of stock")
    return shortages
