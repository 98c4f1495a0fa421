from sqlalchemy import CheckConstraint
from sqlmodel import SQLModel, Field
from typing import Optional, Union
from datetime import datetime

from commerce.constants.order_status import GST_SLABS
from commerce.exceptions import ValidationError
from commerce.utils.money import round2, within_tolerance
from commerce.utils.timestamps import utcnow


class OrderItem(SQLModel, table=True):
    """Permanent snapshot of a purchased line; never joined back to product."""

    __tablename__ = "order_item"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_item_quantity"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    product_id: int = Field(index=True)

    product_name: str
    sku: str

    quantity: int
    base_price: float
    gst_percentage: int
    subtotal: float
    gst_amount: float
    item_total: float

    created_at: datetime = Field(default_factory=utcnow)


def new_order_item(
    *,
    order_id: int,
    product_id: int,
    product_name: str,
    sku: str,
    quantity: int,
    base_price: float,
    gst_percentage: int,
    subtotal: float,
    gst_amount: float,
    item_total: float,
) -> Union[OrderItem, ValidationError]:
    if quantity <= 0:
        return ValidationError(f"Quantity must be positive for {sku}")
    if base_price < 0 or subtotal < 0 or gst_amount < 0 or item_total < 0:
        return ValidationError(f"Amounts cannot be negative for {sku}")
    if gst_percentage not in GST_SLABS:
        return ValidationError(f"Invalid GST percentage {gst_percentage} for {sku}")
    if not within_tolerance(round2(base_price * quantity), subtotal):
        return ValidationError(f"Subtotal mismatch for {sku}")
    if round2(subtotal * gst_percentage / 100) != round2(gst_amount):
        return ValidationError(f"GST calculation mismatch for {sku}")
    if round2(subtotal + gst_amount) != round2(item_total):
        return ValidationError(f"Item total calculation mismatch for {sku}")

    return OrderItem(
        order_id=order_id,
        product_id=product_id,
        product_name=product_name,
        sku=sku,
        quantity=quantity,
        base_price=base_price,
        gst_percentage=gst_percentage,
        subtotal=round2(subtotal),
        gst_amount=round2(gst_amount),
        item_total=round2(item_total),
    )
