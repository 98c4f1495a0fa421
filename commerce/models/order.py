from sqlalchemy import CheckConstraint
from sqlmodel import SQLModel, Field
from typing import Optional, Union
from datetime import datetime

from commerce.constants.order_status import OrderStatus, PaymentStatus
from commerce.exceptions import ValidationError
from commerce.utils.money import round2
from commerce.utils.timestamps import utcnow


class Order(SQLModel, table=True):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(
            "subtotal >= 0 AND total_gst >= 0 AND total_amount >= 0",
            name="ck_order_amounts",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    order_number: str = Field(index=True, unique=True)

    # the only columns that change after creation
    order_status: OrderStatus = Field(default=OrderStatus.PENDING, index=True)
    payment_status: PaymentStatus = Field(default=PaymentStatus.INITIATED)

    subtotal: float
    total_gst: float
    total_amount: float

    shipping_address: str

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


def new_order(
    *,
    user_id: int,
    order_number: str,
    shipping_address: str,
    subtotal: float,
    total_gst: float,
    total_amount: float,
    created_at: Optional[datetime] = None,
) -> Union[Order, ValidationError]:
    if subtotal < 0 or total_gst < 0 or total_amount < 0:
        return ValidationError("Order amounts cannot be negative")
    # tolerance is inclusive of one cent
    if abs(round2(subtotal + total_gst) - round2(total_amount)) > 0.01 + 1e-9:
        return ValidationError(
            "Order total mismatch: subtotal + GST must equal total amount"
        )
    if not shipping_address or not shipping_address.strip():
        return ValidationError("Shipping address is required")

    order = Order(
        user_id=user_id,
        order_number=order_number,
        order_status=OrderStatus.PENDING,
        payment_status=PaymentStatus.INITIATED,
        subtotal=round2(subtotal),
        total_gst=round2(total_gst),
        total_amount=round2(total_amount),
        shipping_address=shipping_address.strip(),
    )
    if created_at is not None:
        order.created_at = created_at
        order.updated_at = created_at
    return order
