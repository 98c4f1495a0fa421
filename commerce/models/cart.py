from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import SQLModel, Field
from typing import Optional, Union
from datetime import datetime

from commerce.exceptions import ValidationError
from commerce.utils.timestamps import utcnow


class ShoppingCart(SQLModel, table=True):
    __tablename__ = "shopping_cart"
    __table_args__ = (
        CheckConstraint(
            "user_id IS NOT NULL OR session_id IS NOT NULL",
            name="ck_cart_user_or_session",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, index=True)
    session_id: Optional[str] = Field(default=None, index=True)  # guest carts
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CartItem(SQLModel, table=True):
    __tablename__ = "cart_item"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_cart_item_quantity"),
        UniqueConstraint("cart_id", "product_id", name="uq_cart_item_product"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    cart_id: int = Field(foreign_key="shopping_cart.id", index=True)
    product_id: int = Field(foreign_key="product.id")
    quantity: int = 1

    # snapshot taken when the product was first added
    base_price: float
    gst_percentage: int

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


def new_cart(
    user_id: Optional[int] = None, session_id: Optional[str] = None
) -> Union[ShoppingCart, ValidationError]:
    if user_id is None and not session_id:
        return ValidationError("Cart must belong to a user or a guest session")
    return ShoppingCart(user_id=user_id, session_id=session_id)
