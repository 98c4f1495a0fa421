from sqlalchemy import CheckConstraint
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from commerce.utils.timestamps import utcnow


class Product(SQLModel, table=True):
    __tablename__ = "product"
    __table_args__ = (
        CheckConstraint("base_price >= 0", name="ck_product_price"),
        CheckConstraint(
            "gst_percentage IN (0, 5, 12, 18, 28)", name="ck_product_gst_slab"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    sku: str = Field(index=True, unique=True)
    name: str
    description: str = ""

    base_price: float
    gst_percentage: int

    is_active: bool = True

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ProductInventory(SQLModel, table=True):
    """Stock counters for one product.

    Written only through ``commerce.services.inventory_service``.
    """

    __tablename__ = "product_inventory"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_inventory_stock"),
        CheckConstraint("reserved_quantity >= 0", name="ck_inventory_reserved"),
        CheckConstraint(
            "reserved_quantity <= stock_quantity", name="ck_inventory_reserved_le_stock"
        ),
    )

    product_id: int = Field(foreign_key="product.id", primary_key=True)
    stock_quantity: int = 0
    reserved_quantity: int = 0
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def available_stock(self) -> int:
        return self.stock_quantity - self.reserved_quantity
