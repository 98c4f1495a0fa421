from pydantic import BaseModel, Field
from typing import List

from commerce.schemas.tax_schemas import GstSlabBreakup


class CartAddRequest(BaseModel):
    product_id: int
    quantity: int = Field(default=1, gt=0)


class CartUpdateRequest(BaseModel):
    quantity: int


class StockShortage(BaseModel):
    product_id: int
    product_name: str
    requested: int
    available: int


class CartLine(BaseModel):
    item_id: int
    product_id: int
    quantity: int
    base_price: float     # snapshot at add time
    gst_percentage: int
    subtotal: float
    gst_amount: float
    total: float


class CartSummary(BaseModel):
    cart_id: int
    items: List[CartLine]
    subtotal: float
    total_gst: float
    total_amount: float
    item_count: int
    gst_breakup: List[GstSlabBreakup]


class CartValidation(BaseModel):
    valid: bool
    errors: List[StockShortage]
