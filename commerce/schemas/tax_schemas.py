from pydantic import BaseModel
from typing import List


class TaxableLine(BaseModel):
    base_price: float     # unit price before tax
    gst_percentage: int
    quantity: int = 1


class TaxCalculation(BaseModel):
    subtotal: float
    gst_amount: float
    total_amount: float
    gst_percentage: int


class GstSlabBreakup(BaseModel):
    slab_percentage: int
    taxable_amount: float
    gst_amount: float


class CartTax(BaseModel):
    subtotal: float = 0.0
    total_gst: float = 0.0
    total_amount: float = 0.0
    gst_breakup: List[GstSlabBreakup] = []
