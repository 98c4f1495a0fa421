from pydantic import BaseModel, Field
from typing import Optional


class ProductCreate(BaseModel):
    sku: str
    name: str
    description: str = ""
    base_price: float = Field(ge=0)
    gst_percentage: int
    stock: int = Field(default=0, ge=0)


class ProductRead(BaseModel):
    id: int
    sku: str
    name: str
    description: str
    base_price: float
    gst_percentage: int
    is_active: bool
    available_stock: int


class StockRequest(BaseModel):
    quantity: int = Field(gt=0)


class InventoryRead(BaseModel):
    product_id: int
    stock_quantity: int
    reserved_quantity: int
    available_stock: int
    reserved: Optional[bool] = None
