from pydantic import BaseModel, Field
from typing import List
from datetime import datetime

from commerce.constants.order_status import OrderStatus, PaymentStatus


class OrderCreate(BaseModel):
    shipping_address: str = Field(min_length=1)


class OrderResponse(BaseModel):
    order_id: int
    order_number: str
    total_amount: float
    order_status: OrderStatus
    payment_status: PaymentStatus


class OrderItemRead(BaseModel):
    product_id: int
    product_name: str     # snapshot, not the live catalog name
    sku: str
    quantity: int
    base_price: float
    gst_percentage: int
    subtotal: float
    gst_amount: float
    item_total: float


class OrderDetail(BaseModel):
    order_id: int
    order_number: str
    order_status: OrderStatus
    payment_status: PaymentStatus
    subtotal: float
    total_gst: float
    total_amount: float
    shipping_address: str
    created_at: datetime
    items: List[OrderItemRead]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderStats(BaseModel):
    total_orders: int
    pending_orders: int
    completed_orders: int
    total_spent: float


def to_order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=order.id,
        order_number=order.order_number,
        total_amount=order.total_amount,
        order_status=order.order_status,
        payment_status=order.payment_status,
    )


def to_order_detail(order, items) -> OrderDetail:
    return OrderDetail(
        order_id=order.id,
        order_number=order.order_number,
        order_status=order.order_status,
        payment_status=order.payment_status,
        subtotal=order.subtotal,
        total_gst=order.total_gst,
        total_amount=order.total_amount,
        shipping_address=order.shipping_address,
        created_at=order.created_at,
        items=[
            OrderItemRead(
                product_id=item.product_id,
                product_name=item.product_name,
                sku=item.sku,
                quantity=item.quantity,
                base_price=item.base_price,
                gst_percentage=item.gst_percentage,
                subtotal=item.subtotal,
                gst_amount=item.gst_amount,
                item_total=item.item_total,
            )
            for item in items
        ],
    )
