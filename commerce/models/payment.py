from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from commerce.constants.order_status import PaymentStatus
from commerce.utils.timestamps import utcnow


class Payment(SQLModel, table=True):
    __tablename__ = "payment"

    id: Optional[int] = Field(default=None, primary_key=True)

    order_id: int = Field(foreign_key="orders.id", index=True)
    gateway_transaction_id: str = Field(index=True, unique=True)

    payment_method: str = Field(default="RAZORPAY")  # RAZORPAY | UPI | CARD
    amount: float
    status: PaymentStatus = Field(default=PaymentStatus.INITIATED)

    gateway_response: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
