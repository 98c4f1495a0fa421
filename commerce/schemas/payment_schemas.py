from pydantic import BaseModel, ConfigDict
from typing import Optional


class PaymentInitiateRequest(BaseModel):
    payment_method: str = "RAZORPAY"    # RAZORPAY | UPI | CARD


class PaymentInitiation(BaseModel):
    payment_id: int
    transaction_id: str
    gateway_url: str
    amount: float


class PaymentWebhookPayload(BaseModel):
    """Gateway callback body. Gateways disagree on key names, so both are read."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: Optional[str] = None
    event_id: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_id: Optional[str] = None
    status: Optional[str] = None

    @property
    def webhook_id(self) -> Optional[str]:
        return self.id or self.event_id

    @property
    def gateway_transaction_id(self) -> Optional[str]:
        return self.transaction_id or self.payment_id


class WebhookAck(BaseModel):
    acknowledged: bool
    outcome: str
    detail: Optional[str] = None
