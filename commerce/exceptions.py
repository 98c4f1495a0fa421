"""Checkout engine errors.

Services raise these; the API layer renders them through the exception
handler registered in ``commerce.main``.
"""

from typing import Any, Dict, List, Optional

from commerce.schemas.cart_schemas import StockShortage


class CommerceError(Exception):
    status_code = 400
    code = "commerce_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.code,
            "message": self.message,
            **self.details(),
        }


class ValidationError(CommerceError):
    code = "validation_error"


class InvalidSlab(ValidationError):
    code = "invalid_gst_slab"


class InvalidInput(ValidationError):
    code = "invalid_input"


class InsufficientStock(CommerceError):
    """One or more lines ask for more than is available."""

    status_code = 409
    code = "insufficient_stock"

    def __init__(self, shortages: List[StockShortage], message: Optional[str] = None):
        self.shortages = list(shortages)
        names = ", ".join(s.product_name for s in self.shortages)
        super().__init__(message or f"Insufficient stock for: {names}")

    def details(self):
        return {"items": [s.model_dump() for s in self.shortages]}


class EmptyCart(CommerceError):
    code = "empty_cart"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InvalidTransition(CommerceError):
    status_code = 409
    code = "invalid_transition"

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid status transition: {_value(current)} -> {_value(target)}"
        )

    def details(self):
        return {"current": _value(self.current), "attempted": _value(self.target)}


class InvalidSignature(CommerceError):
    status_code = 401
    code = "invalid_signature"

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message)


class NotFound(CommerceError):
    status_code = 404
    code = "not_found"
    entity = "Entity"

    def __init__(self, entity_id: Any = None, message: Optional[str] = None):
        self.entity_id = entity_id
        super().__init__(message or f"{self.entity} not found: {entity_id}")


class PaymentNotFound(NotFound):
    code = "payment_not_found"
    entity = "Payment"


class OrderNotFound(NotFound):
    code = "order_not_found"
    entity = "Order"


class ProductNotFound(NotFound):
    code = "product_not_found"
    entity = "Product"


class CartItemNotFound(NotFound):
    code = "cart_item_not_found"
    entity = "Cart item"


class CheckoutFailed(CommerceError):
    """Checkout transaction rolled back for a non-business reason."""

    status_code = 500
    code = "checkout_failed"


def _value(status):
    return getattr(status, "value", status)
