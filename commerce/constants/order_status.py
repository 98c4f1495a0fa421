from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class PaymentStatus(str, Enum):
    INITIATED = "INITIATED"
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"
    REFUNDED = "REFUNDED"


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: [OrderStatus.CONFIRMED, OrderStatus.CANCELLED],
    OrderStatus.CONFIRMED: [OrderStatus.SHIPPED, OrderStatus.CANCELLED],
    OrderStatus.SHIPPED: [OrderStatus.DELIVERED, OrderStatus.RETURNED],
    OrderStatus.DELIVERED: [OrderStatus.RETURNED],
    OrderStatus.CANCELLED: [],
    OrderStatus.RETURNED: [],
}

ALLOWED_PAYMENT_TRANSITIONS = {
    PaymentStatus.INITIATED: [
        PaymentStatus.PENDING,
        PaymentStatus.SUCCESS,
        PaymentStatus.FAILED,
        PaymentStatus.TIMEOUT,
    ],
    # final: a later capture is recorded but rejected (payment_service logs it)
    PaymentStatus.PENDING: [],
    PaymentStatus.SUCCESS: [PaymentStatus.REFUNDED],
    PaymentStatus.FAILED: [],
    PaymentStatus.TIMEOUT: [],
    PaymentStatus.REFUNDED: [],
}

# free-text gateway status -> internal payment status; unknown values map to PENDING
GATEWAY_STATUS_MAP = {
    "success": PaymentStatus.SUCCESS,
    "completed": PaymentStatus.SUCCESS,
    "captured": PaymentStatus.SUCCESS,
    "failed": PaymentStatus.FAILED,
    "error": PaymentStatus.FAILED,
    "declined": PaymentStatus.FAILED,
}

GST_SLABS = (0, 5, 12, 18, 28)


def can_transition(table, current, target) -> bool:
    return target in table.get(current, [])
