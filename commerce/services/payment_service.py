"""Payment initiation and gateway webhook handling.

Webhooks are delivered at least once and may arrive out of order. The
``webhook_event`` unique constraint is what makes a redelivery harmless:
the event row is inserted in a savepoint before anything else changes, so
a duplicate fails there and the rest of the handler never runs.
"""

import json
import logging
import random
import time
from typing import Any, Optional
from urllib.parse import urlencode

import razorpay
from pydantic import ValidationError as PayloadError
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from commerce.config import settings
from commerce.constants.order_status import (
    GATEWAY_STATUS_MAP,
    OrderStatus,
    PaymentStatus,
)
from commerce.exceptions import (
    InvalidSignature,
    InvalidTransition,
    PaymentNotFound,
)
from commerce.models.payment import Payment
from commerce.models.webhook_event import WebhookEvent
from commerce.schemas.payment_schemas import (
    PaymentInitiation,
    PaymentWebhookPayload,
    WebhookAck,
)
from commerce.services.order_service import (
    apply_order_status,
    ensure_payment_transition,
    get_order,
    lock_order,
    set_payment_status,
)
from commerce.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

razorpay_client = razorpay.Client(
    auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
)


def _new_transaction_id() -> str:
    return f"TXN{int(time.time() * 1000)}{random.randint(1000, 9999)}"


def initiate_payment(
    session: Session, order_id: int, payment_method: str = "RAZORPAY"
) -> PaymentInitiation:
    order = get_order(session, order_id)

    if order.payment_status != PaymentStatus.INITIATED:
        raise InvalidTransition(order.payment_status, PaymentStatus.PENDING)

    payment = Payment(
        order_id=order.id,
        gateway_transaction_id=_new_transaction_id(),
        payment_method=payment_method,
        amount=order.total_amount,
        status=PaymentStatus.INITIATED,
    )
    session.add(payment)
    session.commit()
    session.refresh(payment)

    query = urlencode(
        {
            "merchant": settings.payment_merchant_id,
            "txn": payment.gateway_transaction_id,
            "amount": f"{payment.amount:.2f}",
        }
    )
    logger.info(
        f"Payment {payment.gateway_transaction_id} initiated for order "
        f"{order.order_number}"
    )
    return PaymentInitiation(
        payment_id=payment.id,
        transaction_id=payment.gateway_transaction_id,
        gateway_url=f"{settings.payment_gateway_url.rstrip('/')}/checkout?{query}",
        amount=payment.amount,
    )


def get_latest_payment(session: Session, order_id: int) -> Optional[Payment]:
    return session.exec(
        select(Payment)
        .where(Payment.order_id == order_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
    ).first()


def _signed_body(payload: Any, raw_body: Optional[bytes]) -> str:
    if raw_body is not None:
        return raw_body.decode("utf-8")
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def verify_signature(
    payload: Any,
    signature: Optional[str],
    raw_body: Optional[bytes] = None,
    secret: Optional[str] = None,
) -> None:
    """Raise ``InvalidSignature`` unless ``signature`` is the HMAC-SHA256 of the body."""
    secret = secret or settings.payment_webhook_secret
    if not secret:
        raise RuntimeError("PAYMENT_WEBHOOK_SECRET is not configured")

    if not signature:
        raise InvalidSignature("Missing webhook signature")

    try:
        razorpay_client.utility.verify_webhook_signature(
            _signed_body(payload, raw_body), signature.strip().lower(), secret
        )
    except razorpay.errors.SignatureVerificationError:
        raise InvalidSignature()
    except (TypeError, UnicodeError):
        # non-ASCII header bytes or a body that is not UTF-8
        raise InvalidSignature("Malformed webhook signature")


def map_gateway_status(gateway_status: Optional[str]) -> PaymentStatus:
    return GATEWAY_STATUS_MAP.get(
        (gateway_status or "").strip().lower(), PaymentStatus.PENDING
    )


def _lock_payment(session: Session, transaction_id: Optional[str]) -> Payment:
    payment = None
    if transaction_id:
        payment = session.exec(
            select(Payment)
            .where(Payment.gateway_transaction_id == transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).first()

    if payment is None:
        raise PaymentNotFound(
            transaction_id, f"Payment not found for transaction: {transaction_id}"
        )
    return payment


def _apply_to_order(session: Session, payment: Payment, target: PaymentStatus) -> None:
    if target not in (PaymentStatus.SUCCESS, PaymentStatus.FAILED):
        return

    order = lock_order(session, payment.order_id)
    set_payment_status(order, target)

    if target == PaymentStatus.SUCCESS:
        try:
            apply_order_status(order, OrderStatus.CONFIRMED)
        except InvalidTransition:
            logger.warning(
                f"Payment {payment.gateway_transaction_id} succeeded but order "
                f"{order.order_number} is {order.order_status.value}; status left as is"
            )

    session.add(order)


def process_webhook(
    session: Session,
    payload: Any,
    signature: Optional[str],
    raw_body: Optional[bytes] = None,
    secret: Optional[str] = None,
) -> WebhookAck:
    """Apply one gateway callback.

    Bad signatures, malformed bodies, duplicates and disallowed transitions
    come back as unacknowledged or no-op acks. A callback for an unknown
    payment raises ``PaymentNotFound`` and records nothing, so the gateway's
    redelivery can succeed once the payment exists.
    """
    try:
        verify_signature(payload, signature, raw_body=raw_body, secret=secret)
    except InvalidSignature as exc:
        logger.warning(f"Rejected webhook: {exc.message}")
        return WebhookAck(acknowledged=False, outcome="invalid_signature", detail=exc.message)

    if not isinstance(payload, dict):
        return WebhookAck(acknowledged=False, outcome="invalid_payload", detail="Body must be an object")

    try:
        event = PaymentWebhookPayload.model_validate(payload)
    except PayloadError as exc:
        logger.warning(f"Malformed webhook payload: {exc}")
        return WebhookAck(acknowledged=False, outcome="invalid_payload", detail="Malformed payload")

    if not event.webhook_id:
        return WebhookAck(acknowledged=False, outcome="invalid_payload", detail="Missing event id")

    try:
        try:
            with session.begin_nested():
                session.add(WebhookEvent(webhook_id=event.webhook_id, payload=payload))
        except IntegrityError:
            session.rollback()
            logger.info(f"Webhook {event.webhook_id} already processed")
            return WebhookAck(acknowledged=True, outcome="already_processed")

        payment = _lock_payment(session, event.gateway_transaction_id)
        current = payment.status
        target = map_gateway_status(event.status)

        if target == current:
            session.commit()
            return WebhookAck(acknowledged=True, outcome="no_change")

        try:
            ensure_payment_transition(current, target)
        except InvalidTransition as exc:
            session.commit()
            if current == PaymentStatus.PENDING and target == PaymentStatus.SUCCESS:
                # PENDING is final in the transition table, so this capture
                # leaves a paid order unconfirmed until someone reconciles it
                logger.error(
                    f"Webhook {event.webhook_id}: capture for pending payment "
                    f"{payment.gateway_transaction_id} rejected; order "
                    f"{payment.order_id} needs manual reconciliation"
                )
            else:
                logger.warning(
                    f"Webhook {event.webhook_id} for {payment.gateway_transaction_id}: "
                    f"{exc.message}"
                )
            return WebhookAck(acknowledged=True, outcome="rejected", detail=exc.message)

        now = utcnow()
        payment.status = target
        payment.gateway_response = payload
        payment.updated_at = now
        if target == PaymentStatus.SUCCESS:
            payment.completed_at = now
        elif target == PaymentStatus.FAILED:
            payment.failed_at = now
        session.add(payment)

        _apply_to_order(session, payment, target)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        f"Payment {payment.gateway_transaction_id}: {current.value} -> {target.value}"
    )
    return WebhookAck(acknowledged=True, outcome="processed")
