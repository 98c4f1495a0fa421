"""Payment initiation and webhook processing."""

import json
import logging

import pytest
from sqlmodel import select

from commerce.constants.order_status import OrderStatus, PaymentStatus
from commerce.exceptions import InvalidSignature, InvalidTransition, OrderNotFound, PaymentNotFound
from commerce.models.order import Order
from commerce.models.payment import Payment
from commerce.models.webhook_event import WebhookEvent
from commerce.services.order_service import update_order_status
from commerce.services.payment_service import (
    get_latest_payment,
    initiate_payment,
    map_gateway_status,
    process_webhook,
    verify_signature,
)

from conftest import make_order, sign_body

SECRET = "whsec_test"


def sign(payload):
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return sign_body(body, SECRET)


def deliver(session, payload, signature=None):
    return process_webhook(session, payload, signature or sign(payload), secret=SECRET)


@pytest.fixture
def payment(session):
    order = make_order(session, total=236.0)
    initiation = initiate_payment(session, order.id)
    return session.get(Payment, initiation.payment_id)


def _reload(session, model, pk):
    return session.get(model, pk, populate_existing=True)


def _event_count(session):
    return len(session.exec(select(WebhookEvent)).all())


class TestInitiatePayment:
    def test_creates_initiated_payment(self, session):
        order = make_order(session, total=236.0)

        initiation = initiate_payment(session, order.id, payment_method="UPI")

        assert initiation.transaction_id.startswith("TXN")
        assert len(initiation.transaction_id) == 3 + 13 + 4
        assert initiation.amount == 236.0
        assert f"txn={initiation.transaction_id}" in initiation.gateway_url
        assert "merchant=" in initiation.gateway_url

        latest = get_latest_payment(session, order.id)
        assert latest.id == initiation.payment_id
        assert latest.status == PaymentStatus.INITIATED
        assert latest.payment_method == "UPI"

    def test_unknown_order(self, session):
        with pytest.raises(OrderNotFound):
            initiate_payment(session, 77)

    def test_already_paid_order(self, session):
        order = make_order(session)
        order.payment_status = PaymentStatus.SUCCESS
        session.add(order)
        session.commit()

        with pytest.raises(InvalidTransition):
            initiate_payment(session, order.id)


class TestSignature:
    def test_valid_signature(self):
        payload = {"id": "evt_1", "status": "success"}
        verify_signature(payload, sign(payload), secret=SECRET)

    def test_raw_body_is_signed_as_is(self):
        raw = b'{"id": "evt_1",  "status": "success"}'
        verify_signature({}, sign_body(raw, SECRET), raw_body=raw, secret=SECRET)

    def test_tampered_payload(self):
        payload = {"id": "evt_1", "status": "failed"}
        signature = sign(payload)
        payload["status"] = "success"
        with pytest.raises(InvalidSignature):
            verify_signature(payload, signature, secret=SECRET)

    def test_missing_signature(self):
        with pytest.raises(InvalidSignature):
            verify_signature({"id": "evt_1"}, None, secret=SECRET)

    def test_non_ascii_signature_is_invalid(self):
        with pytest.raises(InvalidSignature):
            verify_signature({"id": "evt_1"}, "é" * 64, secret=SECRET)

    def test_body_that_is_not_utf8_is_invalid(self):
        raw = b'{"id": "\xff"}'
        with pytest.raises(InvalidSignature):
            verify_signature({}, sign_body(raw, SECRET), raw_body=raw, secret=SECRET)


class TestStatusMapping:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("success", PaymentStatus.SUCCESS),
            ("Captured", PaymentStatus.SUCCESS),
            ("completed", PaymentStatus.SUCCESS),
            ("declined", PaymentStatus.FAILED),
            ("ERROR", PaymentStatus.FAILED),
            ("authorized", PaymentStatus.PENDING),
            (None, PaymentStatus.PENDING),
        ],
    )
    def test_map(self, raw, expected):
        assert map_gateway_status(raw) == expected


class TestProcessWebhook:
    def test_success_confirms_order(self, session, payment):
        ack = deliver(
            session,
            {"id": "evt_1", "transaction_id": payment.gateway_transaction_id, "status": "success"},
        )

        assert ack.acknowledged is True
        assert ack.outcome == "processed"

        payment = _reload(session, Payment, payment.id)
        assert payment.status == PaymentStatus.SUCCESS
        assert payment.completed_at is not None
        assert payment.gateway_response["status"] == "success"

        order = _reload(session, Order, payment.order_id)
        assert order.payment_status == PaymentStatus.SUCCESS
        assert order.order_status == OrderStatus.CONFIRMED

    def test_failure_only_touches_payment_status(self, session, payment):
        ack = deliver(
            session,
            {"event_id": "evt_2", "payment_id": payment.gateway_transaction_id, "status": "declined"},
        )

        assert ack.outcome == "processed"
        payment = _reload(session, Payment, payment.id)
        assert payment.status == PaymentStatus.FAILED
        assert payment.failed_at is not None

        order = _reload(session, Order, payment.order_id)
        assert order.payment_status == PaymentStatus.FAILED
        assert order.order_status == OrderStatus.PENDING

    def test_duplicate_delivery_is_a_no_op(self, session, payment):
        payload = {"id": "evt_3", "transaction_id": payment.gateway_transaction_id, "status": "success"}

        first = deliver(session, payload)
        second = deliver(session, payload)

        assert first.outcome == "processed"
        assert second.acknowledged is True
        assert second.outcome == "already_processed"
        assert _event_count(session) == 1

    def test_bad_signature_changes_nothing(self, session, payment):
        payload = {"id": "evt_4", "transaction_id": payment.gateway_transaction_id, "status": "success"}

        ack = deliver(session, payload, signature="0" * 64)

        assert ack.acknowledged is False
        assert ack.outcome == "invalid_signature"
        assert _event_count(session) == 0
        assert _reload(session, Payment, payment.id).status == PaymentStatus.INITIATED

    def test_non_ascii_signature_changes_nothing(self, session, payment):
        payload = {"id": "evt_4b", "transaction_id": payment.gateway_transaction_id, "status": "success"}

        ack = deliver(session, payload, signature="é" * 64)

        assert ack.acknowledged is False
        assert ack.outcome == "invalid_signature"
        assert _event_count(session) == 0
        assert _reload(session, Payment, payment.id).status == PaymentStatus.INITIATED

    def test_missing_event_id(self, session, payment):
        ack = deliver(session, {"transaction_id": payment.gateway_transaction_id, "status": "success"})
        assert ack.acknowledged is False
        assert ack.outcome == "invalid_payload"

    def test_unknown_payment_raises_and_records_nothing(self, session):
        payload = {"id": "evt_5", "transaction_id": "TXN-missing", "status": "success"}

        with pytest.raises(PaymentNotFound):
            deliver(session, payload)

        assert _event_count(session) == 0

    def test_late_success_after_failure_is_rejected(self, session, payment):
        txn = payment.gateway_transaction_id
        deliver(session, {"id": "evt_6", "transaction_id": txn, "status": "failed"})

        ack = deliver(session, {"id": "evt_7", "transaction_id": txn, "status": "success"})

        assert ack.acknowledged is True
        assert ack.outcome == "rejected"
        assert _reload(session, Payment, payment.id).status == PaymentStatus.FAILED
        assert _event_count(session) == 2

    def test_pending_is_terminal(self, session, payment, caplog):
        txn = payment.gateway_transaction_id
        first = deliver(session, {"id": "evt_8", "transaction_id": txn, "status": "authorized"})
        with caplog.at_level(logging.ERROR, logger="commerce.services.payment_service"):
            second = deliver(session, {"id": "evt_9", "transaction_id": txn, "status": "captured"})

        assert first.outcome == "processed"
        assert second.outcome == "rejected"
        assert _reload(session, Payment, payment.id).status == PaymentStatus.PENDING
        assert _reload(session, Order, payment.order_id).order_status == OrderStatus.PENDING
        assert any(
            record.levelno == logging.ERROR and txn in record.getMessage()
            for record in caplog.records
        )

    def test_repeated_status_is_a_no_op(self, session, payment):
        txn = payment.gateway_transaction_id
        deliver(session, {"id": "evt_10", "transaction_id": txn, "status": "success"})

        ack = deliver(session, {"id": "evt_11", "transaction_id": txn, "status": "completed"})

        assert ack.outcome == "no_change"
        assert _event_count(session) == 2

    def test_success_for_cancelled_order_keeps_order_status(self, session, payment):
        update_order_status(session, payment.order_id, OrderStatus.CANCELLED)

        ack = deliver(
            session,
            {"id": "evt_12", "transaction_id": payment.gateway_transaction_id, "status": "success"},
        )

        assert ack.outcome == "processed"
        order = _reload(session, Order, payment.order_id)
        assert order.payment_status == PaymentStatus.SUCCESS
        assert order.order_status == OrderStatus.CANCELLED
