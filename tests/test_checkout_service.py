"""Cart to order conversion, including rollback on failure."""

import threading
from datetime import datetime

import pytest
from sqlmodel import Session, select

from commerce.constants.order_status import OrderStatus, PaymentStatus
from commerce.exceptions import (
    CheckoutFailed,
    EmptyCart,
    InsufficientStock,
    ValidationError,
)
from commerce.models.order import Order
from commerce.models.order_item import OrderItem
from commerce.models.product import ProductInventory
from commerce.services import checkout_service
from commerce.services.cart_service import get_cart_items, get_or_create_cart
from commerce.services.checkout_service import (
    create_order_from_cart,
    generate_order_number,
)
from commerce.utils.timestamps import utcnow

from conftest import fill_cart, make_order, make_product

ADDRESS = "12 MG Road, Bengaluru 560001"


def _counters(session, product_id):
    inventory = session.get(ProductInventory, product_id, populate_existing=True)
    return inventory.stock_quantity, inventory.reserved_quantity


def _order_count(session):
    return len(session.exec(select(Order)).all())


class TestOrderNumbers:
    def test_first_order_of_the_day(self, session):
        now = datetime(2024, 1, 15, 10, 30)
        assert generate_order_number(session, now) == "ORD202401150001"

    def test_sequence_counts_only_that_day(self, session):
        make_order(
            session,
            order_number="ORD202401140001",
            created_at=datetime(2024, 1, 14, 23, 59, 59),
        )
        for n in (1, 2):
            make_order(
                session,
                order_number=f"ORD2024011500{n:02d}",
                created_at=datetime(2024, 1, 15, 8, n),
            )

        now = datetime(2024, 1, 15, 18, 0)
        assert generate_order_number(session, now) == "ORD202401150003"


class TestCreateOrderFromCart:
    def test_happy_path(self, session):
        widget = make_product(session, sku="W-1", name="Widget", base_price=100.0, gst=18, stock=10)
        gadget = make_product(session, sku="G-1", name="Gadget", base_price=250.0, gst=5, stock=4)
        cart = fill_cart(session, 1, (widget.id, 2), (gadget.id, 1))

        order = create_order_from_cart(session, 1, ADDRESS)

        assert order.order_number == f"ORD{utcnow():%Y%m%d}0001"
        assert order.order_status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.INITIATED
        assert order.subtotal == 450.0
        assert order.total_gst == 48.5
        assert order.total_amount == 498.5
        assert order.shipping_address == ADDRESS

        items = session.exec(
            select(OrderItem).where(OrderItem.order_id == order.id).order_by(OrderItem.id)
        ).all()
        assert [(i.sku, i.product_name, i.quantity, i.item_total) for i in items] == [
            ("W-1", "Widget", 2, 236.0),
            ("G-1", "Gadget", 1, 262.5),
        ]

        assert _counters(session, widget.id) == (8, 0)
        assert _counters(session, gadget.id) == (3, 0)
        assert get_cart_items(session, cart) == []

    def test_consecutive_orders_are_sequential(self, session):
        product = make_product(session, stock=10)

        numbers = []
        for _ in range(2):
            fill_cart(session, 1, (product.id, 1))
            numbers.append(create_order_from_cart(session, 1, ADDRESS).order_number)

        assert numbers[0].endswith("0001")
        assert numbers[1].endswith("0002")

    def test_item_snapshot_survives_catalog_changes(self, session):
        product = make_product(session, name="Original", base_price=100.0)
        fill_cart(session, 1, (product.id, 1))
        order = create_order_from_cart(session, 1, ADDRESS)

        product.name = "Renamed"
        product.base_price = 999.0
        session.add(product)
        session.commit()

        item = session.exec(select(OrderItem).where(OrderItem.order_id == order.id)).one()
        assert item.product_name == "Original"
        assert item.base_price == 100.0

    def test_missing_cart(self, session):
        with pytest.raises(EmptyCart):
            create_order_from_cart(session, 1, ADDRESS)

    def test_empty_cart(self, session):
        get_or_create_cart(session, user_id=1)
        with pytest.raises(EmptyCart):
            create_order_from_cart(session, 1, ADDRESS)
        assert _order_count(session) == 0

    def test_insufficient_stock_lists_every_line(self, session):
        first = make_product(session, sku="A", name="Alpha", stock=1)
        second = make_product(session, sku="B", name="Beta", stock=1)
        fill_cart(session, 1, (first.id, 2), (second.id, 3))

        with pytest.raises(InsufficientStock) as exc_info:
            create_order_from_cart(session, 1, ADDRESS)

        body = exc_info.value.to_dict()
        assert body["error"] == "insufficient_stock"
        assert [i["product_name"] for i in body["items"]] == ["Alpha", "Beta"]
        assert _order_count(session) == 0
        assert _counters(session, first.id) == (1, 0)

    def test_blank_address_is_rejected(self, session):
        product = make_product(session)
        fill_cart(session, 1, (product.id, 1))

        with pytest.raises(ValidationError):
            create_order_from_cart(session, 1, "   ")
        assert _order_count(session) == 0


class TestCheckoutRollback:
    def test_failure_after_stock_moved_rolls_everything_back(self, session, monkeypatch):
        product = make_product(session, stock=5)
        cart = fill_cart(session, 1, (product.id, 2))

        def broken_item(**kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(checkout_service, "new_order_item", broken_item)

        with pytest.raises(CheckoutFailed) as exc_info:
            create_order_from_cart(session, 1, ADDRESS)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert _order_count(session) == 0
        assert _counters(session, product.id) == (5, 0)
        assert len(get_cart_items(session, cart)) == 1

    def test_stock_gone_between_precheck_and_lock(self, session, monkeypatch):
        product = make_product(session, stock=5)
        fill_cart(session, 1, (product.id, 3))

        inventory = session.get(ProductInventory, product.id)
        inventory.stock_quantity = 2
        session.add(inventory)
        session.commit()

        # pretend the non-locking check ran before another checkout took the stock
        monkeypatch.setattr(checkout_service, "validate_cart_stock", lambda s, c: [])

        with pytest.raises(InsufficientStock):
            create_order_from_cart(session, 1, ADDRESS)

        assert _order_count(session) == 0
        assert _counters(session, product.id) == (2, 0)

    def test_order_number_collision_is_retried(self, session, monkeypatch):
        today = utcnow()
        taken = f"ORD{today:%Y%m%d}0001"
        make_order(session, user_id=99, order_number=taken)

        product = make_product(session, stock=5)
        fill_cart(session, 1, (product.id, 1))

        numbers = iter([taken, f"ORD{today:%Y%m%d}0002"])
        monkeypatch.setattr(
            checkout_service, "generate_order_number", lambda s, now=None: next(numbers)
        )

        order = create_order_from_cart(session, 1, ADDRESS)

        assert order.order_number == f"ORD{today:%Y%m%d}0002"
        assert _counters(session, product.id) == (4, 0)

    def test_gives_up_after_retries(self, session, monkeypatch):
        taken = "ORD202401010001"
        make_order(session, user_id=99, order_number=taken)
        product = make_product(session, stock=5)
        fill_cart(session, 1, (product.id, 1))

        monkeypatch.setattr(
            checkout_service, "generate_order_number", lambda s, now=None: taken
        )

        with pytest.raises(CheckoutFailed):
            create_order_from_cart(session, 1, ADDRESS)
        assert _counters(session, product.id) == (5, 0)


class TestConcurrentCheckout:
    def test_last_unit_is_sold_once(self, engine):
        with Session(engine) as session:
            product_id = make_product(session, stock=1).id
            for user_id in (1, 2):
                fill_cart(session, user_id, (product_id, 1))

        outcomes = {}

        def checkout(user_id):
            with Session(engine) as session:
                try:
                    create_order_from_cart(session, user_id, ADDRESS)
                    outcomes[user_id] = "ok"
                except InsufficientStock:
                    outcomes[user_id] = "short"

        threads = [threading.Thread(target=checkout, args=(u,)) for u in (1, 2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcomes.values()) == ["ok", "short"]
        with Session(engine) as session:
            assert _counters(session, product_id) == (0, 0)
            assert _order_count(session) == 1
