import hashlib
import hmac
import os

# settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("PAYMENT_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")
os.environ.setdefault("ENV", "test")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from commerce.database import build_engine, create_db_and_tables, get_session
from commerce.exceptions import ValidationError
from commerce.models.order import new_order
from commerce.schemas.product_schemas import ProductCreate
from commerce.services.cart_service import add_item, get_or_create_cart
from commerce.services.catalog_service import create_product
from commerce.utils.token import create_access_token


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite so that several connections (threads) share one database."""
    engine = build_engine(f"sqlite:///{tmp_path / 'commerce.db'}")
    create_db_and_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


def make_product(session, sku="SKU-001", name="Widget", base_price=100.0, gst=18, stock=10):
    return create_product(
        session,
        ProductCreate(
            sku=sku,
            name=name,
            base_price=base_price,
            gst_percentage=gst,
            stock=stock,
        ),
    )


def fill_cart(session, user_id, *lines):
    """``lines`` are (product_id, quantity) pairs."""
    cart = get_or_create_cart(session, user_id=user_id)
    for product_id, quantity in lines:
        add_item(session, cart, product_id, quantity)
    return cart


def make_order(session, user_id=1, order_number="ORD202401010001", total=118.0, **overrides):
    fields = {
        "user_id": user_id,
        "order_number": order_number,
        "shipping_address": "12 MG Road, Bengaluru",
        "subtotal": round(total / 1.18, 2),
        "total_gst": round(total - round(total / 1.18, 2), 2),
        "total_amount": total,
    }
    fields.update(overrides)
    order = new_order(**fields)
    assert not isinstance(order, ValidationError)
    session.add(order)
    session.commit()
    session.refresh(order)
    return order


@pytest.fixture
def client(engine):
    def _session():
        with Session(engine) as session:
            yield session

    from commerce.main import app

    app.dependency_overrides[get_session] = _session
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id=1, role=None):
    claims = {"sub": str(user_id)}
    if role:
        claims["role"] = role
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


def sign_body(body, secret="whsec_test"):
    """Hex HMAC-SHA256 the way the gateway signs its callbacks."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
