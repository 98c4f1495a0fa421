from typing import Optional, Tuple

from fastapi import APIRouter, Depends
from sqlmodel import Session

from commerce.database import get_session
from commerce.schemas.cart_schemas import (
    CartAddRequest,
    CartSummary,
    CartUpdateRequest,
    CartValidation,
)
from commerce.services.cart_service import (
    add_item,
    clear_cart,
    get_cart_summary,
    get_or_create_cart,
    remove_item,
    update_item_quantity,
    validate_cart_stock,
)
from commerce.utils.token import get_cart_owner

router = APIRouter()

Owner = Tuple[Optional[int], Optional[str]]


def _cart(session: Session, owner: Owner):
    user_id, session_id = owner
    return get_or_create_cart(session, user_id=user_id, session_id=session_id)


# View Cart

@router.get("", response_model=CartSummary)
def get_cart(
    session: Session = Depends(get_session),
    owner: Owner = Depends(get_cart_owner),
):
    return get_cart_summary(session, _cart(session, owner))


# Add to Cart

@router.post("/items", response_model=CartSummary)
def add_to_cart(
    data: CartAddRequest,
    session: Session = Depends(get_session),
    owner: Owner = Depends(get_cart_owner),
):
    cart = _cart(session, owner)
    add_item(session, cart, data.product_id, data.quantity)
    return get_cart_summary(session, cart)


@router.put("/items/{item_id}", response_model=CartSummary)
def update_cart_item(
    item_id: int,
    data: CartUpdateRequest,
    session: Session = Depends(get_session),
    owner: Owner = Depends(get_cart_owner),
):
    cart = _cart(session, owner)
    update_item_quantity(session, cart, item_id, data.quantity)
    return get_cart_summary(session, cart)


@router.delete("/items/{item_id}", response_model=CartSummary)
def remove_cart_item(
    item_id: int,
    session: Session = Depends(get_session),
    owner: Owner = Depends(get_cart_owner),
):
    cart = _cart(session, owner)
    remove_item(session, cart, item_id)
    return get_cart_summary(session, cart)


@router.delete("")
def clear(
    session: Session = Depends(get_session),
    owner: Owner = Depends(get_cart_owner),
):
    removed = clear_cart(session, _cart(session, owner))
    return {"message": "Cart cleared", "removed_items": removed}


@router.post("/validate", response_model=CartValidation)
def validate(
    session: Session = Depends(get_session),
    owner: Owner = Depends(get_cart_owner),
):
    errors = validate_cart_stock(session, _cart(session, owner))
    return CartValidation(valid=not errors, errors=errors)
