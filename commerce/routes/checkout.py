from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from commerce.database import get_session
from commerce.schemas.orders_schemas import OrderCreate, OrderResponse, to_order_response
from commerce.services.checkout_service import create_order_from_cart
from commerce.utils.token import get_current_user_id

router = APIRouter()


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def place_order(
    data: OrderCreate,
    session: Session = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
):
    order = create_order_from_cart(session, user_id, data.shipping_address)
    return to_order_response(order)
