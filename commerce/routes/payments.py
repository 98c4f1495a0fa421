import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from commerce.database import get_session
from commerce.exceptions import PaymentNotFound
from commerce.schemas.payment_schemas import PaymentInitiateRequest, PaymentInitiation
from commerce.services.order_service import get_order
from commerce.services.payment_service import initiate_payment, process_webhook
from commerce.utils.token import get_current_user_id

logger = logging.getLogger(__name__)

router = APIRouter()
webhook_router = APIRouter()


@router.post("/orders/{order_id}/initiate", response_model=PaymentInitiation)
def start_payment(
    order_id: int,
    data: Optional[PaymentInitiateRequest] = None,
    session: Session = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
):
    # ownership check; raises OrderNotFound for someone else's order
    get_order(session, order_id, user_id=user_id)
    method = data.payment_method if data else "RAZORPAY"
    return initiate_payment(session, order_id, payment_method=method)


async def read_raw_body(request: Request) -> bytes:
    return await request.body()


@webhook_router.post("/payment")
def payment_webhook(
    raw_body: bytes = Depends(read_raw_body),
    x_webhook_signature: Optional[str] = Header(default=None),
    session: Session = Depends(get_session),
):
    """Gateway callback. Always 200 unless the datastore is down."""
    try:
        payload = json.loads(raw_body or b"null")
    except ValueError:
        return {"acknowledged": False, "outcome": "invalid_payload"}

    try:
        ack = process_webhook(session, payload, x_webhook_signature, raw_body=raw_body)
    except PaymentNotFound as exc:
        logger.error(f"Webhook error: {exc.message}")
        return {"acknowledged": False, "outcome": "payment_not_found"}
    except OperationalError:
        logger.exception("Webhook could not reach the database")
        return JSONResponse(
            status_code=503,
            content={"acknowledged": False, "outcome": "unavailable"},
        )

    return ack.model_dump(exclude_none=True)
