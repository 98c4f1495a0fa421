import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from commerce.database import create_db_and_tables
from commerce.config import settings
from commerce.exceptions import CommerceError
from commerce.routes import (
    cart,
    checkout,
    health,
    inventory,
    orders,
    payments,
    products,
)

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.ENV == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="Checkout Engine API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CommerceError)
async def commerce_error_handler(request: Request, exc: CommerceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(products.router, prefix="/products", tags=["Products"])
app.include_router(inventory.router, prefix="/inventory", tags=["Inventory"])
app.include_router(cart.router, prefix="/cart", tags=["Cart"])
app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
app.include_router(orders.router, prefix="/orders", tags=["Orders"])
app.include_router(payments.router, prefix="/payments", tags=["Payments"])
app.include_router(payments.webhook_router, prefix="/webhooks", tags=["Webhooks"])


@app.get("/")
def root():
    return {
        "cart": [
            "/cart", "/cart/items", "/cart/items/{item_id}", "/cart/validate"
        ],
        "checkout": ["/checkout/orders"],
        "orders": [
            "/orders", "/orders/stats", "/orders/{order_id}",
            "/orders/{order_id}/status"
        ],
        "payments": [
            "/payments/orders/{order_id}/initiate", "/webhooks/payment"
        ],
    }
