from fastapi import APIRouter, Depends
from sqlmodel import Session

from commerce.database import get_session
from commerce.exceptions import ProductNotFound
from commerce.models.product import ProductInventory
from commerce.schemas.product_schemas import InventoryRead, StockRequest
from commerce.services.inventory_service import release_stock, reserve_stock
from commerce.utils.token import get_current_admin_id

router = APIRouter()


def _to_read(inventory: ProductInventory, reserved=None) -> InventoryRead:
    return InventoryRead(
        product_id=inventory.product_id,
        stock_quantity=inventory.stock_quantity,
        reserved_quantity=inventory.reserved_quantity,
        available_stock=inventory.available_stock,
        reserved=reserved,
    )


@router.get("/{product_id}", response_model=InventoryRead)
def read_inventory(product_id: int, session: Session = Depends(get_session)):
    inventory = session.get(ProductInventory, product_id)
    if not inventory:
        raise ProductNotFound(product_id)
    return _to_read(inventory)


@router.post("/{product_id}/reserve", response_model=InventoryRead)
def reserve(
    product_id: int,
    data: StockRequest,
    session: Session = Depends(get_session),
    _: int = Depends(get_current_admin_id),
):
    try:
        reserved = reserve_stock(session, product_id, data.quantity)
        session.commit()
    except Exception:
        session.rollback()
        raise

    inventory = session.get(ProductInventory, product_id)
    session.refresh(inventory)
    return _to_read(inventory, reserved=reserved)


@router.post("/{product_id}/release", response_model=InventoryRead)
def release(
    product_id: int,
    data: StockRequest,
    session: Session = Depends(get_session),
    _: int = Depends(get_current_admin_id),
):
    try:
        release_stock(session, product_id, data.quantity)
        session.commit()
    except Exception:
        session.rollback()
        raise

    inventory = session.get(ProductInventory, product_id)
    session.refresh(inventory)
    return _to_read(inventory)
