from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from commerce.database import get_session
from commerce.schemas.product_schemas import ProductCreate, ProductRead
from commerce.services.catalog_service import create_product, get_product
from commerce.services.inventory_service import get_available_stock
from commerce.utils.token import get_current_admin_id

router = APIRouter()


def _to_read(session: Session, product) -> ProductRead:
    return ProductRead(
        id=product.id,
        sku=product.sku,
        name=product.name,
        description=product.description,
        base_price=product.base_price,
        gst_percentage=product.gst_percentage,
        is_active=product.is_active,
        available_stock=get_available_stock(session, product.id),
    )


@router.get("/{product_id}", response_model=ProductRead)
def read_product(product_id: int, session: Session = Depends(get_session)):
    return _to_read(session, get_product(session, product_id))


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
def add_product(
    data: ProductCreate,
    session: Session = Depends(get_session),
    _: int = Depends(get_current_admin_id),
):
    return _to_read(session, create_product(session, data))
