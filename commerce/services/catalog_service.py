import logging

from sqlmodel import Session

from commerce.models.product import Product, ProductInventory
from commerce.exceptions import ProductNotFound
from commerce.schemas.product_schemas import ProductCreate
from commerce.services.tax_service import ensure_valid_slab

logger = logging.getLogger(__name__)


def get_product(session: Session, product_id: int) -> Product:
    """Catalog lookup; inactive products count as missing."""
    product = session.get(Product, product_id)
    if not product or not product.is_active:
        raise ProductNotFound(product_id)
    return product


def create_product(session: Session, data: ProductCreate) -> Product:
    """Create a product together with its inventory row."""
    ensure_valid_slab(data.gst_percentage)

    product = Product(
        sku=data.sku,
        name=data.name,
        description=data.description,
        base_price=data.base_price,
        gst_percentage=data.gst_percentage,
    )
    session.add(product)
    session.flush()

    session.add(
        ProductInventory(
            product_id=product.id,
            stock_quantity=data.stock,
            reserved_quantity=0,
        )
    )
    session.commit()
    session.refresh(product)

    logger.info(f"Created product {product.id} ({product.sku}) with stock {data.stock}")
    return product
