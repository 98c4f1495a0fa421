"""Inventory ledger: the only code allowed to change ProductInventory counters.

Every function works inside the caller's session; the caller owns the
transaction and decides whether to commit or roll back. Mutations always
read the counters through ``SELECT ... FOR UPDATE`` first, so two
transactions touching the same product are serialised by the row lock.
When several rows are needed they are locked in ascending product id
order, which keeps two overlapping checkouts from deadlocking.
"""

import logging
from typing import Dict, Iterable, Mapping

from sqlmodel import Session, select

from commerce.exceptions import InsufficientStock, InvalidInput, ProductNotFound
from commerce.models.product import Product, ProductInventory
from commerce.schemas.cart_schemas import StockShortage
from commerce.utils.timestamps import utcnow

logger = logging.getLogger(__name__)


def _check_quantity(quantity: int) -> None:
    if quantity <= 0:
        raise InvalidInput("Quantity must be positive")


def _product_name(session: Session, product_id: int) -> str:
    product = session.get(Product, product_id)
    return product.name if product else "Unknown"


def lock_inventory_row(session: Session, product_id: int) -> ProductInventory:
    inventory = session.exec(
        select(ProductInventory)
        .where(ProductInventory.product_id == product_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()

    if inventory is None:
        raise ProductNotFound(product_id)
    return inventory


def lock_inventory_rows(
    session: Session, product_ids: Iterable[int]
) -> Dict[int, ProductInventory]:
    """Lock several rows, strictly in ascending product id order."""
    return {pid: lock_inventory_row(session, pid) for pid in sorted(set(product_ids))}


def get_available_stock(session: Session, product_id: int) -> int:
    inventory = session.exec(
        select(ProductInventory).where(ProductInventory.product_id == product_id)
    ).first()

    if inventory is None:
        return 0
    return inventory.available_stock


def reserve_stock(session: Session, product_id: int, quantity: int) -> bool:
    """Hold ``quantity`` units; ``False`` (counters untouched) if not enough."""
    _check_quantity(quantity)
    inventory = lock_inventory_row(session, product_id)

    if inventory.available_stock < quantity:
        logger.info(
            f"Reservation refused for product {product_id}: "
            f"requested {quantity}, available {inventory.available_stock}"
        )
        return False

    inventory.reserved_quantity += quantity
    inventory.updated_at = utcnow()
    session.add(inventory)
    session.flush()

    logger.debug(f"Reserved {quantity} of product {product_id}")
    return True


def commit_stock(session: Session, product_id: int, quantity: int) -> None:
    """Permanently consume reserved units (stock and reservation both drop)."""
    _check_quantity(quantity)
    inventory = lock_inventory_row(session, product_id)

    if inventory.reserved_quantity < quantity:
        raise InsufficientStock(
            [
                StockShortage(
                    product_id=product_id,
                    product_name=_product_name(session, product_id),
                    requested=quantity,
                    available=inventory.reserved_quantity,
                )
            ],
            f"Cannot commit {quantity} units of product {product_id}: "
            f"only {inventory.reserved_quantity} reserved",
        )

    inventory.stock_quantity -= quantity
    inventory.reserved_quantity -= quantity
    inventory.updated_at = utcnow()
    session.add(inventory)
    session.flush()

    logger.debug(f"Committed {quantity} of product {product_id}")


def release_stock(session: Session, product_id: int, quantity: int) -> None:
    """Return reserved units to the available pool."""
    _check_quantity(quantity)
    inventory = lock_inventory_row(session, product_id)

    if inventory.reserved_quantity < quantity:
        raise InsufficientStock(
            [
                StockShortage(
                    product_id=product_id,
                    product_name=_product_name(session, product_id),
                    requested=quantity,
                    available=inventory.reserved_quantity,
                )
            ],
            f"Cannot release {quantity} units of product {product_id}: "
            f"only {inventory.reserved_quantity} reserved",
        )

    inventory.reserved_quantity -= quantity
    inventory.updated_at = utcnow()
    session.add(inventory)
    session.flush()

    logger.debug(f"Released {quantity} of product {product_id}")


def allocate_stock(session: Session, quantities: Mapping[int, int]) -> None:
    """Reserve and commit stock for several products in one locked pass.

    Availability is checked for every product while all rows are locked, so
    the error lists every short line and nothing is changed on failure.
    """
    rows = lock_inventory_rows(session, quantities.keys())

    shortages = [
        StockShortage(
            product_id=pid,
            product_name=_product_name(session, pid),
            requested=quantities[pid],
            available=rows[pid].available_stock,
        )
        for pid in sorted(quantities)
        if rows[pid].available_stock < quantities[pid]
    ]
    if shortages:
        raise InsufficientStock(shortages)

    for pid in sorted(quantities):
        if not reserve_stock(session, pid, quantities[pid]):
            raise InsufficientStock(
                [
                    StockShortage(
                        product_id=pid,
                        product_name=_product_name(session, pid),
                        requested=quantities[pid],
                        available=rows[pid].available_stock,
                    )
                ]
            )
        commit_stock(session, pid, quantities[pid])

    logger.info(f"Allocated stock for products {sorted(quantities)}")
