"""GST arithmetic over the fixed slabs.

Pure functions, no I/O. Every money value is rounded to 2 decimals (halves
away from zero) as soon as it is computed, so sums of rounded per-line
values reproduce the stored totals exactly.
"""

from typing import Dict, Iterable

from commerce.constants.order_status import GST_SLABS
from commerce.exceptions import InvalidInput, InvalidSlab
from commerce.schemas.tax_schemas import (
    CartTax,
    GstSlabBreakup,
    TaxableLine,
    TaxCalculation,
)
from commerce.utils.money import round2, within_tolerance


def ensure_valid_slab(gst_percentage) -> None:
    if gst_percentage not in GST_SLABS:
        raise InvalidSlab(
            f"Invalid GST percentage: {gst_percentage}. "
            f"Must be one of: {', '.join(str(s) for s in GST_SLABS)}"
        )


def calculate_item_tax(
    base_price: float, gst_percentage: int, quantity: int = 1
) -> TaxCalculation:
    """Tax for ``quantity`` units of one product."""
    ensure_valid_slab(gst_percentage)

    if base_price < 0:
        raise InvalidInput("Base price cannot be negative")

    if quantity <= 0:
        raise InvalidInput("Quantity must be positive")

    subtotal = round2(base_price * quantity)
    gst_amount = round2(subtotal * gst_percentage / 100)
    total_amount = round2(subtotal + gst_amount)

    return TaxCalculation(
        subtotal=subtotal,
        gst_amount=gst_amount,
        total_amount=total_amount,
        gst_percentage=gst_percentage,
    )


def calculate_cart_tax(items: Iterable[TaxableLine]) -> CartTax:
    """Totals for a set of lines, with a per-slab breakup sorted by slab."""
    items = list(items or [])
    if not items:
        return CartTax()

    subtotal = 0.0
    total_gst = 0.0
    slabs: Dict[int, GstSlabBreakup] = {}

    for item in items:
        line = calculate_item_tax(item.base_price, item.gst_percentage, item.quantity)
        subtotal += line.subtotal
        total_gst += line.gst_amount

        slab = slabs.setdefault(
            item.gst_percentage,
            GstSlabBreakup(
                slab_percentage=item.gst_percentage, taxable_amount=0, gst_amount=0
            ),
        )
        slab.taxable_amount = round2(slab.taxable_amount + line.subtotal)
        slab.gst_amount = round2(slab.gst_amount + line.gst_amount)

    subtotal = round2(subtotal)
    total_gst = round2(total_gst)

    return CartTax(
        subtotal=subtotal,
        total_gst=total_gst,
        total_amount=round2(subtotal + total_gst),
        gst_breakup=[slabs[p] for p in sorted(slabs)],
    )


def calculate_with_discount(
    base_price: float,
    gst_percentage: int,
    quantity: int,
    discount_percentage: float = 0,
) -> TaxCalculation:
    """Discount is taken off the unit price before tax."""
    if discount_percentage < 0 or discount_percentage > 100:
        raise InvalidInput("Discount percentage must be between 0 and 100")

    discounted_price = round2(base_price * (1 - discount_percentage / 100))
    return calculate_item_tax(discounted_price, gst_percentage, quantity)


def reverse_calculate(total_amount: float, gst_percentage: int) -> TaxCalculation:
    """Split a tax-inclusive amount into base and GST (invoice reconciliation)."""
    ensure_valid_slab(gst_percentage)

    if total_amount < 0:
        raise InvalidInput("Total amount cannot be negative")

    subtotal = round2(total_amount / (1 + gst_percentage / 100))
    gst_amount = round2(total_amount - subtotal)

    return TaxCalculation(
        subtotal=subtotal,
        gst_amount=gst_amount,
        total_amount=round2(total_amount),
        gst_percentage=gst_percentage,
    )


def validate_tax_calculation(
    base_price: float,
    gst_percentage: int,
    quantity: int,
    claimed_gst: float,
    claimed_total: float,
) -> bool:
    """Recompute and compare client-submitted figures."""
    calculated = calculate_item_tax(base_price, gst_percentage, quantity)
    return within_tolerance(calculated.gst_amount, claimed_gst) and within_tolerance(
        calculated.total_amount, claimed_total
    )
