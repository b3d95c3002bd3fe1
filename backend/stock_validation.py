# backend/stock_validation.py

"""
Stock consistency checks built on the unit conversion engine.

- can_fulfill: does an outbound quantity fit within stock on hand
- variance: physical count minus system stock, in the counter's unit

Both are pure; callers turn a False / a material variance into whatever
message or correction they need.
"""

from unit_conversion_engine import to_default, from_default
from stock_models import Item, ReferenceStock

# Below this (in the unit the user is counting in) a variance is float noise
VARIANCE_EPSILON = 0.01


# ==================== STOCK VALIDATOR ====================

def can_fulfill(requested_quantity: float, unit: str, item: Item) -> bool:
    """True iff the request, converted to default unit, is <= stock on hand"""
    return to_default(requested_quantity, unit, item) <= item.stock_on_hand


def available_in_unit(item: Item, unit: str) -> float:
    """Stock on hand expressed in `unit` (for refusal messages and display)"""
    return from_default(item.stock_on_hand, unit, item)


# ==================== VARIANCE CALCULATOR ====================

def reference_stock(item: Item, reference: ReferenceStock) -> float:
    """
    System-of-record figure a count is compared against, in default unit.

    The reference has no default here: callers pass it explicitly.
    """
    if reference == ReferenceStock.MINIMUM_STOCK:
        return item.minimum_stock
    if reference == ReferenceStock.ON_HAND:
        return item.stock_on_hand
    raise ValueError(f"Unsupported reference stock: {reference!r}")


def system_stock_in_unit(item: Item, unit: str, reference: ReferenceStock) -> float:
    return from_default(reference_stock(item, reference), unit, item)


def variance(
    physical_quantity: float,
    unit: str,
    item: Item,
    reference: ReferenceStock
) -> float:
    """
    Signed difference physical - system, both in `unit`.

    Positive = overage (system stock should go up), negative = shortage.
    """
    return physical_quantity - system_stock_in_unit(item, unit, reference)


def requires_correction(signed_variance: float, epsilon: float = VARIANCE_EPSILON) -> bool:
    # Applied to the displayed unit's magnitude, never rescaled to default unit
    return abs(signed_variance) > epsilon
