# backend/unit_conversion_engine.py

"""
Unit Conversion Engine - Item Unit of Measure

This engine is responsible for:
- Deriving the legal units of an item (default + up to two alternates)
- Resolving which unit slot a unit name refers to
- Converting quantities between any legal unit and the default unit

This engine MUST NOT:
- Round or format quantities (presentation concern)
- Validate conversion factors (data entry concern)
- Check stock levels
- Raise for unknown units

INVARIANTS:
1) Stock is ALWAYS stored in the item's default unit
2) 1 alternate unit = conversion_factor default units
3) Units are matched by slot position, first match wins: default, alt 1, alt 2
4) A slot with a missing/zero factor converts by identity (no fall-through)
5) Unknown units convert by identity (permissive, kept for compatibility)
"""

from typing import Optional, List

from stock_models import Item

DEFAULT_SLOT = 0
ALTERNATE_SLOT_1 = 1
ALTERNATE_SLOT_2 = 2


def legal_units(item: Item) -> List[str]:
    """
    Ordered, de-duplicated unit names usable for an item.

    Order is [default, alternate 1, alternate 2]; blank alternates are
    skipped and a repeated name keeps its first position.
    """
    units: List[str] = []
    for unit in (item.default_unit, item.alternate_unit_1, item.alternate_unit_2):
        if unit and unit not in units:
            units.append(unit)
    return units


def resolve_unit_slot(unit: str, item: Item) -> Optional[int]:
    """
    Slot a unit name refers to.

    Returns:
        DEFAULT_SLOT, ALTERNATE_SLOT_1, ALTERNATE_SLOT_2, or None if the
        name matches none of the item's units
    """
    if not unit:
        return None
    if unit == item.default_unit:
        return DEFAULT_SLOT
    if unit == item.alternate_unit_1:
        return ALTERNATE_SLOT_1
    if unit == item.alternate_unit_2:
        return ALTERNATE_SLOT_2
    return None


def _slot_factor(slot: Optional[int], item: Item) -> Optional[float]:
    # None means "convert by identity"
    if slot == ALTERNATE_SLOT_1:
        factor = item.conversion_factor_1
    elif slot == ALTERNATE_SLOT_2:
        factor = item.conversion_factor_2
    else:
        return None

    if not factor or factor <= 0:
        return None
    return factor


def to_default(quantity: float, unit: str, item: Item) -> float:
    """
    Convert a quantity in `unit` to the item's default unit.

    Args:
        quantity: Quantity expressed in `unit`
        unit: Any unit name (legal or not)
        item: Item carrying the conversion factors

    Returns:
        Quantity in default unit (unrounded). Identity for the default unit,
        for unknown units and for alternates without a usable factor.
    """
    factor = _slot_factor(resolve_unit_slot(unit, item), item)
    if factor is None:
        return quantity
    return quantity * factor


def from_default(quantity_default: float, unit: str, item: Item) -> float:
    """
    Convert a default-unit quantity into `unit`.

    Inverse of to_default with the same identity fallbacks.
    """
    factor = _slot_factor(resolve_unit_slot(unit, item), item)
    if factor is None:
        return quantity_default
    return quantity_default / factor
