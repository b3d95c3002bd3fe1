# backend/transaction_line_builder.py

"""
Transaction Line Builder - batch assembly for inbound, outbound and stock opname

Validation order for add_line (first failure wins, no I/O):
1) Item selected
2) Quantity is a finite number (> 0; stock opname counts may be 0)
3) Unit is one of the item's legal units
4) OUTBOUND only: stock on hand covers the quantity
5) Item not already in the batch

Rejections are raised as LineRejectionError subclasses inside the builder
and returned to the caller as an AddLineResult. Nothing escapes as an
exception for well-typed input.
"""

import math
import logging
from enum import Enum
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from pydantic import BaseModel

from stock_models import (
    Item,
    TransactionKind,
    TransactionLine,
    ReferenceStock,
    PayloadLine,
    StockOpnamePayloadLine,
    TransactionPayload,
    InboundPayload,
)
from unit_conversion_engine import legal_units, to_default
from stock_validation import (
    can_fulfill,
    available_in_unit,
    system_stock_in_unit,
    variance,
    requires_correction,
)

logger = logging.getLogger(__name__)


class LineStatus(str, Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


# ==================== ERROR CLASSES ====================

class LineRejectionError(Exception):
    """Base rejection (always user-correctable)"""
    def __init__(self, error_code: str, message: str, field: Optional[str] = None, severity: str = "USER_ERROR"):
        self.error_code = error_code
        self.message = message
        self.field = field
        self.severity = severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "field": self.field,
            "severity": self.severity
        }


class NoItemSelectedError(LineRejectionError):
    def __init__(self):
        super().__init__("NO_ITEM_SELECTED", "No item selected.", field="item")


class InvalidQuantityError(LineRejectionError):
    def __init__(self, quantity: Any, allow_zero: bool = False):
        requirement = "zero or greater" if allow_zero else "greater than zero"
        super().__init__(
            "INVALID_QUANTITY",
            f"Quantity must be {requirement}. Received: {quantity!r}",
            field="quantity"
        )


class UnitNotSelectedError(LineRejectionError):
    def __init__(self, unit: str, allowed_units: List[str]):
        super().__init__(
            "UNIT_NOT_SELECTED",
            f"Unit must be selected. Received: {unit!r}, allowed units: {', '.join(allowed_units)}",
            field="unit"
        )


class InsufficientStockError(LineRejectionError):
    def __init__(self, quantity: float, unit: str, available: float):
        super().__init__(
            "INSUFFICIENT_STOCK",
            f"Insufficient stock. Requested: {quantity:g} {unit}, available: {available:g} {unit}",
            field="quantity",
            severity="BUSINESS_RULE"
        )
        self.available = available


class DuplicateItemError(LineRejectionError):
    def __init__(self, item: Item):
        super().__init__(
            "DUPLICATE_ITEM",
            f"Item '{item.code or item.id}' is already in the list. Remove it first to change the quantity.",
            field="item",
            severity="BUSINESS_RULE"
        )


class EmptyBatchError(LineRejectionError):
    def __init__(self):
        super().__init__("EMPTY_BATCH", "Add at least one item.", field="items")


class SubmissionInProgressError(LineRejectionError):
    def __init__(self):
        super().__init__(
            "SUBMISSION_IN_PROGRESS",
            "A submission is already in progress. Wait for it to finish.",
            field=None,
            severity="BUSINESS_RULE"
        )


# ==================== RESULTS ====================

class AddLineResult(BaseModel):
    status: LineStatus
    line: Optional[TransactionLine] = None
    errors: List[Dict[str, Any]] = []

    @property
    def accepted(self) -> bool:
        return self.status == LineStatus.ACCEPTED

    @property
    def message(self) -> str:
        return self.errors[0]["message"] if self.errors else ""

    @classmethod
    def rejected(cls, error: LineRejectionError) -> "AddLineResult":
        return cls(status=LineStatus.REJECTED, errors=[error.to_dict()])


# ==================== BUILDER ====================

class TransactionLineBuilder:
    """
    Owns one ordered batch of TransactionLine for a single transaction.

    Lines are immutable once added; changing one means remove + add.
    """

    def __init__(self, kind: TransactionKind, reference: ReferenceStock = ReferenceStock.ON_HAND):
        self.kind = kind
        self.reference = reference
        self._lines: List[TransactionLine] = []
        self._items: Dict[str, Item] = {}

    @property
    def lines(self) -> List[TransactionLine]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    def add_line(self, item: Optional[Item], quantity: Any, unit: Optional[str], note: str = "") -> AddLineResult:
        try:
            line = self._build_line(item, quantity, unit, note)
        except LineRejectionError as e:
            logger.debug(f"{self.kind.value} line rejected: {e.error_code} - {e.message}")
            return AddLineResult.rejected(e)

        self._lines.append(line)
        self._items[item.id] = item
        return AddLineResult(status=LineStatus.ACCEPTED, line=line)

    def remove_line(self, index: int) -> Optional[TransactionLine]:
        """Remove by position; None (and no change) for an invalid position"""
        if not isinstance(index, int) or index < 0 or index >= len(self._lines):
            return None
        line = self._lines.pop(index)
        self._items.pop(line.item_id, None)
        return line

    def clear(self) -> None:
        self._lines.clear()
        self._items.clear()

    def check_submittable(self) -> None:
        if self.is_empty():
            raise EmptyBatchError()

    def build_payload(self, date: Optional[str] = None, note: str = "", **header) -> TransactionPayload:
        """
        Normalize every line to its item's default unit and wrap the batch.

        Display-only fields (variance, available stock) are dropped here;
        the collaborator re-derives everything from default-unit figures.
        """
        if header and self.kind != TransactionKind.INBOUND:
            raise TypeError(f"{self.kind.value} payload does not accept {sorted(header)}")

        date = date or datetime.now(timezone.utc).date().isoformat()
        lines = [self._payload_line(line) for line in self._lines]

        if self.kind == TransactionKind.INBOUND:
            return InboundPayload(date=date, note=note or "", lines=lines, **header)
        return TransactionPayload(date=date, note=note or "", lines=lines)

    # ---------- internals ----------

    def _build_line(self, item: Optional[Item], quantity: Any, unit: Optional[str], note: str) -> TransactionLine:
        # 1) item
        if item is None:
            raise NoItemSelectedError()

        # 2) quantity
        allow_zero = self.kind == TransactionKind.STOCK_OPNAME
        qty = self._parse_quantity(quantity, allow_zero)

        # 3) unit
        units = legal_units(item)
        unit = (unit or "").strip()
        if not unit or unit not in units:
            raise UnitNotSelectedError(unit, units)

        # 4) stock
        if self.kind == TransactionKind.OUTBOUND and not can_fulfill(qty, unit, item):
            raise InsufficientStockError(qty, unit, available_in_unit(item, unit))

        # 5) one line per item
        if any(line.item_id == item.id for line in self._lines):
            raise DuplicateItemError(item)

        fields: Dict[str, Any] = {
            "kind": self.kind,
            "item_id": item.id,
            "item_code": item.code,
            "item_name": item.name,
            "quantity": qty,
            "unit": unit,
            "unit_options": units,
            "note": note or "",
        }
        if self.kind == TransactionKind.OUTBOUND:
            fields["available_stock"] = available_in_unit(item, unit)
            fields["available_stock_default"] = item.stock_on_hand
        elif self.kind == TransactionKind.STOCK_OPNAME:
            signed = variance(qty, unit, item, self.reference)
            fields["system_stock"] = system_stock_in_unit(item, unit, self.reference)
            fields["variance"] = signed
            fields["requires_correction"] = requires_correction(signed)

        return TransactionLine(**fields)

    @staticmethod
    def _parse_quantity(quantity: Any, allow_zero: bool) -> float:
        if quantity is None or isinstance(quantity, bool):
            raise InvalidQuantityError(quantity, allow_zero)
        try:
            qty = float(quantity)
        except (TypeError, ValueError, OverflowError):
            raise InvalidQuantityError(quantity, allow_zero)

        if not math.isfinite(qty):
            raise InvalidQuantityError(quantity, allow_zero)
        if qty < 0 or (qty == 0 and not allow_zero):
            raise InvalidQuantityError(quantity, allow_zero)
        return qty

    def _payload_line(self, line: TransactionLine):
        item = self._items[line.item_id]
        qty_default = to_default(line.quantity, line.unit, item)
        note = line.note or None

        if self.kind == TransactionKind.STOCK_OPNAME:
            return StockOpnamePayloadLine(
                item_id=item.id,
                physical_quantity=qty_default,
                unit=item.default_unit,
                note=note
            )
        return PayloadLine(
            item_id=item.id,
            quantity=qty_default,
            unit=item.default_unit,
            note=note
        )
