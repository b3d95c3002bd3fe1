# backend/transaction_forms.py

"""
Transaction forms - one in-progress batch per form instance.

A form holds the catalog it loaded, the batch being assembled and the
client used to reach the remote side. Only load_catalog / load_suppliers /
submit do I/O; they run the blocking client call in a worker thread so the
caller's event loop stays free, and a form allows one submission in flight
at a time. No retries: a failed submit keeps the batch for the user to
send again.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ValidationError

from stock_models import Item, TransactionKind, TransactionLine, ReferenceStock, ApiResponse, TransactionPayload
from transaction_line_builder import (
    TransactionLineBuilder,
    AddLineResult,
    LineRejectionError,
    SubmissionInProgressError,
)
from stock_validation import available_in_unit, system_stock_in_unit, variance, requires_correction
from config import get_settings

logger = logging.getLogger(__name__)


class SubmissionResult(BaseModel):
    success: bool
    message: str = ""
    data: Any = None
    errors: List[Dict[str, Any]] = []

    @classmethod
    def rejected(cls, error: LineRejectionError) -> "SubmissionResult":
        return cls(success=False, message=error.message, errors=[error.to_dict()])


class TransactionForm(ABC):
    """Base form; subclasses fix the transaction kind and the submit action"""

    kind: TransactionKind
    failure_message = "Failed to save transaction"

    def __init__(self, api, reference: ReferenceStock = ReferenceStock.ON_HAND):
        self.api = api
        self.builder = TransactionLineBuilder(self.kind, reference)
        self.items: List[Item] = []
        self.submitting = False

    # ==================== CATALOG ====================

    async def load_catalog(self, search: str = "") -> ApiResponse:
        result = await asyncio.to_thread(self.api.get_item_list, search)
        if not result.success:
            logger.warning(f"Catalog load failed: {result.message}")
            return result

        items: List[Item] = []
        for row in result.data or []:
            try:
                items.append(Item.model_validate(row))
            except ValidationError as e:
                row_id = row.get("id") if isinstance(row, dict) else row
                logger.warning(f"Skipping catalog row {row_id!r}: {e}")
        self.items = items
        return result

    def search_items(self, query: str) -> List[Item]:
        """Case-insensitive substring match on code or name"""
        needle = (query or "").strip().lower()
        if not needle:
            return list(self.items)
        return [
            item for item in self.items
            if needle in item.code.lower() or needle in item.name.lower()
        ]

    def find_item(self, item_id: str) -> Optional[Item]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    # ==================== BATCH ====================

    @property
    def lines(self) -> List[TransactionLine]:
        return self.builder.lines

    def add_line(self, item: Optional[Item], quantity: Any, unit: Optional[str], note: str = "") -> AddLineResult:
        if self.submitting:
            return AddLineResult.rejected(SubmissionInProgressError())
        return self.builder.add_line(item, quantity, unit, note)

    def remove_line(self, index: int) -> Optional[TransactionLine]:
        if self.submitting:
            raise SubmissionInProgressError()
        return self.builder.remove_line(index)

    def discard(self) -> None:
        """Navigation away: drop the batch, nothing was sent"""
        if self.submitting:
            raise SubmissionInProgressError()
        self.builder.clear()

    # ==================== SUBMIT ====================

    @abstractmethod
    def _send(self, payload: TransactionPayload) -> ApiResponse:
        """Blocking call to the collaborator action for this kind"""

    async def submit(self, date: Optional[str] = None, note: str = "", **header) -> SubmissionResult:
        if self.submitting:
            return SubmissionResult.rejected(SubmissionInProgressError())
        try:
            self.builder.check_submittable()
        except LineRejectionError as e:
            return SubmissionResult.rejected(e)

        payload = self.builder.build_payload(date, note, **header)

        self.submitting = True
        try:
            response = await asyncio.to_thread(self._send, payload)
        except Exception as e:
            logger.error(f"Unexpected error submitting {self.kind.value}: {e}", exc_info=True)
            return SubmissionResult(success=False, message=f"Unexpected error: {str(e)}")
        finally:
            self.submitting = False

        if not response.success:
            logger.warning(f"{self.kind.value} submission failed: {response.message}")
            return SubmissionResult(
                success=False,
                message=response.message or self.failure_message,
                data=response.data
            )

        logger.info(f"{self.kind.value} submitted with {len(payload.lines)} line(s)")
        self.builder.clear()
        return SubmissionResult(success=True, message=response.message, data=response.data)


class InboundForm(TransactionForm):
    """Goods received"""

    kind = TransactionKind.INBOUND

    def __init__(self, api):
        super().__init__(api)
        self.suppliers: List[Dict[str, Any]] = []

    async def load_suppliers(self) -> ApiResponse:
        result = await asyncio.to_thread(self.api.get_suppliers)
        if result.success:
            self.suppliers = list(result.data or [])
        else:
            logger.warning(f"Supplier load failed: {result.message}")
        return result

    def _send(self, payload: TransactionPayload) -> ApiResponse:
        return self.api.create_inbound_transaction(payload)

    async def submit(
        self,
        date: Optional[str] = None,
        note: str = "",
        supplier_id: Optional[str] = None,
        po_number: Optional[str] = None,
        delivery_note_number: Optional[str] = None
    ) -> SubmissionResult:
        return await super().submit(
            date,
            note,
            supplier_id=supplier_id or None,
            po_number=po_number or None,
            delivery_note_number=delivery_note_number or None
        )


class OutboundForm(TransactionForm):
    """Goods issued; every line is checked against stock on hand"""

    kind = TransactionKind.OUTBOUND

    def available_stock(self, item: Item, unit: str) -> float:
        return available_in_unit(item, unit)

    def _send(self, payload: TransactionPayload) -> ApiResponse:
        return self.api.create_outbound_transaction(payload)


class StockOpnameForm(TransactionForm):
    """Physical count reconciliation"""

    kind = TransactionKind.STOCK_OPNAME
    failure_message = "Failed to save stock opname"

    def __init__(self, api, reference: Optional[ReferenceStock] = None):
        if reference is None:
            reference = get_settings().stock_opname_reference
        super().__init__(api, reference)

    @property
    def reference(self) -> ReferenceStock:
        return self.builder.reference

    def preview(self, item: Item, physical_quantity: float, unit: str) -> Dict[str, Any]:
        """System stock and variance in `unit`, before the line is added"""
        signed = variance(physical_quantity, unit, item, self.reference)
        return {
            "system_stock": system_stock_in_unit(item, unit, self.reference),
            "variance": signed,
            "requires_correction": requires_correction(signed),
        }

    def _send(self, payload: TransactionPayload) -> ApiResponse:
        return self.api.create_stock_opname(payload)
