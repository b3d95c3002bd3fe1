# backend/stock_models.py

"""
Data contracts shared by the unit conversion, validation and submission code.

Item records come from the catalog with the spreadsheet's column names
(kode, nama, satuanDefault, ...). Models expose English attribute names and
accept either form; payloads are dumped back with the wire aliases.
"""

from enum import Enum
from typing import Optional, List, Any, Union
from datetime import datetime, timezone
from pydantic import BaseModel, Field, ConfigDict, field_validator


# ==================== ENUMS ====================

class TransactionKind(str, Enum):
    """Kinds of stock movement a form can batch"""
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"
    STOCK_OPNAME = "STOCK_OPNAME"


class ReferenceStock(str, Enum):
    """System figure a physical count is compared against"""
    ON_HAND = "on_hand"
    MINIMUM_STOCK = "minimum_stock"


# ==================== MASTER DATA ====================

class Item(BaseModel):
    """Catalog item (read-only master data)"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    code: str = Field(default="", alias="kode")
    name: str = Field(default="", alias="nama")
    default_unit: str = Field(alias="satuanDefault")
    alternate_unit_1: str = Field(default="", alias="satuanAlternatif1")
    conversion_factor_1: float = Field(default=0.0, alias="konversiAlternatif1")
    alternate_unit_2: str = Field(default="", alias="satuanAlternatif2")
    conversion_factor_2: float = Field(default=0.0, alias="konversiAlternatif2")
    stock_on_hand: float = Field(default=0.0, ge=0, alias="stok")  # always in default_unit
    minimum_stock: float = Field(default=0.0, ge=0, alias="minStok")  # always in default_unit
    category: Optional[str] = Field(default=None, alias="kategori")

    @field_validator("id", "code", "name", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v)

    @field_validator("default_unit", "alternate_unit_1", "alternate_unit_2", mode="before")
    @classmethod
    def _unit_name(cls, v: Any) -> str:
        # Absent alternate units arrive as null or blank cells
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("default_unit")
    @classmethod
    def _default_unit_required(cls, v: str) -> str:
        if not v:
            raise ValueError("default unit must not be blank")
        return v

    @field_validator(
        "conversion_factor_1", "conversion_factor_2", "stock_on_hand", "minimum_stock",
        mode="before"
    )
    @classmethod
    def _blank_number(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0.0
        return v


# ==================== TRANSACTION LINES ====================

class TransactionLine(BaseModel):
    """
    One line of an in-progress batch.

    quantity is expressed in `unit` (the unit the user picked). For stock
    opname lines it is the physical count; system_stock, variance and
    requires_correction are display aids in that same unit.
    """
    model_config = ConfigDict(frozen=True)

    kind: TransactionKind
    item_id: str
    item_code: str = ""
    item_name: str = ""
    quantity: float
    unit: str
    unit_options: List[str] = []
    note: str = ""

    # OUTBOUND
    available_stock: Optional[float] = None
    available_stock_default: Optional[float] = None

    # STOCK_OPNAME
    system_stock: Optional[float] = None
    variance: Optional[float] = None
    requires_correction: Optional[bool] = None


# ==================== SUBMISSION PAYLOADS ====================

class PayloadLine(BaseModel):
    """Inbound/outbound line, quantity already in the item's default unit"""
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(alias="barangId")
    quantity: float
    unit: str = Field(alias="satuan")
    note: Optional[str] = Field(default=None, alias="keterangan")


class StockOpnamePayloadLine(BaseModel):
    """Stock opname line, physical count already in the item's default unit"""
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(alias="barangId")
    physical_quantity: float = Field(alias="stokFisik")
    unit: str = Field(alias="satuan")
    note: Optional[str] = Field(default=None, alias="keterangan")


class TransactionPayload(BaseModel):
    """Batch as sent to the remote collaborator"""
    model_config = ConfigDict(populate_by_name=True)

    date: str = Field(alias="tanggal")
    note: str = Field(default="", alias="keterangan")
    lines: List[Union[PayloadLine, StockOpnamePayloadLine]] = Field(alias="items")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class InboundPayload(TransactionPayload):
    """Inbound batch with the receiving document references"""
    supplier_id: Optional[str] = Field(default=None, alias="supplierId")
    po_number: Optional[str] = Field(default=None, alias="nomorPO")
    delivery_note_number: Optional[str] = Field(default=None, alias="nomorSuratJalan")


# ==================== COLLABORATOR ENVELOPE ====================

class ApiResponse(BaseModel):
    """Success/failure envelope returned by every collaborator action"""
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    data: Any = None
    message: str = ""
    timestamp: str = ""

    @field_validator("message", "timestamp", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v)

    @classmethod
    def failure(cls, message: str, data: Any = None) -> "ApiResponse":
        return cls(
            success=False,
            data=data,
            message=message,
            timestamp=datetime.now(timezone.utc).isoformat()
        )
