# backend/tests/test_transaction_line_builder.py

"""
Unit tests for Transaction Line Builder

Tests cover:
- Validation order and every rejection code
- Outbound stock check with available stock in the chosen unit
- Stock opname derived fields and zero counts
- One line per item, removal by position
- Payload normalization to the default unit
"""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from stock_models import Item, TransactionKind, ReferenceStock, InboundPayload
from transaction_line_builder import (
    TransactionLineBuilder,
    LineStatus,
    EmptyBatchError,
)


@pytest.fixture
def cement_item():
    return Item(
        id="BRG-002",
        code="SMN",
        name="Semen",
        default_unit="kg",
        alternate_unit_1="sak",
        conversion_factor_1=50,
        stock_on_hand=1000,
        minimum_stock=200
    )


@pytest.fixture
def paint_item():
    return Item(
        id="BRG-003",
        code="CAT",
        name="Cat Tembok",
        default_unit="liter",
        alternate_unit_1="pail",
        conversion_factor_1=20,
        alternate_unit_2="galon",
        conversion_factor_2=5,
        stock_on_hand=60
    )


@pytest.fixture
def inbound():
    return TransactionLineBuilder(TransactionKind.INBOUND)


@pytest.fixture
def outbound():
    return TransactionLineBuilder(TransactionKind.OUTBOUND)


@pytest.fixture
def opname():
    return TransactionLineBuilder(TransactionKind.STOCK_OPNAME, ReferenceStock.ON_HAND)


def error_codes(result):
    return [e["error_code"] for e in result.errors]


class TestValidation:
    """Test add_line checks"""

    def test_no_item(self, inbound):
        result = inbound.add_line(None, 5, "kg")

        assert result.status == LineStatus.REJECTED
        assert error_codes(result) == ["NO_ITEM_SELECTED"]
        assert inbound.is_empty()

    @pytest.mark.parametrize("quantity", [0, -1, None, "", "abc", float("nan"), float("inf"), True, 10**400])
    def test_invalid_quantity(self, inbound, cement_item, quantity):
        result = inbound.add_line(cement_item, quantity, "kg")

        assert error_codes(result) == ["INVALID_QUANTITY"]
        assert "greater than zero" in result.message

    def test_numeric_string_quantity(self, inbound, cement_item):
        result = inbound.add_line(cement_item, "2.5", "sak")

        assert result.accepted
        assert result.line.quantity == 2.5

    @pytest.mark.parametrize("unit", ["", None, "   ", "drum", "KG"])
    def test_unit_not_legal(self, inbound, cement_item, unit):
        result = inbound.add_line(cement_item, 5, unit)

        assert error_codes(result) == ["UNIT_NOT_SELECTED"]
        assert result.errors[0]["field"] == "unit"

    def test_first_failure_wins(self, outbound, cement_item):
        """Bad quantity is reported before bad unit and stock"""
        result = outbound.add_line(cement_item, 0, "drum")

        assert error_codes(result) == ["INVALID_QUANTITY"]

    def test_duplicate_item_rejected_regardless_of_quantity_and_unit(self, inbound, cement_item):
        assert inbound.add_line(cement_item, 10, "kg").accepted

        result = inbound.add_line(cement_item, 2, "sak")

        assert error_codes(result) == ["DUPLICATE_ITEM"]
        assert "already in the list" in result.message
        assert len(inbound) == 1

    def test_rejection_does_not_mutate(self, inbound, cement_item, paint_item):
        inbound.add_line(cement_item, 10, "kg")
        before = inbound.lines

        inbound.add_line(paint_item, -3, "liter")

        assert inbound.lines == before


class TestOutbound:
    """Test outbound stock rule"""

    def test_within_stock(self, outbound, paint_item):
        result = outbound.add_line(paint_item, 3, "pail")

        assert result.accepted
        assert result.line.available_stock == 3
        assert result.line.available_stock_default == 60

    def test_insufficient_stock_reports_chosen_unit(self, outbound, paint_item):
        result = outbound.add_line(paint_item, 13, "galon")

        assert error_codes(result) == ["INSUFFICIENT_STOCK"]
        assert "available: 12 galon" in result.message

    def test_stock_checked_before_duplicate(self, outbound, paint_item):
        outbound.add_line(paint_item, 1, "pail")

        result = outbound.add_line(paint_item, 4, "pail")

        assert error_codes(result) == ["INSUFFICIENT_STOCK"]

    def test_inbound_ignores_stock(self, inbound, paint_item):
        assert inbound.add_line(paint_item, 100, "pail").accepted


class TestStockOpname:
    """Test reconciliation lines"""

    def test_derived_fields(self, opname, cement_item):
        result = opname.add_line(cement_item, 19, "sak", note="2 sak basah")

        line = result.line
        assert result.accepted
        assert line.system_stock == 20
        assert line.variance == -1
        assert line.requires_correction is True
        assert line.note == "2 sak basah"

    def test_matching_count(self, opname, cement_item):
        line = opname.add_line(cement_item, 1000, "kg").line

        assert line.variance == 0
        assert line.requires_correction is False

    def test_zero_count_allowed(self, opname, cement_item):
        result = opname.add_line(cement_item, 0, "kg")

        assert result.accepted
        assert result.line.variance == -1000

    def test_negative_count_rejected(self, opname, cement_item):
        result = opname.add_line(cement_item, -1, "kg")

        assert error_codes(result) == ["INVALID_QUANTITY"]
        assert "zero or greater" in result.message

    def test_minimum_stock_reference(self, cement_item):
        builder = TransactionLineBuilder(TransactionKind.STOCK_OPNAME, ReferenceStock.MINIMUM_STOCK)

        line = builder.add_line(cement_item, 5, "sak").line

        assert line.system_stock == 4
        assert line.variance == 1


class TestBatch:
    """Test ordering, immutability and removal"""

    def test_insertion_order(self, inbound, cement_item, paint_item):
        inbound.add_line(paint_item, 1, "pail")
        inbound.add_line(cement_item, 2, "sak")

        assert [line.item_id for line in inbound.lines] == ["BRG-003", "BRG-002"]

    def test_line_is_immutable(self, inbound, cement_item):
        line = inbound.add_line(cement_item, 2, "sak").line

        with pytest.raises(Exception):
            line.quantity = 3

    def test_unit_options_recorded(self, inbound, paint_item):
        line = inbound.add_line(paint_item, 2, "galon").line

        assert line.unit_options == ["liter", "pail", "galon"]

    def test_remove_by_position_then_re_add(self, inbound, cement_item, paint_item):
        inbound.add_line(cement_item, 2, "sak")
        inbound.add_line(paint_item, 1, "pail")

        removed = inbound.remove_line(0)

        assert removed.item_id == "BRG-002"
        assert [line.item_id for line in inbound.lines] == ["BRG-003"]
        assert inbound.add_line(cement_item, 5, "sak").accepted

    @pytest.mark.parametrize("index", [-1, 1, 5])
    def test_remove_invalid_position(self, inbound, cement_item, index):
        inbound.add_line(cement_item, 2, "sak")

        assert inbound.remove_line(index) is None
        assert len(inbound) == 1

    def test_empty_batch_not_submittable(self, inbound):
        with pytest.raises(EmptyBatchError) as exc_info:
            inbound.check_submittable()

        assert exc_info.value.error_code == "EMPTY_BATCH"


class TestPayload:
    """Test normalization to default unit"""

    def test_outbound_payload(self, outbound, cement_item, paint_item):
        outbound.add_line(cement_item, 3, "sak")
        outbound.add_line(paint_item, 2, "galon", note="lantai 2")

        wire = outbound.build_payload("2024-05-01", "Proyek A").to_wire()

        assert wire == {
            "tanggal": "2024-05-01",
            "keterangan": "Proyek A",
            "items": [
                {"barangId": "BRG-002", "quantity": 150.0, "satuan": "kg"},
                {"barangId": "BRG-003", "quantity": 10.0, "satuan": "liter", "keterangan": "lantai 2"},
            ]
        }

    def test_stock_opname_payload_drops_display_fields(self, opname, cement_item):
        opname.add_line(cement_item, 19, "sak")

        wire = opname.build_payload("2024-05-01").to_wire()

        assert wire["items"] == [{"barangId": "BRG-002", "stokFisik": 950.0, "satuan": "kg"}]
        assert wire["keterangan"] == ""

    def test_inbound_header(self, inbound, cement_item):
        inbound.add_line(cement_item, 1, "sak")

        payload = inbound.build_payload(
            "2024-05-01",
            supplier_id="SUP-01",
            po_number="PO/24/001",
            delivery_note_number="SJ-778"
        )
        wire = payload.to_wire()

        assert isinstance(payload, InboundPayload)
        assert wire["supplierId"] == "SUP-01"
        assert wire["nomorPO"] == "PO/24/001"
        assert wire["nomorSuratJalan"] == "SJ-778"

    def test_header_only_for_inbound(self, outbound, cement_item):
        outbound.add_line(cement_item, 1, "sak")

        with pytest.raises(TypeError):
            outbound.build_payload("2024-05-01", supplier_id="SUP-01")

    def test_default_date(self, inbound, cement_item):
        inbound.add_line(cement_item, 1, "kg")

        payload = inbound.build_payload()

        assert len(payload.date) == 10
        assert payload.date[4] == "-"
