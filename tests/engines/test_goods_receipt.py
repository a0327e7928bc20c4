"""
Tests for the goods receipt line reconciler.

Covers:
- Greedy clamp when accepted + rejected exceeds ordered
- Non-numeric and negative input
- Line and receipt validation messages
- Building receipts from purchase bills
"""

from decimal import Decimal

import pytest

from stock_engines.goods_receipt import (
    GoodsReceiptLineReconciler,
    ReceiptField,
    receipt_totals,
)
from stock_kernel.domain.records import GoodsReceipt, GoodsReceiptLine


def _line(ordered="10", accepted="0", rejected="0", reason="", **kwargs):
    defaults = {"bill_line_id": "L1", "product_id": "P1"}
    defaults.update(kwargs)
    return GoodsReceiptLine(
        ordered_quantity=Decimal(ordered),
        quantity_accepted=Decimal(accepted),
        quantity_rejected=Decimal(rejected),
        rejection_reason=reason,
        **defaults,
    )


class TestApplyQuantityChange:

    def setup_method(self):
        self.reconciler = GoodsReceiptLineReconciler()

    def test_rejected_edit_clamps_accepted(self):
        line = _line(accepted="8")
        result = self.reconciler.apply_quantity_change(line, "rejected", 5)

        assert result.quantity_rejected == Decimal("5")
        assert result.quantity_accepted == Decimal("5")

    def test_accepted_edit_clamps_rejected(self):
        line = _line(accepted="2", rejected="6")
        result = self.reconciler.apply_quantity_change(line, ReceiptField.ACCEPTED, "7")

        assert result.quantity_accepted == Decimal("7")
        assert result.quantity_rejected == Decimal("3")

    def test_no_clamp_within_ordered(self):
        line = _line(accepted="3")
        result = self.reconciler.apply_quantity_change(line, "rejected", "2")

        assert result.quantity_accepted == Decimal("3")
        assert result.quantity_rejected == Decimal("2")

    def test_edit_above_ordered_is_capped(self):
        line = _line(accepted="4", rejected="4")
        result = self.reconciler.apply_quantity_change(line, "accepted", "15")

        assert result.quantity_accepted == Decimal("10")
        assert result.quantity_rejected == Decimal("0")

    @pytest.mark.parametrize("raw", ["", "abc", None, "  "])
    def test_non_numeric_input_is_zero(self, raw):
        line = _line(accepted="4")
        result = self.reconciler.apply_quantity_change(line, "accepted", raw)
        assert result.quantity_accepted == Decimal("0")

    def test_negative_input_is_zero(self):
        line = _line(rejected="2")
        result = self.reconciler.apply_quantity_change(line, "rejected", "-3")
        assert result.quantity_rejected == Decimal("0")

    def test_api_field_names_accepted(self):
        line = _line()
        result = self.reconciler.apply_quantity_change(line, "quantityRejected", "1")
        assert result.quantity_rejected == Decimal("1")

    def test_unknown_field_raises(self):
        with pytest.raises(ValueError, match="Unknown receipt quantity field"):
            self.reconciler.apply_quantity_change(_line(), "ordered", "1")

    def test_input_line_untouched(self):
        line = _line(accepted="8")
        self.reconciler.apply_quantity_change(line, "rejected", 5)
        assert line.quantity_accepted == Decimal("8")


class TestValidateLine:

    def setup_method(self):
        self.reconciler = GoodsReceiptLineReconciler()

    def test_valid_line(self):
        assert self.reconciler.validate_line(_line(accepted="10")) == []

    def test_zero_total(self):
        errors = self.reconciler.validate_line(_line())
        assert errors == ["Total quantity (accepted + rejected) must be greater than 0"]

    def test_total_above_ordered(self):
        errors = self.reconciler.validate_line(_line(accepted="8", rejected="4", reason="broken"))
        assert len(errors) == 1
        assert "cannot exceed ordered quantity" in errors[0]

    def test_rejection_requires_reason(self):
        errors = self.reconciler.validate_line(_line(accepted="5", rejected="1", reason="   "))
        assert errors == ["Rejection reason is required when quantity is rejected"]

    def test_missing_ids_and_prefix(self):
        line = _line(accepted="1", product_id=None, bill_line_id=None)
        errors = self.reconciler.validate_line(line, index=2)
        assert errors == [
            "Line 3: Product ID is required",
            "Line 3: Bill Line ID is required",
        ]


class TestValidateReceipt:

    def setup_method(self):
        self.reconciler = GoodsReceiptLineReconciler()

    def test_valid_receipt(self):
        receipt = GoodsReceipt(
            bill_id="B1",
            supplier_id="S1",
            reference_number="GR-001",
            received_by="warehouse clerk",
            lines=(_line(accepted="10"),),
        )
        outcome = self.reconciler.validate_receipt(receipt)
        assert outcome.is_valid

    def test_collects_header_and_line_errors(self):
        receipt = GoodsReceipt(
            bill_id=None,
            supplier_id=None,
            reference_number="",
            received_by=" ",
            lines=(_line(accepted="10"), _line(rejected="1")),
        )
        outcome = self.reconciler.validate_receipt(receipt)

        assert not outcome.is_valid
        assert outcome.errors == (
            "Supplier ID is required",
            "Document reference is required",
            "Bill ID is required",
            "Received by field is required",
            "Line 2: Rejection reason is required when quantity is rejected",
        )

    def test_requires_lines(self):
        receipt = GoodsReceipt(
            bill_id="B1", supplier_id="S1", reference_number="R", received_by="me",
        )
        outcome = self.reconciler.validate_receipt(receipt)
        assert outcome.errors == ("At least one line is required",)

    def test_validation_logged(self, captured_logs):
        receipt = GoodsReceipt(
            bill_id="B1", supplier_id="S1", reference_number="R", received_by="me",
        )
        self.reconciler.validate_receipt(receipt)
        messages = [r["message"] for r in captured_logs()]
        assert "goods_receipt_validation_started" in messages
        assert "goods_receipt_validation_completed" in messages


class TestCreateFromBill:

    def setup_method(self):
        self.reconciler = GoodsReceiptLineReconciler()

    def test_line_defaults_to_full_acceptance(self):
        line = self.reconciler.create_line_from_bill_line(
            {"id": 11, "productId": 5, "productName": "Rice", "quantity": 12},
            bill_id=3,
        )
        assert line.bill_line_id == "11"
        assert line.product_id == "5"
        assert line.bill_id == "3"
        assert line.ordered_quantity == Decimal("12")
        assert line.quantity_accepted == Decimal("12")
        assert line.quantity_rejected == Decimal("0")
        assert line.rejection_reason == ""

    def test_line_without_name(self):
        line = self.reconciler.create_line_from_bill_line({"id": 1, "productId": 2})
        assert line.product_name == "Unknown Product"
        assert line.ordered_quantity == Decimal("0")

    def test_receipt_from_bill(self):
        bill = {
            "id": 9,
            "partyId": 4,
            "billLines": [
                {"id": 1, "productId": 2, "quantity": "3"},
                {"id": 2, "productId": 3, "quantity": "4.5"},
            ],
        }
        receipt = self.reconciler.create_receipt_from_bill(bill, "GR-9", "clerk")

        assert receipt.bill_id == "9"
        assert receipt.supplier_id == "4"
        assert len(receipt.lines) == 2
        assert self.reconciler.validate_receipt(receipt).is_valid
        assert receipt_totals(receipt) == {
            "ordered": Decimal("7.5"),
            "accepted": Decimal("7.5"),
            "rejected": Decimal("0"),
        }
