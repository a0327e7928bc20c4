"""
stock_engines.goods_receipt -- Accepted / rejected split of goods receipt lines.

Responsibility:
    Keep each received bill line's accepted and rejected quantities within
    the ordered quantity while the user edits them, and validate receipt
    lines and whole receipts before submission.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel.domain.

Invariants enforced:
    - After ``apply_quantity_change`` both quantities are >= 0 and
      ``accepted + rejected <= ordered``.
    - The edited field keeps its value (floored at 0, capped at ordered);
      the other field absorbs any overflow.
    - Validation collects every error; it never short-circuits.

Failure modes:
    - ValueError for an unknown field name (programming error).
    - Bad quantity input never raises; it is treated as 0.

Usage:
    from stock_engines.goods_receipt import GoodsReceiptLineReconciler, ReceiptField

    reconciler = GoodsReceiptLineReconciler()
    line = reconciler.apply_quantity_change(line, ReceiptField.REJECTED, "5")
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from decimal import Decimal
from enum import Enum
from typing import Any

from stock_kernel.domain.records import GoodsReceipt, GoodsReceiptLine, identifier
from stock_kernel.domain.values import (
    ZERO,
    coerce_quantity,
    is_blank,
    non_negative,
)
from stock_kernel.logging_config import get_logger
from stock_engines.tracer import traced_engine
from stock_engines.validation import ValidationOutcome

logger = get_logger("engines.goods_receipt")

UNKNOWN_PRODUCT_NAME = "Unknown Product"


class ReceiptField(str, Enum):
    """Editable quantity field of a receipt line."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value: ReceiptField | str) -> ReceiptField:
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        # Accept the API's field names as well.
        normalized = _FIELD_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"Unknown receipt quantity field: {value!r}"
            ) from None


_FIELD_ALIASES = {
    "quantityaccepted": "accepted",
    "quantity_accepted": "accepted",
    "quantityrejected": "rejected",
    "quantity_rejected": "rejected",
}


class GoodsReceiptLineReconciler:
    """
    Stateless reconciler for goods receipt lines.

    Contract:
        Each call takes a line and returns a new line; the input is never
        modified.
    Guarantees:
        - ``apply_quantity_change`` maintains the receipt invariant by
          clamping, never by rejecting the edit.
        - ``validate_line`` and ``validate_receipt`` report all problems.
    """

    @traced_engine(
        "goods_receipt", "1.0",
        fingerprint_fields=("field", "new_value"),
    )
    def apply_quantity_change(
        self,
        line: GoodsReceiptLine,
        field: ReceiptField | str,
        new_value: Any,
    ) -> GoodsReceiptLine:
        """
        Set one quantity field and clamp the other to stay within ordered.

        Args:
            line: Current line state.
            field: ``accepted`` or ``rejected``.
            new_value: Raw input; non-numeric and negative values count as
                0, values above the ordered quantity are capped at it.

        Returns:
            The updated line.

        Raises:
            ValueError: If ``field`` is not a receipt quantity field.
        """
        target = ReceiptField.parse(field)
        ordered = non_negative(line.ordered_quantity)
        # The edit itself can never exceed the ordered quantity.
        edited = min(non_negative(coerce_quantity(new_value)), ordered)

        if target is ReceiptField.ACCEPTED:
            accepted, rejected = edited, non_negative(line.quantity_rejected)
            if accepted + rejected > ordered:
                rejected = non_negative(ordered - accepted)
        else:
            accepted, rejected = non_negative(line.quantity_accepted), edited
            if accepted + rejected > ordered:
                accepted = non_negative(ordered - rejected)

        return replace(line, quantity_accepted=accepted, quantity_rejected=rejected)

    @staticmethod
    def validate_line(line: GoodsReceiptLine, index: int | None = None) -> list[str]:
        """
        Advisory checks on one line.

        Args:
            line: Line to check.
            index: Zero-based position; when given, messages are prefixed
                with ``Line N:`` (one-based).
        """
        prefix = f"Line {index + 1}: " if index is not None else ""
        errors: list[str] = []

        if line.product_id is None:
            errors.append(f"{prefix}Product ID is required")
        if line.bill_line_id is None:
            errors.append(f"{prefix}Bill Line ID is required")

        total = line.total_quantity
        if total <= ZERO:
            errors.append(
                f"{prefix}Total quantity (accepted + rejected) must be greater than 0"
            )
        if total > line.ordered_quantity:
            errors.append(
                f"{prefix}Total quantity (accepted + rejected) cannot exceed "
                f"ordered quantity ({line.ordered_quantity})"
            )
        if line.quantity_rejected > ZERO and is_blank(line.rejection_reason):
            errors.append(
                f"{prefix}Rejection reason is required when quantity is rejected"
            )
        return errors

    @traced_engine("goods_receipt_validation", "1.0", fingerprint_fields=("receipt",))
    def validate_receipt(self, receipt: GoodsReceipt) -> ValidationOutcome:
        """Validate header fields and every line of a bill-based receipt."""
        logger.info("goods_receipt_validation_started", extra={
            "bill_id": receipt.bill_id,
            "line_count": len(receipt.lines),
        })

        errors: list[str] = []
        if receipt.supplier_id is None:
            errors.append("Supplier ID is required")
        if is_blank(receipt.reference_number):
            errors.append("Document reference is required")
        if receipt.bill_id is None:
            errors.append("Bill ID is required")
        if is_blank(receipt.received_by):
            errors.append("Received by field is required")

        if not receipt.lines:
            errors.append("At least one line is required")
        for index, line in enumerate(receipt.lines):
            errors.extend(self.validate_line(line, index))

        outcome = ValidationOutcome.of(errors)
        logger.info("goods_receipt_validation_completed", extra={
            "bill_id": receipt.bill_id,
            "is_valid": outcome.is_valid,
            "error_count": len(outcome.errors),
        })
        return outcome

    @staticmethod
    def create_line_from_bill_line(
        bill_line: Mapping[str, Any],
        bill_id: str | int | None = None,
    ) -> GoodsReceiptLine:
        """
        Start a receipt line from a purchase bill line.

        The whole ordered quantity is accepted by default and nothing is
        rejected.
        """
        ordered = non_negative(coerce_quantity(bill_line.get("quantity")))
        return GoodsReceiptLine(
            bill_line_id=identifier(bill_line.get("id")),
            product_id=identifier(bill_line.get("productId")),
            ordered_quantity=ordered,
            quantity_accepted=ordered,
            quantity_rejected=ZERO,
            rejection_reason="",
            product_name=bill_line.get("productName") or UNKNOWN_PRODUCT_NAME,
            bill_id=identifier(bill_id),
        )

    def create_receipt_from_bill(
        self,
        bill: Mapping[str, Any],
        reference_number: str,
        received_by: str = "",
        notes: str = "",
    ) -> GoodsReceipt:
        """Build a receipt with one fully accepted line per bill line."""
        bill_id = bill.get("id")
        lines = tuple(
            self.create_line_from_bill_line(bill_line, bill_id)
            for bill_line in bill.get("billLines") or ()
        )
        return GoodsReceipt(
            bill_id=identifier(bill_id),
            supplier_id=identifier(bill.get("partyId") or bill.get("vendorId")),
            reference_number=reference_number,
            received_by=received_by,
            lines=lines,
            notes=notes,
        )


def receipt_totals(receipt: GoodsReceipt) -> dict[str, Decimal]:
    """Ordered, accepted and rejected totals across a receipt's lines."""
    ordered = accepted = rejected = ZERO
    for line in receipt.lines:
        ordered += line.ordered_quantity
        accepted += line.quantity_accepted
        rejected += line.quantity_rejected
    return {"ordered": ordered, "accepted": accepted, "rejected": rejected}
