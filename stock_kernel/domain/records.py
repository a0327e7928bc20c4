"""
Records -- immutable inventory records exchanged with the outside world.

Responsibility:
    Frozen dataclasses for the catalog, ledger and document shapes the
    reconciliation engines consume.  Each boundary record offers
    ``from_mapping()`` to accept the inventory API's camelCase dictionaries
    and, where it is submitted back, ``to_payload()`` to produce one.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Imported by engines and
    services; imports only ``stock_kernel.domain.values``.

Invariants enforced:
    - Every quantity field is ``Decimal`` (never float).
    - Identifiers are normalized to ``str`` so catalog ids and ledger ids
      compare equal regardless of whether the API sent ints or strings.
    - Collections are tuples; a record never changes after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping

from stock_kernel.domain.values import (
    ZERO,
    coerce_quantity,
    is_blank,
    optional_quantity,
    parse_date,
    parse_timestamp,
)


def identifier(value: Any) -> str | None:
    """Normalize an API identifier (int or str) to a stripped string."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _text(value: Any) -> str | None:
    if is_blank(value):
        return None
    return str(value).strip()


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    """Value of the first key that is present with a non-blank value."""
    for key in keys:
        value = data.get(key)
        if not is_blank(value):
            return value
    return None


# ---------------------------------------------------------------------------
# Catalog and ledger sources
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CatalogProduct:
    """A catalog entry: identity, unit, thresholds and price."""

    product_id: str | None
    name: str
    unit: str = ""
    reorder_level: Decimal | None = None
    max_stock: Decimal | None = None
    selling_price: Decimal = ZERO

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> CatalogProduct:
        return cls(
            product_id=identifier(_first(data, "productId", "id")),
            name=str(data.get("name") or ""),
            unit=str(data.get("unit") or ""),
            reorder_level=optional_quantity(data.get("reorderLevel")),
            max_stock=optional_quantity(data.get("maxStock")),
            selling_price=coerce_quantity(_first(data, "price", "sellingPrice")),
        )


@dataclass(frozen=True)
class LedgerStock:
    """Current on-hand stock for one product as reported by the ledger."""

    product_id: str | None
    current_stock: Decimal
    unit_of_measure: str | None = None
    last_updated: datetime | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LedgerStock:
        return cls(
            product_id=identifier(data.get("productId")),
            current_stock=coerce_quantity(data.get("currentStock")),
            unit_of_measure=_text(data.get("unitOfMeasure")),
            last_updated=parse_timestamp(data.get("lastUpdated")),
        )


@dataclass(frozen=True)
class LedgerMovement:
    """
    A single signed quantity change on the stock ledger.

    ``quantity`` keeps its sign (negative for disposals and returns out);
    aggregation works on absolute values.
    """

    id: str | None
    product_id: str | None
    quantity: Decimal
    movement_type: str | None = None
    product_name: str | None = None
    product_unit: str | None = None
    document_reference: str | None = None
    reference_id: str | None = None
    reference_type: str | None = None
    event_timestamp: datetime | None = None
    user_id: str | None = None
    warehouse_name: str | None = None
    notes: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LedgerMovement:
        return cls(
            id=identifier(data.get("id")),
            product_id=identifier(data.get("productId")),
            quantity=coerce_quantity(data.get("quantity")),
            movement_type=_text(data.get("movementType")),
            product_name=_text(data.get("productName")),
            product_unit=_text(data.get("productUnit")),
            document_reference=_text(data.get("documentReference")),
            reference_id=identifier(data.get("referenceId")),
            reference_type=_text(data.get("referenceType")),
            event_timestamp=parse_timestamp(data.get("eventTimestamp")),
            user_id=_text(data.get("userId")),
            warehouse_name=_text(data.get("warehouseName")),
            notes=data.get("notes") or None,
        )


# ---------------------------------------------------------------------------
# Goods receipt
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GoodsReceiptLine:
    """
    One bill line being received.

    Contract:
        ``quantity_accepted + quantity_rejected <= ordered_quantity`` is
        maintained by ``GoodsReceiptLineReconciler.apply_quantity_change``;
        this record does not enforce it so that raw API lines can still be
        loaded and validated.
    """

    bill_line_id: str | None
    product_id: str | None
    ordered_quantity: Decimal
    quantity_accepted: Decimal = ZERO
    quantity_rejected: Decimal = ZERO
    rejection_reason: str = ""
    product_name: str | None = None
    bill_id: str | None = None

    @property
    def total_quantity(self) -> Decimal:
        return self.quantity_accepted + self.quantity_rejected

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GoodsReceiptLine:
        return cls(
            bill_line_id=identifier(data.get("billLineId")),
            product_id=identifier(data.get("productId")),
            ordered_quantity=coerce_quantity(data.get("orderedQuantity")),
            quantity_accepted=coerce_quantity(data.get("quantityAccepted")),
            quantity_rejected=coerce_quantity(data.get("quantityRejected")),
            rejection_reason=str(data.get("rejectionReason") or ""),
            product_name=_text(data.get("productName")),
            bill_id=identifier(data.get("billId")),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "billLineId": self.bill_line_id,
            "billId": self.bill_id,
            "productId": self.product_id,
            "quantityAccepted": str(self.quantity_accepted),
            "quantityRejected": str(self.quantity_rejected),
            "rejectionReason": self.rejection_reason,
        }


@dataclass(frozen=True)
class GoodsReceipt:
    """A goods receipt document recorded against a purchase bill."""

    bill_id: str | None
    supplier_id: str | None
    reference_number: str | None
    received_by: str | None
    lines: tuple[GoodsReceiptLine, ...] = ()
    notes: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> GoodsReceipt:
        return cls(
            bill_id=identifier(data.get("billId")),
            supplier_id=identifier(_first(data, "supplierId", "vendorId")),
            reference_number=_text(
                _first(data, "referenceNumber", "documentReference")
            ),
            received_by=_text(data.get("receivedBy")),
            lines=tuple(
                GoodsReceiptLine.from_mapping(line)
                for line in data.get("lines") or ()
            ),
            notes=str(data.get("notes") or ""),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "supplierId": self.supplier_id,
            "referenceNumber": self.reference_number,
            "billId": self.bill_id,
            "lines": [line.to_payload() for line in self.lines],
            "receivedBy": self.received_by or "",
            "notes": self.notes,
        }


# ---------------------------------------------------------------------------
# Stock check
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StockCheckEntry:
    """
    One counted product in a batch stock check.

    ``expected_quantity`` is None when the selection never received one;
    such entries fail selection validation before reaching the engine.
    """

    product_id: str | None
    expected_quantity: Decimal | None
    actual_quantity: Decimal = ZERO
    notes: str | None = None
    product_name: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> StockCheckEntry:
        return cls(
            product_id=identifier(_first(data, "productId", "id")),
            expected_quantity=optional_quantity(data.get("expectedQuantity")),
            actual_quantity=coerce_quantity(data.get("actualQuantity")),
            notes=_text(data.get("notes")),
            product_name=_text(_first(data, "productName", "name")),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "productId": self.product_id,
            "expectedQuantity": str(self.expected_quantity),
            "actualQuantity": str(self.actual_quantity),
        }
        if self.notes:
            payload["notes"] = self.notes
        return payload


# ---------------------------------------------------------------------------
# Disposal
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DisposalLine:
    """A product quantity to remove from stock."""

    product_id: str | None
    quantity_to_dispose: Decimal
    current_stock: Decimal | None = None
    batch_number: str | None = None
    expiration_date: date | None = None
    notes: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> DisposalLine:
        return cls(
            product_id=identifier(data.get("productId")),
            quantity_to_dispose=coerce_quantity(data.get("quantityToDispose")),
            current_stock=optional_quantity(data.get("currentStock")),
            batch_number=_text(data.get("batchNumber")),
            expiration_date=parse_date(data.get("expirationDate")),
            notes=_text(data.get("notes")),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "productId": self.product_id,
            "quantityToDispose": str(self.quantity_to_dispose),
        }
        if self.batch_number:
            payload["batchNumber"] = self.batch_number
        if self.expiration_date:
            payload["expirationDate"] = self.expiration_date.isoformat()
        if self.notes:
            payload["notes"] = self.notes
        return payload


@dataclass(frozen=True)
class DisposalRequest:
    """A stock disposal submission: header metadata plus lines."""

    disposal_date: date | None
    disposal_reason: str | None
    disposal_method: str | None
    items: tuple[DisposalLine, ...] = ()
    approved_by: str | None = None
    notes: str | None = None
    reference_number: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> DisposalRequest:
        return cls(
            disposal_date=parse_date(data.get("disposalDate")),
            disposal_reason=_text(data.get("disposalReason")),
            disposal_method=_text(data.get("disposalMethod")),
            items=tuple(
                DisposalLine.from_mapping(item) for item in data.get("items") or ()
            ),
            approved_by=_text(data.get("approvedBy")),
            notes=_text(data.get("notes")),
            reference_number=_text(data.get("referenceNumber")),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "disposalDate": (
                self.disposal_date.isoformat() if self.disposal_date else ""
            ),
            "disposalReason": self.disposal_reason,
            "disposalMethod": self.disposal_method,
            "items": [item.to_payload() for item in self.items],
        }
        if self.approved_by:
            payload["approvedBy"] = self.approved_by
        if self.notes:
            payload["notes"] = self.notes
        if self.reference_number:
            payload["referenceNumber"] = self.reference_number
        return payload


# ---------------------------------------------------------------------------
# Submission sink response
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SubmissionResponse:
    """Envelope returned by the submission sink."""

    success: bool
    message: str = ""
    entries: tuple[LedgerMovement, ...] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SubmissionResponse:
        return cls(
            success=bool(data.get("success")),
            message=str(data.get("message") or ""),
            entries=tuple(
                LedgerMovement.from_mapping(entry) for entry in data.get("data") or ()
            ),
        )
