"""
stock_engines.movements -- Regroup flat ledger movements into logical documents.

Responsibility:
    The ledger reports one signed movement per product line.  This engine
    groups them back into the documents (receipts, disposals, returns) they
    came from, totals the absolute quantities, and extracts the metadata
    that older documents embed in free-text notes.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel.domain.

Invariants enforced:
    - Sum of ``total_quantity`` over all documents equals the sum of
      ``abs(quantity)`` over all movements.
    - Header fields come from the first movement seen for each key.
    - Output is sorted by event timestamp descending; ties keep first-seen
      order and documents without a timestamp come last.  The same input
      always yields the same output.

Failure modes:
    - None.  Notes without recognisable fragments yield no extracted
      fields.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType

from stock_kernel.domain.records import LedgerMovement
from stock_kernel.domain.values import ZERO
from stock_kernel.logging_config import get_logger
from stock_engines.tracer import traced_engine

logger = get_logger("engines.movements")

CUSTOMER_RETURN_USER = "CUSTOMER_RETURN_SYSTEM"

DEFAULT_NOTE_LABELS: Mapping[str, str] = MappingProxyType({
    "reason": "Reason",
    "method": "Method",
    "approved_by": "Approved by",
    "batch_number": "Batch",
    "expiry": "Expiry",
})


class MovementType(str, Enum):
    RECEIPT = "RECEIPT"
    DISPOSAL = "DISPOSAL"
    RETURN = "RETURN"


@dataclass(frozen=True)
class AggregatedItem:
    """One product line inside an aggregated document; quantity is absolute."""

    id: str | None
    product_id: str | None
    product_name: str | None
    product_unit: str | None
    quantity: Decimal
    notes: str | None = None


@dataclass(frozen=True)
class AggregatedDocument:
    key: str
    document_reference: str | None
    event_timestamp: datetime | None
    user_id: str | None
    warehouse_name: str | None
    reference_type: str | None
    notes: str | None
    items: tuple[AggregatedItem, ...]
    total_quantity: Decimal
    note_fields: tuple[tuple[str, str], ...] = ()

    @property
    def extracted_fields(self) -> Mapping[str, str]:
        """Fields parsed from the header notes, read-only."""
        return MappingProxyType(dict(self.note_fields))

    @property
    def is_customer_return(self) -> bool:
        return self.user_id == CUSTOMER_RETURN_USER

    @property
    def item_count(self) -> int:
        return len(self.items)


def default_document_key(movement: LedgerMovement) -> str:
    """Document reference, else reference id, else ``single-<id>``."""
    return (
        movement.document_reference
        or movement.reference_id
        or f"single-{movement.id}"
    )


def _note_patterns(labels: Mapping[str, str]) -> dict[str, re.Pattern[str]]:
    return {
        name: re.compile(re.escape(label) + r": ([^,]+)")
        for name, label in labels.items()
    }


_DEFAULT_PATTERNS = _note_patterns(DEFAULT_NOTE_LABELS)


def extract_note_fields(
    notes: str | None,
    labels: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Pull ``Label: value`` fragments out of free-text notes.

    Each value runs to the next comma and is stripped.  Fields that do not
    appear are simply absent.

    Example:
        extract_note_fields("Reason: EXPIRED, Method: DESTRUCTION")
        # {"reason": "EXPIRED", "method": "DESTRUCTION"}
    """
    patterns = _DEFAULT_PATTERNS if labels is None else _note_patterns(labels)
    return _extract(notes, patterns)


def _extract(notes: str | None, patterns: Mapping[str, re.Pattern[str]]) -> dict[str, str]:
    if not notes:
        return {}
    fields: dict[str, str] = {}
    for name, pattern in patterns.items():
        match = pattern.search(notes)
        if match:
            value = match.group(1).strip()
            if value:
                fields[name] = value
    return fields


def select_movements(
    movements: Iterable[LedgerMovement],
    movement_type: MovementType | str | None = None,
    start: date | None = None,
    end: date | None = None,
    document_reference: str | None = None,
) -> list[LedgerMovement]:
    """
    Filter a ledger stream by type, inclusive date range and reference.

    Movements without a timestamp are dropped when a date bound is given.
    The reference filter is a case-insensitive substring match.
    """
    wanted_type = MovementType(movement_type).value if movement_type else None
    needle = document_reference.lower() if document_reference else None

    selected: list[LedgerMovement] = []
    for movement in movements:
        if wanted_type and movement.movement_type != wanted_type:
            continue
        if start is not None or end is not None:
            if movement.event_timestamp is None:
                continue
            day = movement.event_timestamp.date()
            if start is not None and day < start:
                continue
            if end is not None and day > end:
                continue
        if needle and needle not in (movement.document_reference or "").lower():
            continue
        selected.append(movement)
    return selected


class MovementAggregator:
    """
    Groups ledger movements into documents.

    Contract:
        Pure and deterministic; the note labels are fixed at construction.
    """

    def __init__(self, note_labels: Mapping[str, str] | None = None) -> None:
        self.note_labels = dict(note_labels) if note_labels else dict(DEFAULT_NOTE_LABELS)
        self._patterns = _note_patterns(self.note_labels)

    @traced_engine("movement_aggregation", "1.0", fingerprint_fields=("movements",))
    def aggregate(
        self,
        movements: Sequence[LedgerMovement],
        key_fn: Callable[[LedgerMovement], str] = default_document_key,
    ) -> list[AggregatedDocument]:
        """
        Group movements by document key.

        Args:
            movements: Flat ledger stream.
            key_fn: Grouping key; defaults to ``default_document_key``.

        Returns:
            Documents, newest first.
        """
        logger.info("movement_aggregation_started", extra={
            "movement_count": len(movements),
        })

        headers: dict[str, LedgerMovement] = {}
        items: dict[str, list[AggregatedItem]] = {}
        totals: dict[str, Decimal] = {}

        for movement in movements:
            key = key_fn(movement)
            if key not in headers:
                headers[key] = movement
                items[key] = []
                totals[key] = ZERO
            quantity = abs(movement.quantity)
            items[key].append(AggregatedItem(
                id=movement.id,
                product_id=movement.product_id,
                product_name=movement.product_name,
                product_unit=movement.product_unit,
                quantity=quantity,
                notes=movement.notes,
            ))
            totals[key] += quantity

        documents = [
            self._build_document(key, headers[key], items[key], totals[key])
            for key in headers
        ]
        ordered = self._newest_first(documents)

        logger.info("movement_aggregation_completed", extra={
            "movement_count": len(movements),
            "document_count": len(ordered),
        })
        return ordered

    def _build_document(
        self,
        key: str,
        first: LedgerMovement,
        items: list[AggregatedItem],
        total: Decimal,
    ) -> AggregatedDocument:
        return AggregatedDocument(
            key=key,
            document_reference=first.document_reference,
            event_timestamp=first.event_timestamp,
            user_id=first.user_id,
            warehouse_name=first.warehouse_name,
            reference_type=first.reference_type,
            notes=first.notes,
            items=tuple(items),
            total_quantity=total,
            note_fields=tuple(sorted(_extract(first.notes, self._patterns).items())),
        )

    @staticmethod
    def _newest_first(documents: list[AggregatedDocument]) -> list[AggregatedDocument]:
        # sorted() is stable with reverse=True, so equal timestamps keep insertion order.
        dated = sorted(
            (d for d in documents if d.event_timestamp is not None),
            key=lambda d: d.event_timestamp,
            reverse=True,
        )
        undated = [d for d in documents if d.event_timestamp is None]
        return dated + undated
