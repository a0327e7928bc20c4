"""
Reconciliation policy schema.

Frozen dataclasses produced by ``stock_config.loader`` from the YAML policy
file.  Services read these and pass the values into engine constructors;
engines never see this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class StockStatusPolicy:
    overstock_ratio: Decimal


@dataclass(frozen=True)
class DisposalPolicy:
    """Allowed enumerations and the smallest disposable quantity."""

    minimum_quantity: Decimal
    reasons: tuple[str, ...]
    methods: tuple[str, ...]


@dataclass(frozen=True)
class AggregationPolicy:
    # (field name, note label) pairs, in file order
    note_fields: tuple[tuple[str, str], ...]

    @property
    def note_labels(self) -> dict[str, str]:
        return dict(self.note_fields)


@dataclass(frozen=True)
class StockCheckPolicy:
    status_labels: tuple[tuple[str, str], ...]

    @property
    def labels(self) -> dict[str, str]:
        return dict(self.status_labels)


@dataclass(frozen=True)
class ProcessedDocumentsPolicy:
    goods_receipt_namespace: str


@dataclass(frozen=True)
class ReconciliationConfig:
    """
    The complete runtime policy.

    ``checksum`` is the SHA-256 of the canonical JSON form of the source
    mapping, so two configs with the same content share a checksum.
    """

    config_id: str
    version: int
    stock_status: StockStatusPolicy
    disposal: DisposalPolicy
    aggregation: AggregationPolicy
    stock_check: StockCheckPolicy
    processed_documents: ProcessedDocumentsPolicy
    checksum: str = ""
