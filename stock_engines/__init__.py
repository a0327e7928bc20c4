"""
Module: stock_engines
Responsibility:
    Package entrypoint that re-exports all public symbols from the pure
    reconciliation engine sub-modules.  This is the canonical import
    surface for higher layers (stock_services).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel (domain records, values, logging).
    MUST NOT import stock_config or stock_services; policy values are
    passed in as constructor arguments.

Invariants enforced:
    - Purity: engines never read the clock or any store.
    - Decimal-only arithmetic: quantities and rates use ``Decimal``.
    - Determinism: identical inputs always produce identical outputs.

Failure modes:
    - Business input never raises; validators return ``ValidationOutcome``.
    - ValueError for programming errors (unknown field names, non-positive
      policy thresholds).

Audit relevance:
    Every engine invocation is traced via the ``@traced_engine`` decorator
    (see ``stock_engines.tracer``), emitting STOCK_ENGINE_TRACE log records.

Usage:
    from stock_engines.stock_status import StockStatusClassifier
    from stock_engines.goods_receipt import GoodsReceiptLineReconciler
    from stock_engines.stock_check import BatchVarianceEngine
    from stock_engines.disposal import DisposalQuantityValidator
    from stock_engines.movements import MovementAggregator
"""

from stock_kernel.logging_config import get_logger

logger = get_logger("engines")

from stock_engines.disposal import (
    DisposalMethod,
    DisposalQuantityValidator,
    DisposalReason,
    DisposalSummary,
    summarize_disposals,
)
from stock_engines.goods_receipt import (
    GoodsReceiptLineReconciler,
    ReceiptField,
    receipt_totals,
)
from stock_engines.movements import (
    AggregatedDocument,
    AggregatedItem,
    MovementAggregator,
    MovementType,
    default_document_key,
    extract_note_fields,
    select_movements,
)
from stock_engines.stock_check import (
    BatchCheckOutcome,
    BatchCheckSummary,
    BatchStatus,
    BatchVarianceEngine,
    CheckResult,
    CheckStatus,
)
from stock_engines.stock_status import (
    ProductStockSnapshot,
    StockStatus,
    StockStatusClassifier,
    StockStatusSummary,
)
from stock_engines.tracer import compute_input_fingerprint, traced_engine
from stock_engines.validation import VALID, ValidationOutcome

logger.debug("engines_package_loaded", extra={
    "module_count": 5,
    "modules": [
        "stock_status", "goods_receipt", "stock_check", "disposal", "movements",
    ],
})

__all__ = [
    # Disposal
    "DisposalMethod",
    "DisposalQuantityValidator",
    "DisposalReason",
    "DisposalSummary",
    "summarize_disposals",
    # Goods receipt
    "GoodsReceiptLineReconciler",
    "ReceiptField",
    "receipt_totals",
    # Movements
    "AggregatedDocument",
    "AggregatedItem",
    "MovementAggregator",
    "MovementType",
    "default_document_key",
    "extract_note_fields",
    "select_movements",
    # Stock check
    "BatchCheckOutcome",
    "BatchCheckSummary",
    "BatchStatus",
    "BatchVarianceEngine",
    "CheckResult",
    "CheckStatus",
    # Stock status
    "ProductStockSnapshot",
    "StockStatus",
    "StockStatusClassifier",
    "StockStatusSummary",
    # Infrastructure
    "compute_input_fingerprint",
    "traced_engine",
    "VALID",
    "ValidationOutcome",
]
