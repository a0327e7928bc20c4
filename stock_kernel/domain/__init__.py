"""
Pure domain layer.

Immutable records and value coercion with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time (services inject a Clock)
- I/O
"""

from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.records import (
    CatalogProduct,
    DisposalLine,
    DisposalRequest,
    GoodsReceipt,
    GoodsReceiptLine,
    LedgerMovement,
    LedgerStock,
    StockCheckEntry,
    SubmissionResponse,
    identifier,
)
from stock_kernel.domain.values import (
    ZERO,
    coerce_quantity,
    is_blank,
    non_negative,
    optional_quantity,
    parse_date,
    parse_timestamp,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CatalogProduct",
    "DisposalLine",
    "DisposalRequest",
    "GoodsReceipt",
    "GoodsReceiptLine",
    "LedgerMovement",
    "LedgerStock",
    "StockCheckEntry",
    "SubmissionResponse",
    "identifier",
    "ZERO",
    "coerce_quantity",
    "is_blank",
    "non_negative",
    "optional_quantity",
    "parse_date",
    "parse_timestamp",
]
