"""
stock_services -- imperative shell around the reconciliation engines.

Services take their collaborators (config, clock, document store,
submission sink) through the constructor and delegate every calculation
to ``stock_engines``.
"""

from stock_services.processed_documents import (
    DocumentStore,
    InMemoryDocumentStore,
    ProcessedDocumentRegistry,
    SqlDocumentStore,
)
from stock_services.reconciliation_service import (
    InventoryReconciliationService,
    StockCheckEvaluation,
    SubmissionOutcome,
    SubmissionSink,
    find_stock_shortfalls,
)
from stock_services.stock_overview_service import StockOverview, StockOverviewService

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "InventoryReconciliationService",
    "ProcessedDocumentRegistry",
    "SqlDocumentStore",
    "StockCheckEvaluation",
    "StockOverview",
    "StockOverviewService",
    "SubmissionOutcome",
    "SubmissionSink",
    "find_stock_shortfalls",
]
