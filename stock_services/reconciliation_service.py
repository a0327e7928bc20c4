"""
InventoryReconciliationService -- Facade over the reconciliation engines.

Composes the pure engines (stock status, goods receipt, stock check,
disposal, movements) configured from the active ReconciliationConfig, the
processed-document registry, and an injected SubmissionSink.

Architecture: stock_services -- imperative shell.
    Policy values flow from stock_config into engine constructors here;
    submissions only reach the sink when validation passes.

Invariants enforced:
    - Nothing is sent to the sink for an invalid document; the caller gets
      a SubmissionOutcome carrying every error instead.
    - A goods receipt whose submission succeeds marks its bill processed.
    - Disposal lines may not exceed live stock (reported, never clamped).

Failure modes:
    - Exceptions raised by the sink propagate to the caller unchanged.
    - RuntimeError if a submit_* method is called without a sink.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from stock_config import ReconciliationConfig, get_active_config
from stock_kernel.domain.clock import Clock, SystemClock
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
from stock_kernel.logging_config import LogContext, get_logger

from stock_engines.disposal import (
    DisposalQuantityValidator,
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
    MovementAggregator,
    MovementType,
    select_movements,
)
from stock_engines.stock_check import (
    BatchCheckOutcome,
    BatchVarianceEngine,
    CheckStatus,
)
from stock_engines.stock_status import StockStatus, StockStatusClassifier
from stock_engines.validation import ValidationOutcome
from stock_services.processed_documents import (
    InMemoryDocumentStore,
    ProcessedDocumentRegistry,
)
from stock_services.stock_overview_service import StockOverview, StockOverviewService

logger = get_logger("services.reconciliation")


class SubmissionSink(Protocol):
    """Receives validated documents (the inventory API in production)."""

    def submit_goods_receipt(self, payload: dict[str, Any]) -> SubmissionResponse: ...

    def submit_disposal(self, payload: dict[str, Any]) -> SubmissionResponse: ...

    def submit_stock_check(self, payload: list[dict[str, Any]]) -> SubmissionResponse: ...


@dataclass(frozen=True)
class SubmissionOutcome:
    submitted: bool
    errors: tuple[str, ...] = ()
    response: SubmissionResponse | None = None

    @property
    def succeeded(self) -> bool:
        return self.submitted and self.response is not None and self.response.success


@dataclass(frozen=True)
class StockCheckEvaluation:
    """Selection validation plus, when it passed, the computed batch."""

    outcome: ValidationOutcome
    batch: BatchCheckOutcome | None = None


def find_stock_shortfalls(
    items: Sequence[DisposalLine],
    stock_levels: Mapping[Any, Decimal] | None = None,
) -> ValidationOutcome:
    """
    Report disposal lines asking for more than the available stock.

    Live ``stock_levels`` (product id -> on hand) take precedence over the
    ``current_stock`` carried on the line.  Lines with no known stock are
    not checked.  Keys may be int or str product ids.
    """
    levels = {identifier(key): value for key, value in (stock_levels or {}).items()}
    errors: list[str] = []
    for index, item in enumerate(items):
        available = levels.get(item.product_id) if item.product_id is not None else None
        if available is None:
            available = item.current_stock
        if available is None:
            continue
        if item.quantity_to_dispose > available:
            errors.append(
                f"Item {index + 1}: Quantity to dispose ({item.quantity_to_dispose}) "
                f"exceeds available stock ({available})"
            )
    return ValidationOutcome.of(errors)


class InventoryReconciliationService:
    """Entry point for the reconciliation workflows.

    Contract:
        - Read-side helpers (``classify``, ``overview``, ``evaluate_stock_check``,
          ``aggregate_movements``) are pure pass-throughs to the engines.
        - ``submit_*`` validate first and call the sink only when valid.

    Non-goals:
        - Does NOT talk HTTP; the sink does.
        - Does NOT persist business documents.
    """

    def __init__(
        self,
        config: ReconciliationConfig | None = None,
        sink: SubmissionSink | None = None,
        registry: ProcessedDocumentRegistry | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or get_active_config()
        self._sink = sink
        self._clock = clock or SystemClock()

        self._classifier = StockStatusClassifier(
            overstock_ratio=self._config.stock_status.overstock_ratio,
        )
        self._reconciler = GoodsReceiptLineReconciler()
        self._variance = BatchVarianceEngine(
            status_labels={
                CheckStatus(name): label
                for name, label in self._config.stock_check.status_labels
            },
        )
        self._disposal = DisposalQuantityValidator(
            minimum_quantity=self._config.disposal.minimum_quantity,
            reasons=self._config.disposal.reasons,
            methods=self._config.disposal.methods,
        )
        self._aggregator = MovementAggregator(
            note_labels=self._config.aggregation.note_labels,
        )
        self._overview = StockOverviewService(self._classifier, self._clock)
        self._registry = registry or ProcessedDocumentRegistry(
            InMemoryDocumentStore(),
            self._config.processed_documents.goods_receipt_namespace,
        )

    @property
    def config(self) -> ReconciliationConfig:
        return self._config

    @property
    def registry(self) -> ProcessedDocumentRegistry:
        return self._registry

    # -----------------------------------------------------------------
    # Stock status
    # -----------------------------------------------------------------

    def classify(
        self,
        current_stock: Any,
        reorder_level: Any = None,
        max_stock: Any = None,
    ) -> StockStatus:
        return self._classifier.classify(current_stock, reorder_level, max_stock)

    def overview(
        self,
        products: Iterable[CatalogProduct | Mapping[str, Any]],
        stocks: Iterable[LedgerStock | Mapping[str, Any]],
    ) -> StockOverview:
        return self._overview.combine(products, stocks)

    # -----------------------------------------------------------------
    # Goods receipt
    # -----------------------------------------------------------------

    def apply_receipt_change(
        self,
        line: GoodsReceiptLine,
        field: ReceiptField | str,
        new_value: Any,
    ) -> GoodsReceiptLine:
        return self._reconciler.apply_quantity_change(line, field, new_value)

    def validate_receipt(self, receipt: GoodsReceipt) -> ValidationOutcome:
        return self._reconciler.validate_receipt(receipt)

    def receipt_from_bill(
        self,
        bill: Mapping[str, Any],
        reference_number: str,
        received_by: str = "",
    ) -> GoodsReceipt:
        return self._reconciler.create_receipt_from_bill(
            bill, reference_number, received_by,
        )

    def pending_bills(self, bills: Iterable[Any]) -> list[Any]:
        """Bills that have not been received yet."""
        return self._registry.exclude_processed(bills)

    def submit_goods_receipt(self, receipt: GoodsReceipt) -> SubmissionOutcome:
        with LogContext.bind(document_id=receipt.bill_id):
            outcome = self.validate_receipt(receipt)
            if not outcome.is_valid:
                logger.warning("goods_receipt_rejected", extra={
                    "errors": list(outcome.errors),
                })
                return SubmissionOutcome(submitted=False, errors=outcome.errors)

            totals = receipt_totals(receipt)
            response = self._require_sink().submit_goods_receipt(receipt.to_payload())
            if response.success and receipt.bill_id is not None:
                self._registry.mark_processed(receipt.bill_id)

            logger.info("goods_receipt_submitted", extra={
                "success": response.success,
                "accepted_total": totals["accepted"],
                "rejected_total": totals["rejected"],
            })
            return SubmissionOutcome(submitted=True, response=response)

    # -----------------------------------------------------------------
    # Stock check
    # -----------------------------------------------------------------

    def evaluate_stock_check(
        self,
        entries: Sequence[StockCheckEntry],
    ) -> StockCheckEvaluation:
        """Validate the selection, then compute variances if it is clean."""
        outcome = self._variance.validate_selection(entries)
        if not outcome.is_valid:
            return StockCheckEvaluation(outcome=outcome)
        return StockCheckEvaluation(outcome=outcome, batch=self._variance.evaluate(entries))

    def submit_stock_check(
        self,
        entries: Sequence[StockCheckEntry],
        checked_by: str,
        check_reference: str | None = None,
    ) -> SubmissionOutcome:
        outcome = self._variance.validate_selection(entries)
        if not outcome.is_valid:
            logger.warning("stock_check_rejected", extra={"errors": list(outcome.errors)})
            return SubmissionOutcome(submitted=False, errors=outcome.errors)

        reference = check_reference or self._check_reference()
        payload = [
            {**entry.to_payload(), "checkedBy": checked_by, "checkReference": reference}
            for entry in entries
        ]
        response = self._require_sink().submit_stock_check(payload)
        logger.info("stock_check_submitted", extra={
            "check_reference": reference,
            "entry_count": len(payload),
            "success": response.success,
        })
        return SubmissionOutcome(submitted=True, response=response)

    def _check_reference(self) -> str:
        return "CHK-" + self._clock.now().strftime("%Y%m%d-%H%M%S")

    # -----------------------------------------------------------------
    # Disposal
    # -----------------------------------------------------------------

    def validate_disposal(
        self,
        request: DisposalRequest,
        stock_levels: Mapping[Any, Decimal] | None = None,
    ) -> ValidationOutcome:
        """Structural checks followed by the stock availability check."""
        structure = self._disposal.validate(request)
        return structure.merge(find_stock_shortfalls(request.items, stock_levels))

    def submit_disposal(
        self,
        request: DisposalRequest,
        stock_levels: Mapping[Any, Decimal] | None = None,
    ) -> SubmissionOutcome:
        outcome = self.validate_disposal(request, stock_levels)
        if not outcome.is_valid:
            logger.warning("disposal_rejected", extra={"errors": list(outcome.errors)})
            return SubmissionOutcome(submitted=False, errors=outcome.errors)

        response = self._require_sink().submit_disposal(request.to_payload())
        logger.info("disposal_submitted", extra={
            "item_count": len(request.items),
            "success": response.success,
        })
        return SubmissionOutcome(submitted=True, response=response)

    # -----------------------------------------------------------------
    # Movements
    # -----------------------------------------------------------------

    def aggregate_movements(
        self,
        movements: Iterable[LedgerMovement],
        movement_type: MovementType | str | None = None,
    ) -> list[AggregatedDocument]:
        return self._aggregator.aggregate(select_movements(movements, movement_type))

    def disposal_summary(self, movements: Iterable[LedgerMovement]) -> DisposalSummary:
        return summarize_disposals(select_movements(movements, MovementType.DISPOSAL))

    def _require_sink(self) -> SubmissionSink:
        if self._sink is None:
            raise RuntimeError("No submission sink configured")
        return self._sink
