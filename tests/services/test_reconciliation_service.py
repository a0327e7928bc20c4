"""
Tests for InventoryReconciliationService.

Covers:
- Submission gating: nothing reaches the sink for invalid documents
- Goods receipt submission marks the bill processed on success only
- Disposal stock shortfalls (reported, never clamped)
- Stock check reference stamped from the clock
- Policy values flowing from config into the engines
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from stock_config import DEFAULT_CONFIG_PATH, get_active_config
from stock_engines.movements import MovementType
from stock_engines.stock_status import StockStatus
from stock_kernel.domain.records import (
    DisposalLine,
    DisposalRequest,
    GoodsReceipt,
    GoodsReceiptLine,
    LedgerMovement,
    StockCheckEntry,
)
from stock_services.processed_documents import (
    InMemoryDocumentStore,
    ProcessedDocumentRegistry,
    SqlDocumentStore,
)
from stock_services.reconciliation_service import (
    InventoryReconciliationService,
    find_stock_shortfalls,
)


def _receipt(bill_id="B1", **line_overrides):
    line = dict(
        bill_line_id="L1",
        product_id="P1",
        ordered_quantity=Decimal("10"),
        quantity_accepted=Decimal("8"),
        quantity_rejected=Decimal("2"),
        rejection_reason="crushed",
        bill_id=bill_id,
    )
    line.update(line_overrides)
    return GoodsReceipt(
        bill_id=bill_id,
        supplier_id="S1",
        reference_number="GR-100",
        received_by="dock clerk",
        lines=(GoodsReceiptLine(**line),),
    )


def _disposal(quantity="2", current_stock=None, reason="EXPIRED"):
    return DisposalRequest(
        disposal_date=date(2025, 3, 14),
        disposal_reason=reason,
        disposal_method="DESTRUCTION",
        items=(
            DisposalLine(
                product_id="P1",
                quantity_to_dispose=Decimal(quantity),
                current_stock=current_stock,
            ),
        ),
    )


# =============================================================================
# Goods receipt
# =============================================================================


class TestGoodsReceiptSubmission:

    def test_valid_receipt_is_submitted(self, recording_sink):
        service = InventoryReconciliationService(sink=recording_sink)
        outcome = service.submit_goods_receipt(_receipt())

        assert outcome.submitted
        assert outcome.succeeded
        payload = recording_sink.goods_receipts[0]
        assert payload["billId"] == "B1"
        assert payload["lines"][0]["quantityAccepted"] == "8"
        assert payload["lines"][0]["quantityRejected"] == "2"

    def test_success_marks_bill_processed(self, recording_sink):
        service = InventoryReconciliationService(sink=recording_sink)
        service.submit_goods_receipt(_receipt("B1"))

        bills = [{"id": "B1"}, {"id": "B2"}]
        assert service.pending_bills(bills) == [{"id": "B2"}]

    def test_failed_submission_leaves_bill_pending(self, failing_sink):
        service = InventoryReconciliationService(sink=failing_sink)
        outcome = service.submit_goods_receipt(_receipt("B1"))

        assert outcome.submitted
        assert not outcome.succeeded
        assert outcome.response.message == "rejected by ledger"
        assert not service.registry.is_processed("B1")

    def test_invalid_receipt_never_reaches_sink(self, recording_sink):
        service = InventoryReconciliationService(sink=recording_sink)
        outcome = service.submit_goods_receipt(_receipt(rejection_reason=""))

        assert not outcome.submitted
        assert outcome.errors == (
            "Line 1: Rejection reason is required when quantity is rejected",
        )
        assert recording_sink.goods_receipts == []

    def test_submission_log_carries_document_id(self, recording_sink, captured_logs):
        service = InventoryReconciliationService(sink=recording_sink)
        service.submit_goods_receipt(_receipt("B7"))

        records = [r for r in captured_logs() if r["message"] == "goods_receipt_submitted"]
        assert records[0]["document_id"] == "B7"
        assert records[0]["accepted_total"] == "8"
        assert records[0]["rejected_total"] == "2"

    def test_sql_registry(self, recording_sink, session_factory):
        registry = ProcessedDocumentRegistry(
            SqlDocumentStore(session_factory), "goods_receipt.bill",
        )
        service = InventoryReconciliationService(sink=recording_sink, registry=registry)
        service.submit_goods_receipt(_receipt("B3"))

        assert registry.is_processed("B3")

    def test_receipt_from_bill_and_edit(self):
        service = InventoryReconciliationService()
        receipt = service.receipt_from_bill(
            {"id": 5, "partyId": 9, "billLines": [{"id": 1, "productId": 2, "quantity": 6}]},
            "GR-5",
            "clerk",
        )
        line = service.apply_receipt_change(receipt.lines[0], "rejected", "4")

        assert line.quantity_rejected == Decimal("4")
        assert line.quantity_accepted == Decimal("2")

    def test_submit_without_sink(self):
        service = InventoryReconciliationService()
        with pytest.raises(RuntimeError, match="No submission sink configured"):
            service.submit_goods_receipt(_receipt())


# =============================================================================
# Stock check
# =============================================================================


class TestStockCheck:

    def setup_method(self):
        self.entries = [
            StockCheckEntry(product_id="1", expected_quantity=Decimal("10"),
                            actual_quantity=Decimal("10"), product_name="Rice"),
            StockCheckEntry(product_id="2", expected_quantity=Decimal("5"),
                            actual_quantity=Decimal("3"), product_name="Beans"),
        ]

    def test_evaluate(self):
        evaluation = InventoryReconciliationService().evaluate_stock_check(self.entries)

        assert evaluation.outcome.is_valid
        assert evaluation.batch.summary.matches == 1
        assert evaluation.batch.summary.shortages == 1

    def test_evaluate_invalid_selection(self):
        entries = [StockCheckEntry(product_id="1", expected_quantity=None, product_name="Rice")]
        evaluation = InventoryReconciliationService().evaluate_stock_check(entries)

        assert not evaluation.outcome.is_valid
        assert evaluation.batch is None

    def test_submit_uses_clock_reference(self, recording_sink, deterministic_clock):
        service = InventoryReconciliationService(
            sink=recording_sink, clock=deterministic_clock,
        )
        outcome = service.submit_stock_check(self.entries, checked_by="auditor")

        assert outcome.succeeded
        payload = recording_sink.stock_checks[0]
        assert [p["checkReference"] for p in payload] == ["CHK-20250314-093000"] * 2
        assert payload[1] == {
            "productId": "2",
            "expectedQuantity": "5",
            "actualQuantity": "3",
            "checkedBy": "auditor",
            "checkReference": "CHK-20250314-093000",
        }

    def test_explicit_reference(self, recording_sink):
        service = InventoryReconciliationService(sink=recording_sink)
        service.submit_stock_check(self.entries, "auditor", check_reference="CHK-MANUAL")
        assert recording_sink.stock_checks[0][0]["checkReference"] == "CHK-MANUAL"

    def test_empty_selection_not_submitted(self, recording_sink):
        service = InventoryReconciliationService(sink=recording_sink)
        outcome = service.submit_stock_check([], "auditor")

        assert outcome.errors == ("No products selected for stock check",)
        assert recording_sink.stock_checks == []


# =============================================================================
# Disposal
# =============================================================================


class TestDisposal:

    def test_valid_disposal_submitted(self, recording_sink):
        service = InventoryReconciliationService(sink=recording_sink)
        outcome = service.submit_disposal(_disposal(), stock_levels={"P1": Decimal("5")})

        assert outcome.succeeded
        assert recording_sink.disposals[0]["disposalDate"] == "2025-03-14"
        assert recording_sink.disposals[0]["items"][0]["quantityToDispose"] == "2"

    def test_shortfall_against_live_stock(self, recording_sink):
        service = InventoryReconciliationService(sink=recording_sink)
        outcome = service.submit_disposal(
            _disposal("6", current_stock=Decimal("10")),
            stock_levels={"P1": Decimal("5")},
        )

        assert not outcome.submitted
        assert outcome.errors == (
            "Item 1: Quantity to dispose (6) exceeds available stock (5)",
        )
        assert recording_sink.disposals == []

    def test_structure_errors_come_first(self):
        service = InventoryReconciliationService()
        outcome = service.validate_disposal(
            _disposal("6", current_stock=Decimal("1"), reason="STOLEN"),
        )
        assert outcome.errors == (
            "Invalid disposal reason",
            "Item 1: Quantity to dispose (6) exceeds available stock (1)",
        )


class TestFindStockShortfalls:

    def test_unknown_stock_is_not_checked(self):
        items = [DisposalLine(product_id="P1", quantity_to_dispose=Decimal("100"))]
        assert find_stock_shortfalls(items).is_valid

    def test_line_stock_used_without_live_levels(self):
        items = [DisposalLine(product_id="P1", quantity_to_dispose=Decimal("3"),
                              current_stock=Decimal("2"))]
        assert not find_stock_shortfalls(items).is_valid

    def test_exact_stock_allowed(self):
        items = [DisposalLine(product_id="P1", quantity_to_dispose=Decimal("2"))]
        assert find_stock_shortfalls(items, {"P1": Decimal("2")}).is_valid

    def test_int_keyed_stock_levels_match_api_ids(self):
        request = DisposalRequest.from_mapping({
            "disposalReason": "EXPIRED",
            "disposalMethod": "DESTRUCTION",
            "items": [{"productId": 7, "quantityToDispose": "50"}],
        })

        outcome = find_stock_shortfalls(request.items, {7: Decimal("5")})

        assert outcome.errors == (
            "Item 1: Quantity to dispose (50) exceeds available stock (5)",
        )


# =============================================================================
# Movements and policy
# =============================================================================


class TestMovementsAndPolicy:

    def test_aggregate_by_type(self):
        t = datetime(2025, 3, 1, tzinfo=timezone.utc)
        movements = [
            LedgerMovement(id="1", product_id="A", quantity=Decimal("-2"),
                           movement_type="DISPOSAL", document_reference="D-1",
                           event_timestamp=t),
            LedgerMovement(id="2", product_id="B", quantity=Decimal("-1.5"),
                           movement_type="DISPOSAL", document_reference="D-1",
                           event_timestamp=t),
            LedgerMovement(id="3", product_id="A", quantity=Decimal("4"),
                           movement_type="RECEIPT", document_reference="GR-1",
                           event_timestamp=t),
        ]
        service = InventoryReconciliationService()

        documents = service.aggregate_movements(movements, MovementType.DISPOSAL)
        assert len(documents) == 1
        assert documents[0].total_quantity == Decimal("3.5")

        summary = service.disposal_summary(movements)
        assert summary.total_items == 2
        assert summary.total_quantity == Decimal("3.500")
        assert summary.unique_products == 2

    def test_default_config_loaded(self, captured_logs):
        service = InventoryReconciliationService()

        assert service.config.config_id == "stock-reconciliation-default"
        assert any(r["message"] == "STOCK_CONFIG_TRACE" for r in captured_logs())

    def test_policy_reaches_classifier(self, tmp_path):
        text = DEFAULT_CONFIG_PATH.read_text().replace(
            'overstock_ratio: "0.9"', 'overstock_ratio: "0.5"',
        )
        path = tmp_path / "policy.yaml"
        path.write_text(text)

        service = InventoryReconciliationService(config=get_active_config(path))
        assert service.classify(50, 10, 100) is StockStatus.OVERSTOCKED
        assert InventoryReconciliationService().classify(50, 10, 100) is StockStatus.NORMAL

    def test_registry_namespace_from_config(self):
        service = InventoryReconciliationService()
        assert service.registry.namespace == "goods_receipt.bill"

    def test_injected_registry_used(self, recording_sink):
        registry = ProcessedDocumentRegistry(InMemoryDocumentStore(), "custom")
        service = InventoryReconciliationService(sink=recording_sink, registry=registry)
        service.submit_goods_receipt(_receipt("B9"))
        assert registry.processed_ids() == frozenset({"B9"})
