"""
stock_engines.stock_check -- Batch stock-check variance computation.

Responsibility:
    Compare counted (actual) quantities against expected quantities for a
    batch of products, classify each line as match / surplus / shortage,
    and summarize the batch.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel.domain.

Invariants enforced:
    - ``variance = actual - expected``; ``has_variance`` iff variance != 0.
    - Results preserve input order.
    - ``accuracy_rate == matches / total_items`` (0 for an empty batch).
    - All arithmetic uses Decimal; rates are fractions, not percentages.

Failure modes:
    - Empty batch: zero summary with overall status UNKNOWN, never raises.
    - Entries without an expected quantity are rejected by
      ``validate_selection``; ``evaluate`` assumes they have been filtered.

Audit relevance:
    Variances reported here feed the ledger adjustments recorded by the
    stock-check submission.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from stock_kernel.domain.records import StockCheckEntry
from stock_kernel.domain.values import ZERO
from stock_kernel.logging_config import get_logger
from stock_engines.tracer import traced_engine
from stock_engines.validation import ValidationOutcome

logger = get_logger("engines.stock_check")

HUNDRED = Decimal("100")


class CheckStatus(str, Enum):
    """Outcome of one counted line."""

    MATCH = "MATCH"
    SURPLUS = "SURPLUS"
    SHORTAGE = "SHORTAGE"

    @property
    def color(self) -> str:
        return _CHECK_COLORS[self]


_CHECK_COLORS = {
    CheckStatus.MATCH: "success",
    CheckStatus.SURPLUS: "warning",
    CheckStatus.SHORTAGE: "danger",
}

DEFAULT_STATUS_LABELS: Mapping[CheckStatus, str] = {
    CheckStatus.MATCH: "Match",
    CheckStatus.SURPLUS: "Surplus",
    CheckStatus.SHORTAGE: "Shortage",
}


class BatchStatus(str, Enum):
    """Overall status of a stock-check batch."""

    COMPLETE_MATCH = "COMPLETE_MATCH"
    PENDING_REVIEW = "PENDING_REVIEW"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class CheckResult:
    """Derived result for one entry."""

    entry: StockCheckEntry
    variance: Decimal
    status: CheckStatus
    status_label: str

    @property
    def has_variance(self) -> bool:
        return self.variance != ZERO

    @property
    def status_color(self) -> str:
        return self.status.color

    @property
    def variance_percentage(self) -> Decimal | None:
        """Variance relative to expected, in percent; None when expected is 0."""
        expected = self.entry.expected_quantity
        if not expected:
            return None
        return self.variance / expected * HUNDRED


@dataclass(frozen=True)
class BatchCheckSummary:
    total_items: int
    items_with_variance: int
    matches: int
    shortages: int
    surpluses: int
    accuracy_rate: Decimal
    variance_rate: Decimal
    overall_status: BatchStatus

    @property
    def has_variances(self) -> bool:
        return self.items_with_variance > 0


@dataclass(frozen=True)
class BatchCheckOutcome:
    results: tuple[CheckResult, ...]
    summary: BatchCheckSummary


class BatchVarianceEngine:
    """
    Pure batch variance engine.

    Contract:
        Stateless apart from the display labels chosen at construction.
    Guarantees:
        - One result per entry, in input order.
        - Deterministic summary for any input, including an empty batch.
    """

    def __init__(self, status_labels: Mapping[CheckStatus, str] | None = None) -> None:
        labels = dict(DEFAULT_STATUS_LABELS)
        if status_labels:
            labels.update(status_labels)
        self.status_labels = labels

    def compare(self, entry: StockCheckEntry) -> CheckResult:
        """Classify one entry. A missing expected quantity counts as 0."""
        expected = entry.expected_quantity if entry.expected_quantity is not None else ZERO
        variance = entry.actual_quantity - expected
        if variance > ZERO:
            status = CheckStatus.SURPLUS
        elif variance < ZERO:
            status = CheckStatus.SHORTAGE
        else:
            status = CheckStatus.MATCH
        return CheckResult(
            entry=entry,
            variance=variance,
            status=status,
            status_label=self.status_labels[status],
        )

    @traced_engine("stock_check", "1.0", fingerprint_fields=("entries",))
    def evaluate(self, entries: Sequence[StockCheckEntry]) -> BatchCheckOutcome:
        """
        Compute per-entry variance and the batch summary.

        Args:
            entries: Counted entries, already validated.

        Returns:
            BatchCheckOutcome with results in input order.
        """
        logger.info("stock_check_started", extra={"entry_count": len(entries)})

        results = tuple(self.compare(entry) for entry in entries)
        summary = self.summarize(results)

        logger.info("stock_check_completed", extra={
            "total_items": summary.total_items,
            "items_with_variance": summary.items_with_variance,
            "overall_status": summary.overall_status.value,
        })
        return BatchCheckOutcome(results=results, summary=summary)

    @staticmethod
    def summarize(results: Sequence[CheckResult]) -> BatchCheckSummary:
        total = len(results)
        with_variance = sum(1 for r in results if r.has_variance)
        shortages = sum(1 for r in results if r.status is CheckStatus.SHORTAGE)
        surpluses = sum(1 for r in results if r.status is CheckStatus.SURPLUS)
        matches = total - with_variance

        if total == 0:
            return BatchCheckSummary(
                total_items=0,
                items_with_variance=0,
                matches=0,
                shortages=0,
                surpluses=0,
                accuracy_rate=ZERO,
                variance_rate=ZERO,
                overall_status=BatchStatus.UNKNOWN,
            )

        return BatchCheckSummary(
            total_items=total,
            items_with_variance=with_variance,
            matches=matches,
            shortages=shortages,
            surpluses=surpluses,
            accuracy_rate=Decimal(matches) / Decimal(total),
            variance_rate=Decimal(with_variance) / Decimal(total),
            overall_status=(
                BatchStatus.PENDING_REVIEW if with_variance else BatchStatus.COMPLETE_MATCH
            ),
        )

    @staticmethod
    def validate_selection(entries: Sequence[StockCheckEntry]) -> ValidationOutcome:
        """Check that a selection can be counted: non-empty, expected >= 0."""
        errors: list[str] = []
        if not entries:
            errors.append("No products selected for stock check")

        for index, entry in enumerate(entries):
            name = entry.product_name or entry.product_id or "unnamed"
            label = f"Product {index + 1} ({name})"
            if entry.expected_quantity is None:
                errors.append(f"{label} is missing expected quantity")
            elif entry.expected_quantity < ZERO:
                errors.append(f"{label} has negative expected quantity")
        return ValidationOutcome.of(errors)
