"""
stock_engines.disposal -- Disposal request validation and disposal summaries.

Responsibility:
    Structural and enumeration checks on a stock disposal request, and a
    numeric summary over recorded disposal movements.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel.domain.

Invariants enforced:
    - Every check runs; all errors are returned together.
    - Item errors are prefixed ``Item N:`` (one-based).
    - Quantities below the minimum disposal quantity are rejected; the
      minimum is a constructor argument supplied from policy.

Failure modes:
    - None raised for request content.  Stock availability is NOT checked
      here; the services layer compares against live stock.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from stock_kernel.domain.records import DisposalRequest, LedgerMovement
from stock_kernel.domain.values import ZERO, is_blank
from stock_kernel.logging_config import get_logger
from stock_engines.tracer import traced_engine
from stock_engines.validation import ValidationOutcome

logger = get_logger("engines.disposal")

DEFAULT_MINIMUM_QUANTITY = Decimal("0.001")
SUMMARY_QUANTUM = Decimal("0.001")


class DisposalReason(str, Enum):
    EXPIRED = "EXPIRED"
    DAMAGED = "DAMAGED"
    CONTAMINATED = "CONTAMINATED"
    RECALLED = "RECALLED"
    OBSOLETE = "OBSOLETE"
    QUALITY_ISSUE = "QUALITY_ISSUE"
    OTHER = "OTHER"


class DisposalMethod(str, Enum):
    DESTRUCTION = "DESTRUCTION"
    RECYCLING = "RECYCLING"
    DONATION = "DONATION"
    RETURN_TO_VENDOR = "RETURN_TO_VENDOR"
    COMPOST = "COMPOST"
    OTHER = "OTHER"


class DisposalQuantityValidator:
    """
    Validates disposal requests.

    Contract:
        ``validate`` is pure; the allowed reasons, methods and the minimum
        quantity are fixed at construction.
    Guarantees:
        - A request with no errors has a date, a known reason, a known
          method, and at least one item whose product and quantity are set.
    Non-goals:
        - Does not check quantities against available stock.
    """

    def __init__(
        self,
        minimum_quantity: Decimal = DEFAULT_MINIMUM_QUANTITY,
        reasons: Iterable[str] | None = None,
        methods: Iterable[str] | None = None,
    ) -> None:
        if minimum_quantity <= ZERO:
            raise ValueError("minimum_quantity must be positive")
        self.minimum_quantity = minimum_quantity
        self.reasons = frozenset(
            reasons if reasons is not None else (r.value for r in DisposalReason)
        )
        self.methods = frozenset(
            methods if methods is not None else (m.value for m in DisposalMethod)
        )

    @traced_engine("disposal_validation", "1.0", fingerprint_fields=("request",))
    def validate(self, request: DisposalRequest) -> ValidationOutcome:
        """
        Collect every structural and enumeration error of a request.

        Args:
            request: Disposal request as submitted.

        Returns:
            ValidationOutcome; valid iff no errors were found.
        """
        logger.info("disposal_validation_started", extra={
            "item_count": len(request.items),
            "disposal_reason": request.disposal_reason,
        })

        errors: list[str] = []
        if request.disposal_date is None:
            errors.append("Disposal date is required")
        if is_blank(request.disposal_reason):
            errors.append("Disposal reason is required")
        if is_blank(request.disposal_method):
            errors.append("Disposal method is required")
        if not request.items:
            errors.append("At least one disposal item is required")

        if not is_blank(request.disposal_reason) and request.disposal_reason not in self.reasons:
            errors.append("Invalid disposal reason")
        if not is_blank(request.disposal_method) and request.disposal_method not in self.methods:
            errors.append("Invalid disposal method")

        for index, item in enumerate(request.items):
            prefix = f"Item {index + 1}:"
            if item.product_id is None:
                errors.append(f"{prefix} Product ID is required")
            quantity = item.quantity_to_dispose
            if quantity <= ZERO:
                errors.append(f"{prefix} Quantity to dispose must be greater than 0")
            elif quantity < self.minimum_quantity:
                errors.append(
                    f"{prefix} Quantity {quantity} is too small, "
                    f"minimum disposal quantity is {self.minimum_quantity}"
                )

        outcome = ValidationOutcome.of(errors)
        logger.info("disposal_validation_completed", extra={
            "is_valid": outcome.is_valid,
            "error_count": len(outcome.errors),
        })
        return outcome


@dataclass(frozen=True)
class DisposalSummary:
    total_items: int
    total_quantity: Decimal
    unique_products: int
    average_quantity: Decimal


def summarize_disposals(movements: Sequence[LedgerMovement]) -> DisposalSummary:
    """
    Totals over recorded disposal movements.

    Quantities are absolute (disposals are negative on the ledger) and the
    total and average are rounded to three decimal places.
    """
    if not movements:
        return DisposalSummary(
            total_items=0,
            total_quantity=ZERO,
            unique_products=0,
            average_quantity=ZERO,
        )

    total = sum((abs(m.quantity) for m in movements), ZERO)
    unique = len({m.product_id for m in movements})
    average = total / Decimal(len(movements))
    return DisposalSummary(
        total_items=len(movements),
        total_quantity=total.quantize(SUMMARY_QUANTUM, rounding=ROUND_HALF_UP),
        unique_products=unique,
        average_quantity=average.quantize(SUMMARY_QUANTUM, rounding=ROUND_HALF_UP),
    )
