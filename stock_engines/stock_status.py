"""
stock_engines.stock_status -- Stock status classification of product snapshots.

Responsibility:
    Classify a product's on-hand stock against its reorder level and
    maximum stock into one of four statuses, compose catalog + ledger
    records into a ``ProductStockSnapshot``, and summarize a snapshot list.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel.domain.

Invariants enforced:
    - Rules are evaluated in order, first match wins:
      out_of_stock (stock <= 0), low_stock (stock <= reorder level),
      overstocked (stock >= ratio x max stock), normal.
    - Classification is non-increasing in urgency as stock grows for fixed
      thresholds.
    - Status is derived on every call, never cached.

Failure modes:
    - ValueError from the constructor if overstock_ratio is not positive.
    - Nothing else: absent thresholds simply skip their rule.

Usage:
    from stock_engines.stock_status import StockStatusClassifier

    classifier = StockStatusClassifier()
    classifier.classify(Decimal("5"), reorder_level=Decimal("10"))
    # StockStatus.LOW_STOCK
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from stock_kernel.domain.records import CatalogProduct, LedgerStock
from stock_kernel.domain.values import ZERO, coerce_quantity, optional_quantity
from stock_kernel.logging_config import get_logger
from stock_engines.tracer import traced_engine

logger = get_logger("engines.stock_status")

DEFAULT_OVERSTOCK_RATIO = Decimal("0.9")


class StockStatus(str, Enum):
    """Stock status tag. ``priority`` 1 is the most urgent."""

    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    OVERSTOCKED = "overstocked"
    NORMAL = "normal"

    @property
    def priority(self) -> int:
        return _PRIORITY[self]

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def color(self) -> str:
        return _COLORS[self]

    @property
    def needs_restock(self) -> bool:
        return self in (StockStatus.OUT_OF_STOCK, StockStatus.LOW_STOCK)


_PRIORITY = {
    StockStatus.OUT_OF_STOCK: 1,
    StockStatus.LOW_STOCK: 2,
    StockStatus.OVERSTOCKED: 3,
    StockStatus.NORMAL: 4,
}

_LABELS = {
    StockStatus.OUT_OF_STOCK: "Out of stock",
    StockStatus.LOW_STOCK: "Low stock",
    StockStatus.OVERSTOCKED: "High stock",
    StockStatus.NORMAL: "Normal",
}

_COLORS = {
    StockStatus.OUT_OF_STOCK: "danger",
    StockStatus.LOW_STOCK: "warning",
    StockStatus.OVERSTOCKED: "info",
    StockStatus.NORMAL: "success",
}


@dataclass(frozen=True)
class ProductStockSnapshot:
    """
    Point-in-time view of one product combined with its ledger stock.

    Contract:
        Ephemeral and read-only; built from a catalog record and a ledger
        record that were fetched independently.  If either source refreshes
        the caller rebuilds the snapshot.
    """

    product_id: str | None
    name: str
    unit: str
    current_stock: Decimal
    status: StockStatus
    reorder_level: Decimal | None = None
    max_stock: Decimal | None = None
    selling_price: Decimal = ZERO
    last_stock_update: datetime | None = None

    @property
    def stock_available(self) -> bool:
        return self.current_stock > ZERO

    @property
    def inventory_value(self) -> Decimal:
        return self.selling_price * self.current_stock


@dataclass(frozen=True)
class StockStatusSummary:
    """Counts over a snapshot list. ``low_stock_count`` includes out-of-stock."""

    total_products: int
    low_stock_count: int
    out_of_stock_count: int
    overstocked_count: int
    total_inventory_value: Decimal

    @property
    def has_products(self) -> bool:
        return self.total_products > 0


class StockStatusClassifier:
    """
    Pure classifier for product stock status.

    Contract:
        No I/O, fully deterministic.  Thresholds are passed per call; only
        the overstock ratio is fixed per instance (it comes from policy).
    Guarantees:
        - ``classify`` never raises for numeric or absent thresholds.
        - A zero threshold counts as absent.  A negative one is kept, so a
          negative maximum marks any positive stock as overstocked.
    Non-goals:
        - Does not fetch catalog or ledger data.
    """

    def __init__(self, overstock_ratio: Decimal = DEFAULT_OVERSTOCK_RATIO) -> None:
        if overstock_ratio <= ZERO:
            raise ValueError("overstock_ratio must be positive")
        self.overstock_ratio = overstock_ratio

    @traced_engine(
        "stock_status", "1.0",
        fingerprint_fields=("current_stock", "reorder_level", "max_stock"),
    )
    def classify(
        self,
        current_stock: Decimal | int | str | None,
        reorder_level: Decimal | int | str | None = None,
        max_stock: Decimal | int | str | None = None,
    ) -> StockStatus:
        """
        Classify stock against thresholds.

        Args:
            current_stock: On-hand quantity; non-numeric counts as 0.
            reorder_level: Restock threshold, optional.
            max_stock: Maximum stock, optional.

        Returns:
            The first matching StockStatus.
        """
        stock = coerce_quantity(current_stock)
        reorder = _threshold(reorder_level)
        maximum = _threshold(max_stock)

        if stock <= ZERO:
            return StockStatus.OUT_OF_STOCK
        if reorder is not None and stock <= reorder:
            return StockStatus.LOW_STOCK
        if maximum is not None and stock >= maximum * self.overstock_ratio:
            return StockStatus.OVERSTOCKED
        return StockStatus.NORMAL

    def snapshot(
        self,
        product: CatalogProduct,
        stock: LedgerStock | None,
    ) -> ProductStockSnapshot:
        """Combine a catalog product with its ledger stock (or none: zero stock)."""
        current = stock.current_stock if stock is not None else ZERO
        unit = (stock.unit_of_measure if stock is not None else None) or product.unit
        return ProductStockSnapshot(
            product_id=product.product_id,
            name=product.name,
            unit=unit,
            current_stock=current,
            status=self.classify(current, product.reorder_level, product.max_stock),
            reorder_level=product.reorder_level,
            max_stock=product.max_stock,
            selling_price=product.selling_price,
            last_stock_update=stock.last_updated if stock is not None else None,
        )

    def summarize(self, snapshots: Iterable[ProductStockSnapshot]) -> StockStatusSummary:
        """Count statuses and total the inventory value at selling price."""
        total = low = out = over = 0
        value = ZERO
        for snap in snapshots:
            total += 1
            value += snap.inventory_value
            if snap.status.needs_restock:
                low += 1
            if snap.status is StockStatus.OUT_OF_STOCK:
                out += 1
            elif snap.status is StockStatus.OVERSTOCKED:
                over += 1

        logger.debug("stock_status_summarized", extra={
            "total_products": total,
            "low_stock_count": low,
            "out_of_stock_count": out,
        })
        return StockStatusSummary(
            total_products=total,
            low_stock_count=low,
            out_of_stock_count=out,
            overstocked_count=over,
            total_inventory_value=value,
        )

    @staticmethod
    def sort_by_priority(
        snapshots: Sequence[ProductStockSnapshot],
    ) -> tuple[ProductStockSnapshot, ...]:
        """Most urgent first, then by case-insensitive name."""
        return tuple(
            sorted(snapshots, key=lambda s: (s.status.priority, s.name.casefold()))
        )


def _threshold(value: Any) -> Decimal | None:
    parsed = optional_quantity(value)
    if parsed is None or parsed == ZERO:
        return None
    return parsed
