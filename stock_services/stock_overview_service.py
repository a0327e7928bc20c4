"""
StockOverviewService -- Combines catalog and ledger data into stock snapshots.

Architecture: stock_services -- imperative shell.
    Catalog products and ledger stock levels are fetched independently by
    the caller; this service joins them on product id, runs the pure
    StockStatusClassifier over each pair, and stamps the result with the
    injected clock.

Invariants enforced:
    - One snapshot per catalog product, in catalog order.
    - A product with no ledger record has zero stock (out of stock).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.records import CatalogProduct, LedgerStock
from stock_kernel.logging_config import get_logger

from stock_engines.stock_status import (
    ProductStockSnapshot,
    StockStatus,
    StockStatusClassifier,
    StockStatusSummary,
)

logger = get_logger("services.stock_overview")


@dataclass(frozen=True)
class StockOverview:
    snapshots: tuple[ProductStockSnapshot, ...]
    summary: StockStatusSummary
    combined_at: datetime


def _as_product(item: CatalogProduct | Mapping[str, Any]) -> CatalogProduct:
    if isinstance(item, CatalogProduct):
        return item
    return CatalogProduct.from_mapping(item)


def _as_stock(item: LedgerStock | Mapping[str, Any]) -> LedgerStock:
    if isinstance(item, LedgerStock):
        return item
    return LedgerStock.from_mapping(item)


class StockOverviewService:
    """Builds stock overviews from catalog and ledger sources.

    Contract:
        - ``combine()`` accepts records or raw API mappings for both sources.
        - ``by_status()`` and ``low_stock()`` filter an existing overview.

    Non-goals:
        - Does NOT fetch from the catalog or ledger (caller supplies data).
    """

    def __init__(
        self,
        classifier: StockStatusClassifier | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._classifier = classifier or StockStatusClassifier()
        self._clock = clock or SystemClock()

    def combine(
        self,
        products: Iterable[CatalogProduct | Mapping[str, Any]],
        stocks: Iterable[LedgerStock | Mapping[str, Any]],
    ) -> StockOverview:
        """Join products with stock levels and classify each product."""
        stock_by_product: dict[str, LedgerStock] = {}
        for raw in stocks:
            stock = _as_stock(raw)
            if stock.product_id is not None:
                stock_by_product[stock.product_id] = stock

        snapshots = []
        for raw in products:
            product = _as_product(raw)
            stock = (
                stock_by_product.get(product.product_id)
                if product.product_id is not None else None
            )
            snapshots.append(self._classifier.snapshot(product, stock))

        summary = self._classifier.summarize(snapshots)
        logger.info("stock_overview_combined", extra={
            "product_count": summary.total_products,
            "ledger_record_count": len(stock_by_product),
            "low_stock_count": summary.low_stock_count,
        })
        return StockOverview(
            snapshots=tuple(snapshots),
            summary=summary,
            combined_at=self._clock.now(),
        )

    @staticmethod
    def by_status(
        overview: StockOverview,
        status: StockStatus | str,
    ) -> tuple[ProductStockSnapshot, ...]:
        wanted = StockStatus(status)
        return tuple(s for s in overview.snapshots if s.status is wanted)

    def low_stock(self, overview: StockOverview) -> tuple[ProductStockSnapshot, ...]:
        """Products that need restocking, most urgent first."""
        return self._classifier.sort_by_priority(
            [s for s in overview.snapshots if s.status.needs_restock]
        )
