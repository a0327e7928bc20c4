"""ORM models owned by the stock kernel."""

from stock_kernel.models.processed_document import ProcessedDocument

__all__ = ["ProcessedDocument"]
