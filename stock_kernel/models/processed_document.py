"""
Module: stock_kernel.models.processed_document
Responsibility: ORM persistence for the processed-document cache -- the set
    of document ids (purchase bills, disposal references) that a workflow
    has already completed and should hide from its pick lists.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (namespace, document_id) is unique: marking a document twice is a
      no-op at the store level, never a duplicate row.

Failure modes:
    - IntegrityError on a concurrent duplicate insert; the SQL store treats
      it as already-processed.
"""

from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import RecordedBase


class ProcessedDocument(RecordedBase):
    """A document id that one workflow namespace has finished processing."""

    __tablename__ = "processed_documents"

    __table_args__ = (
        UniqueConstraint("namespace", "document_id"),
    )

    # Workflow that owns the id, e.g. "goods_receipt.bill"
    namespace: Mapped[str] = mapped_column(index=True)

    document_id: Mapped[str] = mapped_column()

    def __repr__(self) -> str:
        return f"<ProcessedDocument {self.namespace}:{self.document_id}>"
