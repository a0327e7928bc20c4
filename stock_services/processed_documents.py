"""
ProcessedDocumentRegistry -- Remembers which documents a workflow has finished.

Architecture: stock_services -- imperative shell.
    The goods receipt workflow hides purchase bills that already have a
    receipt.  The set of processed ids is an explicit collaborator with an
    injectable store rather than hidden client state:

        ProcessedDocumentRegistry(store, namespace)
            +-- InMemoryDocumentStore   (process-local, thread-safe)
            +-- SqlDocumentStore        (processed_documents table)

Invariants enforced:
    - Ids are normalized to stripped strings, so 7 and "7" are one document.
    - Marking twice is a no-op; unmarking an unknown id is a no-op.
    - Namespaces are isolated from each other.

Failure modes:
    - DocumentStoreError when the SQL store cannot complete an operation.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from typing import Any, Protocol, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.engine import session_scope
from stock_kernel.domain.records import identifier
from stock_kernel.exceptions import DocumentStoreError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.processed_document import ProcessedDocument

logger = get_logger("services.processed_documents")

T = TypeVar("T")


class DocumentStore(Protocol):
    """Storage for (namespace, document id) pairs."""

    def add(self, namespace: str, document_id: str) -> None: ...

    def discard(self, namespace: str, document_id: str) -> None: ...

    def contains(self, namespace: str, document_id: str) -> bool: ...

    def all_ids(self, namespace: str) -> frozenset[str]: ...

    def clear(self, namespace: str) -> None: ...


class InMemoryDocumentStore:
    """Process-local store guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids: dict[str, set[str]] = {}

    def add(self, namespace: str, document_id: str) -> None:
        with self._lock:
            self._ids.setdefault(namespace, set()).add(document_id)

    def discard(self, namespace: str, document_id: str) -> None:
        with self._lock:
            self._ids.get(namespace, set()).discard(document_id)

    def contains(self, namespace: str, document_id: str) -> bool:
        with self._lock:
            return document_id in self._ids.get(namespace, ())

    def all_ids(self, namespace: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._ids.get(namespace, ()))

    def clear(self, namespace: str) -> None:
        with self._lock:
            self._ids.pop(namespace, None)


class SqlDocumentStore:
    """Store backed by the ``processed_documents`` table.

    Each operation runs in its own ``session_scope`` from the injected
    session factory.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def add(self, namespace: str, document_id: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                exists = session.execute(
                    select(ProcessedDocument.id).where(
                        ProcessedDocument.namespace == namespace,
                        ProcessedDocument.document_id == document_id,
                    )
                ).first()
                if exists is None:
                    session.add(ProcessedDocument(
                        namespace=namespace, document_id=document_id,
                    ))
        except IntegrityError:
            # Concurrent insert of the same pair; the row exists either way.
            logger.info("processed_document_already_recorded", extra={
                "namespace": namespace,
                "document_id": document_id,
            })
        except SQLAlchemyError as exc:
            raise DocumentStoreError("add", namespace, str(exc)) from exc

    def discard(self, namespace: str, document_id: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.execute(
                    delete(ProcessedDocument).where(
                        ProcessedDocument.namespace == namespace,
                        ProcessedDocument.document_id == document_id,
                    )
                )
        except SQLAlchemyError as exc:
            raise DocumentStoreError("discard", namespace, str(exc)) from exc

    def contains(self, namespace: str, document_id: str) -> bool:
        try:
            with session_scope(self._session_factory) as session:
                row = session.execute(
                    select(ProcessedDocument.id).where(
                        ProcessedDocument.namespace == namespace,
                        ProcessedDocument.document_id == document_id,
                    )
                ).first()
                return row is not None
        except SQLAlchemyError as exc:
            raise DocumentStoreError("contains", namespace, str(exc)) from exc

    def all_ids(self, namespace: str) -> frozenset[str]:
        try:
            with session_scope(self._session_factory) as session:
                rows = session.scalars(
                    select(ProcessedDocument.document_id).where(
                        ProcessedDocument.namespace == namespace,
                    )
                ).all()
                return frozenset(rows)
        except SQLAlchemyError as exc:
            raise DocumentStoreError("all_ids", namespace, str(exc)) from exc

    def clear(self, namespace: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.execute(
                    delete(ProcessedDocument).where(
                        ProcessedDocument.namespace == namespace,
                    )
                )
        except SQLAlchemyError as exc:
            raise DocumentStoreError("clear", namespace, str(exc)) from exc


def _document_id(document: Any) -> Any:
    if isinstance(document, dict):
        return document.get("id")
    return getattr(document, "id", None)


class ProcessedDocumentRegistry:
    """Processed-document cache for one workflow namespace.

    Contract:
        - ``mark_processed()`` / ``unmark()`` add and evict single ids.
        - ``exclude_processed()`` filters a document list, keeping order.
        - ``reset()`` forgets every id in the namespace.
    """

    def __init__(self, store: DocumentStore, namespace: str) -> None:
        if not namespace:
            raise ValueError("namespace is required")
        self._store = store
        self.namespace = namespace

    def mark_processed(self, document_id: str | int) -> None:
        key = self._key(document_id)
        self._store.add(self.namespace, key)
        logger.info("document_marked_processed", extra={
            "namespace": self.namespace,
            "document_id": key,
        })

    def unmark(self, document_id: str | int) -> None:
        key = self._key(document_id)
        self._store.discard(self.namespace, key)
        logger.info("document_unmarked", extra={
            "namespace": self.namespace,
            "document_id": key,
        })

    def is_processed(self, document_id: str | int | None) -> bool:
        key = identifier(document_id)
        if key is None:
            return False
        return self._store.contains(self.namespace, key)

    def processed_ids(self) -> frozenset[str]:
        return self._store.all_ids(self.namespace)

    def exclude_processed(
        self,
        documents: Iterable[T],
        key: Callable[[T], Any] = _document_id,
    ) -> list[T]:
        """Documents whose id has not been processed, in input order."""
        processed = self.processed_ids()
        return [d for d in documents if identifier(key(d)) not in processed]

    def reset(self) -> None:
        self._store.clear(self.namespace)
        logger.info("processed_documents_reset", extra={"namespace": self.namespace})

    @staticmethod
    def _key(document_id: str | int) -> str:
        key = identifier(document_id)
        if key is None:
            raise ValueError("document_id is required")
        return key
