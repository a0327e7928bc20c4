"""
Tests for the processed-document registry and its stores.

The same behaviour is checked against the in-memory store and the SQL
store (in-memory SQLite via the session_factory fixture).
"""

import pytest
from sqlalchemy import func, select

from stock_kernel.db.engine import session_scope
from stock_kernel.exceptions import DocumentStoreError
from stock_kernel.models.processed_document import ProcessedDocument
from stock_services.processed_documents import (
    InMemoryDocumentStore,
    ProcessedDocumentRegistry,
    SqlDocumentStore,
)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return InMemoryDocumentStore()
    factory = request.getfixturevalue("session_factory")
    return SqlDocumentStore(factory)


class TestRegistry:

    def test_mark_and_query(self, store):
        registry = ProcessedDocumentRegistry(store, "goods_receipt.bill")
        registry.mark_processed(7)

        assert registry.is_processed(7)
        assert registry.is_processed("7")
        assert not registry.is_processed(8)
        assert registry.processed_ids() == frozenset({"7"})

    def test_mark_twice_is_noop(self, store):
        registry = ProcessedDocumentRegistry(store, "goods_receipt.bill")
        registry.mark_processed("B1")
        registry.mark_processed(" B1 ")
        assert registry.processed_ids() == frozenset({"B1"})

    def test_unmark(self, store):
        registry = ProcessedDocumentRegistry(store, "goods_receipt.bill")
        registry.mark_processed("B1")
        registry.unmark("B1")
        registry.unmark("never-marked")
        assert not registry.is_processed("B1")

    def test_namespaces_isolated(self, store):
        bills = ProcessedDocumentRegistry(store, "goods_receipt.bill")
        disposals = ProcessedDocumentRegistry(store, "disposal.reference")
        bills.mark_processed("X")

        assert not disposals.is_processed("X")
        disposals.reset()
        assert bills.is_processed("X")

    def test_exclude_processed_keeps_order(self, store):
        registry = ProcessedDocumentRegistry(store, "goods_receipt.bill")
        registry.mark_processed(2)
        bills = [{"id": 1}, {"id": 2}, {"id": 3}]

        assert registry.exclude_processed(bills) == [{"id": 1}, {"id": 3}]

    def test_exclude_processed_custom_key(self, store):
        registry = ProcessedDocumentRegistry(store, "goods_receipt.bill")
        registry.mark_processed("B-1")
        docs = [("B-1", "first"), ("B-2", "second")]

        assert registry.exclude_processed(docs, key=lambda d: d[0]) == [("B-2", "second")]

    def test_reset(self, store):
        registry = ProcessedDocumentRegistry(store, "goods_receipt.bill")
        registry.mark_processed(1)
        registry.mark_processed(2)
        registry.reset()
        assert registry.processed_ids() == frozenset()


class TestRegistryArguments:

    def setup_method(self):
        self.registry = ProcessedDocumentRegistry(InMemoryDocumentStore(), "ns")

    def test_namespace_required(self):
        with pytest.raises(ValueError):
            ProcessedDocumentRegistry(InMemoryDocumentStore(), "")

    @pytest.mark.parametrize("bad", [None, "", "   "])
    def test_mark_requires_id(self, bad):
        with pytest.raises(ValueError, match="document_id is required"):
            self.registry.mark_processed(bad)

    def test_none_is_never_processed(self):
        assert not self.registry.is_processed(None)

    def test_marking_logged(self, captured_logs):
        self.registry.mark_processed(42)
        records = [r for r in captured_logs() if r["message"] == "document_marked_processed"]
        assert records[0]["namespace"] == "ns"
        assert records[0]["document_id"] == "42"


class TestSqlDocumentStore:

    def test_single_row_per_document(self, session_factory):
        store = SqlDocumentStore(session_factory)
        store.add("ns", "A")
        store.add("ns", "A")

        with session_scope(session_factory) as session:
            count = session.scalar(select(func.count()).select_from(ProcessedDocument))
        assert count == 1

    def test_failure_wrapped(self, session_factory):
        from stock_kernel.db.engine import drop_tables

        store = SqlDocumentStore(session_factory)
        drop_tables()

        with pytest.raises(DocumentStoreError) as exc_info:
            store.contains("ns", "A")
        assert exc_info.value.operation == "contains"
        assert exc_info.value.namespace == "ns"
        assert exc_info.value.code == "DOCUMENT_STORE_ERROR"
