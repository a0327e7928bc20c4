"""
Stock Kernel - shared foundation for the inventory reconciliation core.

Provides:
- Structured JSON logging with request-scoped context
- Typed exception hierarchy with machine-readable codes
- Immutable domain records for catalog, ledger and document lines
- SQLAlchemy plumbing for the processed-document cache
"""

__version__ = "0.1.0"
