"""
Typed exception hierarchy for the stock kernel.

Every error carries a ``code`` class attribute (machine-readable, API-safe)
and stores its context as attributes rather than only in the message.

    StockKernelError (base)
    |
    +-- ValidationFailedError
    |   +-- StructuralValidationError
    |   +-- BusinessRuleError
    |
    +-- DocumentStoreError
    |
    +-- ConfigurationError

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_FAILED           | Outcome converted to an exception
                | STRUCTURAL_VALIDATION       | Missing / malformed required fields
                | BUSINESS_RULE_VIOLATION     | Disposal beyond stock, bad enum value
----------------|-----------------------------|-----------------------------------------
Cache           | DOCUMENT_STORE_ERROR        | Processed-document store failure
----------------|-----------------------------|-----------------------------------------
Config          | CONFIGURATION_ERROR         | Malformed reconciliation policy YAML

The engines themselves never raise these for business input. They return
``ValidationOutcome`` values; callers that prefer exceptions convert an
outcome with ``ValidationOutcome.raise_if_invalid()``.
"""

from __future__ import annotations

from collections.abc import Iterable


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Validation


class ValidationFailedError(StockKernelError):
    """A validation outcome carried one or more human-readable errors."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, errors: Iterable[str], context: str | None = None):
        self.errors = tuple(errors)
        self.context = context
        prefix = f"{context}: " if context else ""
        super().__init__(
            f"{prefix}{len(self.errors)} validation error(s): "
            + "; ".join(self.errors)
        )


class StructuralValidationError(ValidationFailedError):
    """Required field missing or malformed. Raised before any computation."""

    code: str = "STRUCTURAL_VALIDATION"


class BusinessRuleError(ValidationFailedError):
    """
    Request is well formed but violates a business rule.

    Examples: disposal quantity exceeds available stock, disposal reason
    outside the allowed enumeration.
    """

    code: str = "BUSINESS_RULE_VIOLATION"


# Processed-document cache


class DocumentStoreError(StockKernelError):
    """The processed-document store could not complete an operation."""

    code: str = "DOCUMENT_STORE_ERROR"

    def __init__(self, operation: str, namespace: str, reason: str):
        self.operation = operation
        self.namespace = namespace
        self.reason = reason
        super().__init__(
            f"Document store {operation} failed for namespace "
            f"'{namespace}': {reason}"
        )


# Configuration


class ConfigurationError(StockKernelError):
    """Reconciliation policy could not be parsed."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration value for '{key}': {reason}")
