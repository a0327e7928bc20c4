"""
stock_engines.validation -- Collected (never short-circuited) validation results.

Every validator in the engines layer returns a ``ValidationOutcome`` so that
callers see every problem at once.  Business-input errors are data, not
exceptions; ``raise_if_invalid`` converts an outcome for callers that want
one.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from stock_kernel.exceptions import StructuralValidationError, ValidationFailedError


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a validation pass: ``is_valid`` iff ``errors`` is empty."""

    errors: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @classmethod
    def of(cls, errors: Iterable[str]) -> ValidationOutcome:
        return cls(errors=tuple(errors))

    def merge(self, other: ValidationOutcome) -> ValidationOutcome:
        """Concatenate errors, this outcome's first."""
        return ValidationOutcome(errors=self.errors + other.errors)

    def raise_if_invalid(
        self,
        error_cls: type[ValidationFailedError] = StructuralValidationError,
        context: str | None = None,
    ) -> None:
        """Raise ``error_cls`` carrying every error when the outcome is invalid."""
        if self.errors:
            raise error_cls(self.errors, context=context)

    def as_dict(self) -> dict[str, object]:
        return {"isValid": self.is_valid, "errors": list(self.errors)}


VALID = ValidationOutcome()
