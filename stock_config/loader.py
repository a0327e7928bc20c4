"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads the reconciliation policy YAML file and parses it into the frozen
``stock_config.schema`` dataclasses.  Runtime callers go through
``stock_config.get_active_config()``.

Architecture position
---------------------
**Config layer**.  Depends on ``stock_kernel.exceptions`` only; engines
and services never import the loader directly.

Invariants enforced
-------------------
* Numeric thresholds are parsed to ``Decimal`` through ``str`` and must be
  positive; the overstock ratio must not exceed 1.
* Enumerations and label maps must be non-empty.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or invalid values  -> ``ConfigurationError`` naming the key.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    AggregationPolicy,
    DisposalPolicy,
    ProcessedDocumentsPolicy,
    ReconciliationConfig,
    StockCheckPolicy,
    StockStatusPolicy,
)
from stock_kernel.exceptions import ConfigurationError

_CHECK_STATUSES = ("MATCH", "SURPLUS", "SHORTAGE")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("<root>", f"expected a mapping, got {type(data).__name__}")
    return data


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ConfigurationError(key, "section is missing or not a mapping")
    return value


def parse_positive_decimal(key: str, value: Any) -> Decimal:
    """Parse a positive finite Decimal from a YAML scalar."""
    if value is None or isinstance(value, bool):
        raise ConfigurationError(key, "a positive number is required")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(key, f"{value!r} is not a number") from None
    if not result.is_finite() or result <= 0:
        raise ConfigurationError(key, f"{value!r} must be a positive number")
    return result


def _string_list(key: str, value: Any) -> tuple[str, ...]:
    if not isinstance(value, list) or not value:
        raise ConfigurationError(key, "a non-empty list is required")
    items = tuple(str(v).strip() for v in value)
    if any(not item for item in items):
        raise ConfigurationError(key, "entries must be non-blank")
    return items


def _string_map(key: str, value: Any) -> tuple[tuple[str, str], ...]:
    if not isinstance(value, dict) or not value:
        raise ConfigurationError(key, "a non-empty mapping is required")
    pairs = tuple((str(k).strip(), str(v).strip()) for k, v in value.items())
    if any(not k or not v for k, v in pairs):
        raise ConfigurationError(key, "keys and labels must be non-blank")
    return pairs


def parse_stock_status(data: dict[str, Any]) -> StockStatusPolicy:
    ratio = parse_positive_decimal(
        "stock_status.overstock_ratio", data.get("overstock_ratio"),
    )
    if ratio > 1:
        raise ConfigurationError("stock_status.overstock_ratio", "must not exceed 1")
    return StockStatusPolicy(overstock_ratio=ratio)


def parse_disposal(data: dict[str, Any]) -> DisposalPolicy:
    return DisposalPolicy(
        minimum_quantity=parse_positive_decimal(
            "disposal.minimum_quantity", data.get("minimum_quantity"),
        ),
        reasons=_string_list("disposal.reasons", data.get("reasons")),
        methods=_string_list("disposal.methods", data.get("methods")),
    )


def parse_aggregation(data: dict[str, Any]) -> AggregationPolicy:
    return AggregationPolicy(
        note_fields=_string_map("aggregation.note_fields", data.get("note_fields")),
    )


def parse_stock_check(data: dict[str, Any]) -> StockCheckPolicy:
    labels = _string_map("stock_check.status_labels", data.get("status_labels"))
    unknown = sorted({k for k, _ in labels} - set(_CHECK_STATUSES))
    if unknown:
        raise ConfigurationError(
            "stock_check.status_labels", f"unknown statuses: {', '.join(unknown)}",
        )
    return StockCheckPolicy(status_labels=labels)


def parse_processed_documents(data: dict[str, Any]) -> ProcessedDocumentsPolicy:
    namespace = str(data.get("goods_receipt_namespace") or "").strip()
    if not namespace:
        raise ConfigurationError(
            "processed_documents.goods_receipt_namespace", "a namespace is required",
        )
    return ProcessedDocumentsPolicy(goods_receipt_namespace=namespace)


def parse_config(data: dict[str, Any]) -> ReconciliationConfig:
    """
    Parse a full ``ReconciliationConfig`` from a dict.

    Postconditions:
        - Returns a frozen config whose ``checksum`` is computed from ``data``.
    Raises:
        ConfigurationError: if a section or value is missing or invalid.
    """
    version = data.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int):
        raise ConfigurationError("version", f"{version!r} is not an integer")

    return ReconciliationConfig(
        config_id=str(data.get("config_id") or "unnamed"),
        version=version,
        stock_status=parse_stock_status(_section(data, "stock_status")),
        disposal=parse_disposal(_section(data, "disposal")),
        aggregation=parse_aggregation(_section(data, "aggregation")),
        stock_check=parse_stock_check(_section(data, "stock_check")),
        processed_documents=parse_processed_documents(
            _section(data, "processed_documents"),
        ),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> ReconciliationConfig:
    """Load and parse a policy file."""
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
