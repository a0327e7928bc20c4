"""
stock_config -- single public entrypoint for reconciliation policy.

Responsibility:
    Provides the ONLY way to obtain policy values at runtime through
    ``get_active_config()``.  Returns a frozen ``ReconciliationConfig``.

Architecture position:
    Configuration -- YAML-driven policy.  Sits above ``stock_kernel`` and
    below ``stock_services``.  Engines MUST NOT import from this package;
    services pass policy values into engine constructors.

Invariants enforced:
    - Single entrypoint: runtime policy flows through ``get_active_config()``.
    - Deterministic: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- the requested policy file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ConfigurationError`` -- a section or value is missing or invalid.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``STOCK_CONFIG_TRACE`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from stock_config.loader import compute_checksum, load_config
from stock_config.schema import (
    AggregationPolicy,
    DisposalPolicy,
    ProcessedDocumentsPolicy,
    ReconciliationConfig,
    StockCheckPolicy,
    StockStatusPolicy,
)

_logger = logging.getLogger("stock_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> ReconciliationConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Policy YAML file.  Defaults to the bundled
            ``defaults.yaml``.

    Returns:
        The parsed, frozen ``ReconciliationConfig``.

    Raises:
        FileNotFoundError: if ``config_path`` does not exist.
        ConfigurationError: if the policy is invalid.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config(path)

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
        },
    )
    return config


__all__ = [
    "AggregationPolicy",
    "DEFAULT_CONFIG_PATH",
    "DisposalPolicy",
    "ProcessedDocumentsPolicy",
    "ReconciliationConfig",
    "StockCheckPolicy",
    "StockStatusPolicy",
    "compute_checksum",
    "get_active_config",
]
