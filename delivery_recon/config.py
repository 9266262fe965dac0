"""
Engine settings for delivery-recon.

Scan windows and fallback column positions live here so the heuristics do not
hard-code them. Override via environment variables or by passing an
EngineSettings instance directly.

Settings priority (highest wins):
  1. CLI flags (for example --workers)
  2. Environment variables (DELIVERY_RECON_*)
  3. Defaults in this file
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

from delivery_recon.logging_setup import get_logger

logger = get_logger(__name__)

DEFAULT_COLUMNS = {
    "product_name": 0,
    "spec": 2,
    "quantity": 4,
    "unit": 5,
}
DEFAULT_DATA_START_ROW = 8
DEFAULT_CUSTOMER_TYPE = "monthly"


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return default
    if value < minimum:
        logger.warning("Ignoring %s=%r: must be >= %d", name, raw, minimum)
        return default
    return value


@dataclass(frozen=True)
class EngineSettings:
    # --- Scan windows (row counts from the top of the sheet) ---
    header_scan_rows: int = 15
    metadata_scan_rows: int = 10

    # --- Layout fallback when no header row is recognised ---
    default_columns: tuple[tuple[str, int], ...] = tuple(DEFAULT_COLUMNS.items())
    default_data_start_row: int = DEFAULT_DATA_START_ROW

    default_customer_type: str = DEFAULT_CUSTOMER_TYPE

    # --- Per-file extraction threads (1 = sequential) ---
    workers: int = 1

    def with_overrides(self, **changes) -> "EngineSettings":
        return replace(self, **{key: value for key, value in changes.items() if value is not None})


def settings_from_env() -> EngineSettings:
    return EngineSettings(
        header_scan_rows=_env_int("DELIVERY_RECON_HEADER_SCAN_ROWS", 15),
        metadata_scan_rows=_env_int("DELIVERY_RECON_METADATA_SCAN_ROWS", 10),
        workers=_env_int("DELIVERY_RECON_WORKERS", 1),
    )


DEFAULT_SETTINGS = EngineSettings()
