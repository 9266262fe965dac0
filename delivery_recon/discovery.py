"""Find slip workbooks under a root folder and tag them with a customer type.

Layout: ROOT / <customer type> / ... / slip.xls. Every first-level folder name
is the customer type for all spreadsheets beneath it; spreadsheets sitting
directly in ROOT get ROOT_CUSTOMER_TYPE.
"""

from __future__ import annotations

from pathlib import Path

from delivery_recon.logging_setup import get_logger
from delivery_recon.workbook import SUPPORTED_WORKBOOK_FORMATS

logger = get_logger(__name__)

ROOT_CUSTOMER_TYPE = "default"
LOCK_FILE_PREFIX = "~$"


def is_slip_workbook(path: Path) -> bool:
    name = path.name
    if name.startswith(LOCK_FILE_PREFIX) or name.startswith("."):
        return False
    return path.suffix.lower() in SUPPORTED_WORKBOOK_FORMATS


def discover_files(root: "str | Path") -> list[tuple[Path, str]]:
    root = Path(root)
    if not root.is_dir():
        return []

    files: list[tuple[Path, str]] = []
    for entry in sorted(root.iterdir()):
        if entry.name.startswith("."):
            continue
        if entry.is_dir():
            for path in sorted(entry.rglob("*")):
                if path.is_file() and is_slip_workbook(path):
                    files.append((path, entry.name))
        elif entry.is_file() and is_slip_workbook(entry):
            files.append((entry, ROOT_CUSTOMER_TYPE))

    logger.info("Found %d workbook(s) under %s", len(files), root)
    return files
