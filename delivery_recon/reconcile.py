"""
Reconciliation of per-file record batches.

The per-file extraction step is independent and may run on a thread pool.
The reduction over batches is sequential and in input order, so duplicate
detection and issue ordering do not depend on scheduling.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Sequence

from delivery_recon import issues
from delivery_recon.cells import date_from_filename, parse_accepted_date
from delivery_recon.config import DEFAULT_SETTINGS, EngineSettings
from delivery_recon.discovery import discover_files
from delivery_recon.extractor import extract_file
from delivery_recon.logging_setup import get_logger
from delivery_recon.models import (
    ExtractionError,
    FileBatch,
    ReconciliationResult,
    ScanResult,
    ValidationIssue,
)

logger = get_logger(__name__)

OrderKey = tuple[str, str]

MISSING_ROOT_MESSAGE = "input directory missing"


def collect_batch(path: "str | Path", customer_type: str, settings: EngineSettings = DEFAULT_SETTINGS) -> FileBatch:
    path = str(path)
    try:
        records = extract_file(path, customer_type, settings)
    except ExtractionError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return FileBatch(path, customer_type, failure=str(exc))
    except Exception as exc:
        logger.warning("Extraction crashed for %s", path, exc_info=True)
        return FileBatch(path, customer_type, failure=f"{type(exc).__name__}: {exc}")
    return FileBatch(path, customer_type, tuple(records))


def collect_batches(
    files: Iterable[tuple["str | Path", str]],
    settings: EngineSettings = DEFAULT_SETTINGS,
    workers: int | None = None,
) -> list[FileBatch]:
    """Extract every (path, customer_type) pair; the result keeps input order."""
    jobs = [(str(path), customer_type) for path, customer_type in files]
    workers = settings.workers if workers is None else workers
    if workers <= 1 or len(jobs) <= 1:
        return [collect_batch(path, customer_type, settings) for path, customer_type in jobs]

    with ThreadPoolExecutor(max_workers=min(workers, len(jobs))) as pool:
        return list(pool.map(lambda job: collect_batch(job[0], job[1], settings), jobs))


def check_batch(
    batch: FileBatch,
    seen_orders: dict[OrderKey, str],
) -> tuple[list[ValidationIssue], list[ValidationIssue]]:
    """Validate one non-empty batch.

    ``seen_orders`` maps (customer, delivery order number) to the first file
    that used it; it is updated in place as the reduction proceeds.
    """
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    filename_date = date_from_filename(Path(batch.path).name)

    for record in batch.records:
        content_date = parse_accepted_date(record.date)
        if content_date is None:
            errors.append(issues.invalid_date(batch.path, record.date))
        elif filename_date is not None and filename_date != content_date:
            warnings.append(issues.date_mismatch(batch.path, filename_date.isoformat(), content_date.isoformat()))

        if not record.delivery_order_no:
            continue
        key = (record.customer, record.delivery_order_no)
        first_file = seen_orders.get(key)
        if first_file is None:
            seen_orders[key] = batch.path
        elif first_file != batch.path:
            warnings.append(issues.duplicate_order_no(batch.path, record.customer, record.delivery_order_no, first_file))

    return errors, warnings


def reconcile(batches: Iterable[FileBatch]) -> ReconciliationResult:
    """Partition batches into accepted records, errors and warnings. Never raises."""
    accepted = []
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    seen_orders: dict[OrderKey, str] = {}

    for batch in batches:
        if batch.failed:
            errors.append(issues.parse_failed(batch.path, batch.failure))
            continue
        if not batch.records:
            warnings.append(issues.empty_file(batch.path))
            continue

        file_errors, file_warnings = check_batch(batch, seen_orders)
        errors.extend(file_errors)
        warnings.extend(file_warnings)
        if file_errors:
            logger.info("Rejected %s: %d record(s) failed validation", batch.path, len(file_errors))
            continue
        accepted.extend(batch.records)

    return ReconciliationResult(
        accepted=accepted,
        errors=issues.dedupe_issues(errors),
        warnings=sorted(issues.dedupe_issues(warnings), key=lambda issue: issue.key),
    )


def validate_files(
    files: Sequence[tuple["str | Path", str]],
    settings: EngineSettings = DEFAULT_SETTINGS,
    workers: int | None = None,
) -> ReconciliationResult:
    return reconcile(collect_batches(files, settings, workers))


def build_scan_result(total_files: int, result: ReconciliationResult) -> ScanResult:
    if total_files == 0:
        return ScanResult(success=True, message="no spreadsheet files found")

    error_files = {issue.file for issue in result.errors}
    if error_files:
        message = f"{len(error_files)} file(s) have problems"
    elif result.warnings:
        message = f"validation passed with {len(result.warnings)} warning(s)"
    else:
        message = "all files passed validation"

    return ScanResult(
        success=not result.errors,
        message=message,
        total_files=total_files,
        valid_files=len({record.source_file for record in result.accepted}),
        errors=list(result.errors),
        warnings=list(result.warnings),
        items=list(result.accepted),
    )


def scan(
    files: Sequence[tuple["str | Path", str]],
    settings: EngineSettings = DEFAULT_SETTINGS,
    workers: int | None = None,
) -> ScanResult:
    return build_scan_result(len(files), validate_files(files, settings, workers))


def scan_root(
    root: "str | Path",
    settings: EngineSettings = DEFAULT_SETTINGS,
    workers: int | None = None,
) -> ScanResult:
    """Discover the slips under ``root`` and scan them.

    A missing root is reported as a failed ScanResult rather than raised.
    """
    root = Path(root)
    if not root.is_dir():
        logger.warning("Input directory missing: %s", root)
        return ScanResult(success=False, message=MISSING_ROOT_MESSAGE)
    return scan(discover_files(root), settings, workers)
