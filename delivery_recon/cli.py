from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from delivery_recon import __version__ as TOOL_VERSION
from delivery_recon.aggregate import format_year_month, group_by_customer_month, summarize
from delivery_recon.config import EngineSettings, settings_from_env
from delivery_recon.contracts import build_run_summary, wrap_payload
from delivery_recon.discovery import discover_files
from delivery_recon.export import EXPORT_FORMATS, write_export
from delivery_recon.issues import ISSUE_DEFINITIONS
from delivery_recon.logging_setup import configure_logging
from delivery_recon.models import ReconciliationResult, ScanResult
from delivery_recon.reconcile import scan_root, validate_files

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_SCAN_WARNINGS = 3
EXIT_SCAN_ERRORS = 5

EXPORT_FILENAME = "delivery-recon-export.xlsx"


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class DeliveryReconArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def timestamp_token() -> str:
    override = os.environ.get("DELIVERY_RECON_OUTPUT_STAMP")
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(root: Path) -> Path:
    return Path.cwd() / "delivery-recon-output" / f"{root.name or 'root'}-{timestamp_token()}"


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json_dumps(payload), encoding="utf-8")


def remove_generated_at(value: Any) -> Any:
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if key == "generated_at":
                result[key] = "1970-01-01T00:00:00Z"
            else:
                result[key] = remove_generated_at(item)
        return result
    if isinstance(value, list):
        return [remove_generated_at(item) for item in value]
    return value


def setup_logging(args: argparse.Namespace) -> None:
    if getattr(args, "verbose", False):
        configure_logging(logging.DEBUG)
    elif getattr(args, "quiet", False):
        configure_logging(logging.ERROR)
    else:
        configure_logging()


def resolve_settings(args: argparse.Namespace) -> EngineSettings:
    workers = getattr(args, "workers", None)
    if workers is not None and workers < 1:
        raise CliError("--workers must be >= 1", EXIT_COMMAND_ERROR)
    return settings_from_env().with_overrides(workers=workers)


def run_pipeline(args: argparse.Namespace) -> tuple[Path, int, ReconciliationResult]:
    root = Path(args.root)
    if not root.is_dir():
        raise CliError(f"Input directory not found: {root}", EXIT_COMMAND_ERROR)
    settings = resolve_settings(args)
    files = discover_files(root)
    return root, len(files), validate_files(files, settings)


def report_output_path(args: argparse.Namespace, default_name: str) -> Path | None:
    if args.output:
        return Path(args.output)
    if args.out_dir:
        return Path(args.out_dir) / default_name
    return None


def maybe_write_output(args: argparse.Namespace, output_path: Path | None, payload: dict[str, Any]) -> None:
    if output_path is None:
        return
    write_json(output_path, payload)
    emit_human(f"Report written: {output_path}", quiet=args.quiet)


def scan_exit_code(scan_result: ScanResult) -> int:
    if scan_result.errors:
        return EXIT_SCAN_ERRORS
    if not scan_result.success:
        return EXIT_COMMAND_ERROR
    if scan_result.warnings:
        return EXIT_SCAN_WARNINGS
    return EXIT_SUCCESS


# ══════════════════════════════════════════════════════════════════════════════
# TEXT RENDERERS
# ══════════════════════════════════════════════════════════════════════════════

def render_scan_text(payload: dict[str, Any]) -> str:
    lines = [
        "delivery-recon scan",
        f"Root: {payload['run_summary']['input_root']}",
        f"Result: {payload['message']}",
        f"Files: {payload['total_files']} (valid: {payload['valid_files']})",
        f"Accepted records: {payload['run_summary']['metrics']['accepted_records']}",
    ]
    if payload["errors"]:
        lines.append("Errors:")
        lines.extend(f"- {item['file']}: {item['message']}" for item in payload["errors"])
    if payload["warnings"]:
        lines.append("Warnings:")
        lines.extend(f"- {item['file']}: {item['message']}" for item in payload["warnings"])
    return "\n".join(lines) + "\n"


def render_summary_text(payload: dict[str, Any]) -> str:
    lines = ["delivery-recon summary", f"Rows: {len(payload['rows'])}"]
    for row in payload["rows"]:
        label = " ".join(part for part in (row["product_name"], row["spec"]) if part)
        lines.append(
            f"- {label} [{row['unit'] or '-'}]: qty {row['quantity']:g}, "
            f"amount {row['amount']:.2f}, avg {row['average_price']:.2f} ({row['customers'] or 'no customer'})"
        )
    return "\n".join(lines) + "\n"


def render_groups_text(payload: dict[str, Any]) -> str:
    lines = ["delivery-recon groups", f"Groups: {len(payload['groups'])}"]
    for group in payload["groups"]:
        lines.append(f"- {group['customer']} {group['title']}: {group['record_count']} record(s), amount {group['amount']:.2f}")
    skipped = payload["run_summary"]["metrics"].get("unnamed_customer_records", 0)
    if skipped:
        lines.append(f"Records without a customer name: {skipped}")
    return "\n".join(lines) + "\n"


# ══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ══════════════════════════════════════════════════════════════════════════════

def run_scan(args: argparse.Namespace) -> int:
    root = Path(args.root)
    scan_result = scan_root(root, resolve_settings(args))
    body = scan_result.to_dict()
    if not args.items:
        body.pop("items")
    output_path = report_output_path(args, "scan.json")
    run_summary = build_run_summary(
        command="scan",
        input_path=root,
        status="ok" if scan_result.success else "failed",
        output_path=output_path,
        metrics={
            "accepted_records": len(scan_result.items),
            "error_count": len(scan_result.errors),
            "warning_count": len(scan_result.warnings),
        },
        warnings=[f"{issue.file}: {issue.message}" for issue in scan_result.warnings],
    )
    payload = remove_generated_at(wrap_payload("delivery_recon.scan", body, run_summary))
    maybe_write_output(args, output_path, payload)
    if args.json:
        print(json_dumps(payload))
    else:
        emit_human(render_scan_text(payload).rstrip(), quiet=args.quiet)
    return scan_exit_code(scan_result)


def run_summary(args: argparse.Namespace) -> int:
    root, _, result = run_pipeline(args)
    rows = summarize(result.accepted)
    body = {"rows": [row.to_dict() for row in rows]}
    output_path = report_output_path(args, "summary.json")
    run_summary_block = build_run_summary(
        command="summary",
        input_path=root,
        output_path=output_path,
        metrics={
            "row_count": len(rows),
            "total_quantity": sum(row.quantity for row in rows),
            "total_amount": round(sum(row.amount for row in rows), 2),
            "rejected_files": len({issue.file for issue in result.errors}),
        },
    )
    payload = remove_generated_at(wrap_payload("delivery_recon.summary", body, run_summary_block))
    maybe_write_output(args, output_path, payload)
    if args.json:
        print(json_dumps(payload))
    else:
        emit_human(render_summary_text(payload).rstrip(), quiet=args.quiet)
    return EXIT_SUCCESS


def run_groups(args: argparse.Namespace) -> int:
    root, _, result = run_pipeline(args)
    grouped = group_by_customer_month(result.accepted)
    groups = []
    unnamed = 0
    for (customer, year_month), records in grouped.items():
        if not customer:
            unnamed += len(records)
            continue
        groups.append(
            {
                "customer": customer,
                "year_month": year_month,
                "title": format_year_month(year_month),
                "record_count": len(records),
                "amount": round(sum(record.amount for record in records), 2),
                "files": sorted({record.source_file for record in records}),
            }
        )
    groups.sort(key=lambda group: (group["customer"], group["year_month"]))
    output_path = report_output_path(args, "groups.json")
    run_summary_block = build_run_summary(
        command="groups",
        input_path=root,
        output_path=output_path,
        metrics={"group_count": len(groups), "unnamed_customer_records": unnamed},
    )
    payload = remove_generated_at(wrap_payload("delivery_recon.groups", {"groups": groups}, run_summary_block))
    maybe_write_output(args, output_path, payload)
    if args.json:
        print(json_dumps(payload))
    else:
        emit_human(render_groups_text(payload).rstrip(), quiet=args.quiet)
    return EXIT_SUCCESS


def run_export(args: argparse.Namespace) -> int:
    root, _, result = run_pipeline(args)
    output_path = report_output_path(args, EXPORT_FILENAME) or default_output_dir(root) / EXPORT_FILENAME
    if output_path.suffix.lower() not in EXPORT_FORMATS:
        raise CliError(
            f"Unsupported export format '{output_path.suffix or '[missing extension]'}'. "
            f"Supported: {', '.join(sorted(EXPORT_FORMATS))}",
            EXIT_COMMAND_ERROR,
        )
    manifest = write_export(
        output_path,
        result.accepted,
        summarize(result.accepted),
        [*result.errors, *result.warnings],
    )
    if args.json:
        print(json_dumps({"outputs": manifest, "accepted_records": len(result.accepted)}))
    else:
        for label, path in manifest.items():
            emit_human(f"Export {label}: {path}", quiet=args.quiet)
    return EXIT_SUCCESS


def run_explain(args: argparse.Namespace) -> int:
    rule = ISSUE_DEFINITIONS.get(args.issue_id)
    if rule is None:
        eprint(f"Unknown issue id: {args.issue_id}")
        return EXIT_COMMAND_ERROR
    payload = {
        "issue_id": args.issue_id,
        "severity": rule["severity"],
        "description": rule["description"],
        "evidence": rule["evidence"],
        "hint": rule["hint"],
    }
    if args.json:
        print(json_dumps(payload))
    else:
        print(
            "\n".join(
                [
                    f"Issue: {args.issue_id}",
                    f"Severity: {payload['severity']}",
                    f"What it means: {payload['description']}",
                    f"What triggers it: {payload['evidence']}",
                    f"How to fix it: {payload['hint']}",
                ]
            )
        )
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def add_pipeline_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("root", help="Folder of delivery slips (first-level sub-folders are customer types)")
    parser.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    parser.add_argument("--output", help="Explicit output path")
    parser.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    parser.add_argument("--workers", type=int, default=None, help="Threads for per-file extraction")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = DeliveryReconArgumentParser(
        prog="delivery-recon",
        description="Extract, validate and aggregate delivery-order slip spreadsheets.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Validate every slip and report errors and warnings.")
    add_pipeline_arguments(scan)
    scan.add_argument("--items", action="store_true", help="Include accepted records in the report")

    summary = subparsers.add_parser("summary", help="Summarise accepted records by product, spec and unit.")
    add_pipeline_arguments(summary)

    groups = subparsers.add_parser("groups", help="Group accepted records by customer and month.")
    add_pipeline_arguments(groups)

    export = subparsers.add_parser("export", help="Write records, summary and issues to .xlsx or .csv.")
    add_pipeline_arguments(export)

    explain = subparsers.add_parser("explain", help="Explain an issue id.")
    explain.add_argument("issue_id", help="Issue identifier")
    explain.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    subparsers.add_parser("version", help="Print version")
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        setup_logging(args)
        if args.command == "scan":
            return run_scan(args)
        if args.command == "summary":
            return run_summary(args)
        if args.command == "groups":
            return run_groups(args)
        if args.command == "export":
            return run_export(args)
        if args.command == "explain":
            return run_explain(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
