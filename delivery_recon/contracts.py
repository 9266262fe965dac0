"""Shared versioned contracts for delivery-recon JSON outputs."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from delivery_recon import __version__ as TOOL_VERSION

CONTRACT_VERSIONS = {
    "delivery_recon.scan": "1.0.0",
    "delivery_recon.summary": "1.0.0",
    "delivery_recon.groups": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    command: str,
    input_path: Path,
    status: str = "ok",
    output_path: Path | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": "delivery-recon",
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_root": str(input_path),
        "output_file": str(output_path) if output_path else None,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }


def wrap_payload(name: str, body: dict[str, Any], run_summary: dict[str, Any]) -> dict[str, Any]:
    """Attach the contract header, tool version and run summary to a payload body."""
    contract = build_contract(name)
    payload = {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
        "run_summary": run_summary,
    }
    payload.update(body)
    return payload
