"""Versioned contracts stamped on every payload convo-ingest hands to other services."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from convo_ingest import __version__ as TOOL_VERSION

CONTRACT_VERSIONS = {
    "convo_ingest.process_result": "1.0.0",
    "convo_ingest.validation": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    step: str,
    input_name: str | None = None,
    status: str = "ok",
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": "convo-ingest",
        "tool_version": TOOL_VERSION,
        "step": step,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_file": input_name,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }
