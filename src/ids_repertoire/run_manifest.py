"""Run-manifest utilities for allocation reproducibility and comparison."""
from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from ids_repertoire.io_utils import load_json, save_json
from ids_repertoire.pua_allocator import AllocationResult

MANIFEST_VERSION = "1.0"
MANIFEST_FILENAME = "run_manifest.json"


def utc_now_iso() -> str:
    """Return current UTC timestamp in ISO-8601 format."""
    return datetime.now(UTC).isoformat()


def generate_run_id(prefix: str = "pua_allocation") -> str:
    """Generate a compact run id suitable for artifact naming."""
    ts = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"{prefix}_{ts}_{uuid4().hex[:8]}"


def _hex_range(bounds: tuple[int, int]) -> dict[str, str]:
    start, end = bounds
    return {"start": f"U+{start:04X}", "end": f"U+{end:04X}"}


def build_manifest(
    *,
    run_id: str,
    result: AllocationResult,
    input_source: dict[str, Any],
    timings_sec: dict[str, float],
    notes: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the manifest payload for one allocation run.

    Ranges are half-open: ``end`` is the next free codepoint after the run.
    """
    report = result.report
    return {
        "manifest_version": MANIFEST_VERSION,
        "created_at": utc_now_iso(),
        "run_id": run_id,
        "input_source": input_source,
        "component_range": _hex_range(result.component_range),
        "compound_range": _hex_range(result.compound_range),
        "record_count": len(result.records),
        "timings_sec": timings_sec,
        "errors_count": len(report.issues),
        "stats": {k: v for k, v in report.to_dict().items() if k != "issues"},
        "notes": notes or {},
    }


def write_manifest(output_dir: Path, manifest: dict[str, Any]) -> tuple[Path, Path]:
    """Write canonical + run-id-specific manifest files into *output_dir*."""
    canonical = output_dir / MANIFEST_FILENAME
    versioned = output_dir / f"run_manifest_{manifest['run_id']}.json"
    save_json(manifest, canonical, pretty=True)
    save_json(manifest, versioned, pretty=True)
    return canonical, versioned


def load_manifest(path: Path) -> dict[str, Any]:
    """Load a manifest from JSON."""
    data = load_json(path)
    if not isinstance(data, dict):
        raise ValueError(f"Invalid manifest payload in {path}")
    return data


def compare_manifests(current: dict[str, Any], previous: dict[str, Any]) -> dict[str, Any]:
    """Compare two manifests. A re-run on unchanged input shows zero new records."""
    curr_stats = current.get("stats", {})
    prev_stats = previous.get("stats", {})
    curr_stats = curr_stats if isinstance(curr_stats, dict) else {}
    prev_stats = prev_stats if isinstance(prev_stats, dict) else {}

    keys = sorted(
        k for k in set(curr_stats) | set(prev_stats)
        if isinstance(curr_stats.get(k, 0), int) and isinstance(prev_stats.get(k, 0), int)
    )
    return {
        "current_run_id": current.get("run_id"),
        "previous_run_id": previous.get("run_id"),
        "stats_delta": {
            k: int(curr_stats.get(k, 0) or 0) - int(prev_stats.get(k, 0) or 0) for k in keys
        },
        "errors_count_delta": (
            int(current.get("errors_count", 0) or 0) - int(previous.get("errors_count", 0) or 0)
        ),
    }
