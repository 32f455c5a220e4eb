"""Deduplicate a train delay export in place.

One record is kept per train per day: records sharing a `date` and a
`<train_number>_<route>` key collapse to the one with the latest timestamp.
The original file is backed up first, a deduplicated copy is written beside
it, and then the original is overwritten with the deduplicated export.

Run with no arguments to use the configured data file:

    python -m rail_core.dedup
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from rail_core.config import configure_logging, get_settings
from rail_core.data import DataLoadError, normalize_records, read_export
from rail_core.statistics import calculate_statistics

logger = logging.getLogger(__name__)


def deduplicate_records(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not records:
        return []
    keys = pd.DataFrame(
        {
            "date": [str(r.get("date", "")) for r in records],
            "train_key": [f"{r.get('train_number')}_{r.get('route')}" for r in records],
            "timestamp": [str(r.get("timestamp", "")) for r in records],
        }
    )
    # Stable descending sort keeps the first-seen record on timestamp ties.
    latest = keys.sort_values("timestamp", ascending=False, kind="mergesort").drop_duplicates(
        subset=["date", "train_key"], keep="first"
    )
    logger.info("Grouped %d records into %d train-days", len(records), len(latest))
    return [records[i] for i in latest.index]


def _duplicate_percentage(original: int, kept: int) -> str:
    if original == 0:
        return "0.00"
    return f"{(original - kept) / original * 100:.2f}"


def build_deduplicated_export(data: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    stamp = now.isoformat().replace("+00:00", "Z")
    records = [r for r in data.get("records") or [] if isinstance(r, dict)]
    deduplicated = deduplicate_records(records)

    # Statistics count only rows that survive normalization.
    frame, dropped = normalize_records(pd.DataFrame.from_records(deduplicated))
    if dropped:
        logger.warning("%d deduplicated records are excluded from statistics", dropped)
    original_stats = data.get("statistics")
    statistics = calculate_statistics(frame, original_stats if isinstance(original_stats, dict) else None)

    original_meta = data.get("metadata")
    metadata = dict(original_meta) if isinstance(original_meta, dict) else {}
    metadata.update(
        {
            "generated_at": stamp,
            "deduplicated": True,
            "deduplication_date": stamp,
            "original_record_count": len(records),
            "deduplicated_record_count": len(deduplicated),
            "duplicate_percentage": _duplicate_percentage(len(records), len(deduplicated)),
        }
    )
    return {"metadata": metadata, "statistics": statistics, "records": deduplicated}


def _write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def run_deduplication(input_path: Path, output_path: Path, backup_path: Path) -> Dict[str, Any]:
    logger.info("Reading %s", input_path)
    try:
        raw = input_path.read_bytes()
    except OSError as exc:
        raise DataLoadError(f"Failed to load data: {exc}") from exc
    data = read_export(input_path)
    logger.info("Loaded %d records", len(data["records"]))

    backup_path.write_bytes(raw)
    logger.info("Backup saved to %s", backup_path.name)

    result = build_deduplicated_export(data)
    _write_json(output_path, result)
    _write_json(input_path, result)

    meta = result["metadata"]
    return {
        "original_records": meta["original_record_count"],
        "deduplicated_records": meta["deduplicated_record_count"],
        "duplicates_removed": meta["original_record_count"] - meta["deduplicated_record_count"],
        "duplicate_percentage": meta["duplicate_percentage"],
        "unique_trains": result["statistics"]["unique_trains"],
        "unique_routes": result["statistics"]["unique_routes"],
        "backup_file": str(backup_path),
        "output_file": str(output_path),
        "input_file": str(input_path),
    }


def create_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Keep the latest record per train per day in a delay export.")
    parser.add_argument("--input", type=Path, default=settings.data_file, help="Export to deduplicate (overwritten).")
    parser.add_argument("--output", type=Path, default=settings.dedup_output_file, help="Deduplicated copy.")
    parser.add_argument("--backup", type=Path, default=settings.dedup_backup_file, help="Backup of the original file.")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s).")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = create_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        summary = run_deduplication(args.input, args.output, args.backup)
    except DataLoadError as exc:
        logger.error("Error during deduplication: %s", exc.message)
        return 1
    except OSError as exc:
        logger.error("Error during deduplication: %s", exc)
        return 1

    logger.info(
        "Deduplication complete: %d -> %d records (%d duplicates, %s%%), %d trains, %d routes",
        summary["original_records"],
        summary["deduplicated_records"],
        summary["duplicates_removed"],
        summary["duplicate_percentage"],
        summary["unique_trains"],
        summary["unique_routes"],
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
