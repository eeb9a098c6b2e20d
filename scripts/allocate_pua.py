#!/usr/bin/env python3
"""Allocate PUA codepoints for an IDS source file.

Reads the current repertoire (JSON file or DuckDB store), parses every IDS
description, mints component and compound PUA characters for the shapes that
have no codepoint yet, and writes the new records.

Usage:
    python3 scripts/allocate_pua.py \
        --ids data/ids.txt \
        --repertoire data/repertoire.json \
        --output data/repertoire.new.json

    # Read from and persist into a DuckDB store:
    python3 scripts/allocate_pua.py \
        --ids data/ids.txt \
        --db data/repertoire.duckdb --persist

The store path falls back to $IDS_REPERTOIRE_DB when --db is omitted.
A JSON summary is printed to stdout; progress goes to stderr.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path

import orjson

from ids_repertoire.glyph_types import Character
from ids_repertoire.ids_source import read_ids_file
from ids_repertoire.io_utils import save_jsonl
from ids_repertoire.pua_allocator import AllocatorInvariantError, allocate_from_source
from ids_repertoire.repertoire_store import (
    RepertoireStore,
    load_repertoire_file,
    save_records_file,
)
from ids_repertoire.run_manifest import build_manifest, generate_run_id, write_manifest

log = logging.getLogger("allocate_pua")

DB_ENV_VAR = "IDS_REPERTOIRE_DB"


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Allocate PUA codepoints for IDS descriptions."
    )
    parser.add_argument("--ids", type=Path, required=True, help="IDS source file")
    parser.add_argument(
        "--repertoire",
        type=Path,
        default=None,
        help="Existing repertoire as a JSON list (API or storage-model shape)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help=f"Repertoire DuckDB store (default: ${DB_ENV_VAR})",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write new records to this JSON file",
    )
    parser.add_argument(
        "--storage-model",
        action="store_true",
        help="Write --output rows in storage-model shape (JSON text columns)",
    )
    parser.add_argument(
        "--persist",
        action="store_true",
        help="Insert the new records into the --db store in one transaction",
    )
    parser.add_argument(
        "--include-existing",
        action="store_true",
        help="Re-describe characters that already exist in the repertoire",
    )
    parser.add_argument(
        "--issues",
        type=Path,
        default=None,
        help="Write skipped lines/descriptions to this JSONL file",
    )
    parser.add_argument(
        "--manifest-dir",
        type=Path,
        default=None,
        help="Write run manifests into this directory",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    return parser


def _resolve_db(args: argparse.Namespace) -> Path | None:
    if args.db is not None:
        return args.db
    env_value = os.environ.get(DB_ENV_VAR, "").strip()
    return Path(env_value) if env_value else None


def _load_repertoire(args: argparse.Namespace, db_path: Path | None) -> list[Character]:
    if args.repertoire is not None:
        return load_repertoire_file(args.repertoire)
    if db_path is not None and db_path.exists():
        with RepertoireStore(db_path) as store:
            return store.load_characters()
    return []


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    if not args.ids.exists():
        print(f"ERROR: IDS file not found: {args.ids}", file=sys.stderr)
        return 1
    db_path = _resolve_db(args)
    if args.persist and db_path is None:
        print(f"ERROR: --persist needs --db or ${DB_ENV_VAR}", file=sys.stderr)
        return 1

    timings: dict[str, float] = {}
    t0 = time.perf_counter()
    repertoire = _load_repertoire(args, db_path)
    timings["load_repertoire"] = round(time.perf_counter() - t0, 3)
    log.info("Loaded %d existing characters", len(repertoire))

    t0 = time.perf_counter()
    read_result = read_ids_file(args.ids)
    timings["read_ids"] = round(time.perf_counter() - t0, 3)

    t0 = time.perf_counter()
    try:
        result = allocate_from_source(
            read_result,
            repertoire,
            skip_existing=not args.include_existing,
        )
    except AllocatorInvariantError as exc:
        print(f"ERROR: allocation aborted: {exc}", file=sys.stderr)
        return 1
    timings["allocate"] = round(time.perf_counter() - t0, 3)

    for issue in result.report.issues:
        log.warning("Line %d skipped (%s): %s", issue.line_number, issue.kind, issue.message)

    if args.output is not None:
        save_records_file(result.records, args.output, storage_model=args.storage_model)
        log.info("Wrote %d records to %s", len(result.records), args.output)
    if args.issues is not None:
        save_jsonl([issue.to_dict() for issue in result.report.issues], args.issues)

    persisted = 0
    if args.persist:
        assert db_path is not None
        with RepertoireStore(db_path, create_if_missing=True) as store:
            persisted = store.persist(result.records)

    summary = {
        "records": len(result.records),
        "persisted": persisted,
        **{k: v for k, v in result.report.to_dict().items() if k != "issues"},
    }
    if args.manifest_dir is not None:
        manifest = build_manifest(
            run_id=generate_run_id(),
            result=result,
            input_source={
                "ids": str(args.ids),
                "repertoire": str(args.repertoire) if args.repertoire else None,
                "db": str(db_path) if db_path else None,
            },
            timings_sec=timings,
        )
        canonical, _ = write_manifest(args.manifest_dir, manifest)
        summary["manifest"] = str(canonical)

    dump_json(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
