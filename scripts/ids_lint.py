#!/usr/bin/env python3
"""Check an IDS source file for lexical, syntax and consistency errors.

Nothing is allocated. Each problem line or description is listed with its
line number; ``--normalize`` also prints every description re-serialized
in canonical form (useful to spot spelling variants that will not dedup).

Usage:
    python3 scripts/ids_lint.py --ids data/ids.txt
    python3 scripts/ids_lint.py --ids data/ids.txt --json --fail-on-issues
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import orjson

from ids_repertoire.ids_parser import serialize_ids
from ids_repertoire.ids_source import IDSReadResult, read_ids_file


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def lint_payload(result: IDSReadResult, *, normalize: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "total_lines": result.total_lines,
        "characters": len(result.characters),
        "total_descriptions": result.total_descriptions,
        "parsed_descriptions": result.parsed_descriptions,
        "issues": [issue.to_dict() for issue in result.issues],
    }
    if normalize:
        rows: list[dict[str, Any]] = []
        for character in result.characters:
            for desc in character.descriptions:
                canonical = serialize_ids(desc.tree)
                rows.append({
                    "line": character.line_number,
                    "char": character.char,
                    "description": desc.text,
                    "canonical": canonical,
                    "changed": canonical != desc.text,
                })
        payload["normalized"] = rows
    return payload


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--ids", type=Path, required=True, help="IDS source file")
    parser.add_argument("--json", action="store_true", help="Emit JSON payload to stdout")
    parser.add_argument(
        "--normalize",
        action="store_true",
        help="Include canonical re-serialization of every description",
    )
    parser.add_argument(
        "--fail-on-issues",
        action="store_true",
        help="Exit non-zero when any line or description is skipped",
    )
    args = parser.parse_args(argv)

    if not args.ids.exists():
        print(f"ERROR: IDS file not found: {args.ids}", file=sys.stderr)
        return 2

    result = read_ids_file(args.ids)
    payload = lint_payload(result, normalize=args.normalize)

    if args.json:
        dump_json(payload)
    else:
        for issue in payload["issues"]:
            print(f"{args.ids}:{issue['line']}: [{issue['kind']}] {issue['message']}")
        print(
            f"{payload['parsed_descriptions']}/{payload['total_descriptions']} descriptions "
            f"parsed across {payload['total_lines']} lines",
            file=sys.stderr,
        )

    if args.fail_on_issues and result.issues:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
