#!/usr/bin/env python3
"""
Command line entry point.

  pbit-fixer fix [--extended] [--dry-run] [--no-backup] [--defects FILE] PATTERN...
  pbit-fixer inspect PATH...
"""

from __future__ import annotations

import argparse
import json
from collections import Counter
from pathlib import Path

from .config import load_catalog
from .container import MASHUP_ENTRY, SCHEMA_ENTRY, read_entries
from .engine import expand_inputs, fix_containers
from .errors import ConfigError, FixerError
from .mashup import direct_query_items
from .report import ConsoleReporter
from .rules import RuleSet
from .schema import decode_schema


def cmd_fix(args: argparse.Namespace) -> int:
    try:
        catalog = load_catalog(args.defects)
    except ConfigError as e:
        print(f"Error: {e}")
        return 2

    paths = expand_inputs(args.inputs)
    if not paths:
        print("Error: no containers matched the given patterns")
        return 2
    print(f"Found {len(paths)} container(s).")

    rule_set = RuleSet.EXTENDED if args.extended else RuleSet.BASE
    reports = fix_containers(
        paths,
        rule_set,
        catalog=catalog,
        dry_run=args.dry_run,
        backup=not args.no_backup,
        reporter=ConsoleReporter(),
    )

    failed = [r for r in reports if not r.ok]
    print(f"Done: {len(reports) - len(failed)} fixed, {len(failed)} failed.")
    if args.json:
        args.json.parent.mkdir(parents=True, exist_ok=True)
        payload = {"reports": [r.to_dict() for r in reports]}
        args.json.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        print(f"Wrote: {args.json}")
    return 1 if failed else 0


def inspect_container(path: Path) -> dict:
    entries = read_entries(path, [SCHEMA_ENTRY, MASHUP_ENTRY])
    info: dict = {"container": str(path)}

    schema_raw = entries[SCHEMA_ENTRY]
    if schema_raw is None:
        info["schema"] = None
    else:
        model = decode_schema(schema_raw).model
        modes = Counter(p.mode for t in model.tables for p in t.partitions)
        info["schema"] = {
            "tables": len(model.tables),
            "relationships": len(model.relationships),
            "default_mode": model.default_mode,
            "partition_modes": dict(sorted((str(k), v) for k, v in modes.items())),
        }

    mashup_raw = entries[MASHUP_ENTRY]
    if mashup_raw is None:
        info["mashup"] = None
    else:
        try:
            items = direct_query_items(mashup_raw)
        except ValueError as e:
            info["mashup"] = {"bytes": len(mashup_raw), "error": str(e)}
        else:
            info["mashup"] = {
                "bytes": len(mashup_raw),
                "direct_query_items": [i.path for i in items if i.is_direct_query],
                "import_items": [i.path for i in items if not i.is_direct_query],
            }
    return info


def cmd_inspect(args: argparse.Namespace) -> int:
    paths = expand_inputs(args.inputs)
    if not paths:
        print("Error: no containers matched the given patterns")
        return 2
    status = 0
    for path in paths:
        try:
            info = inspect_container(path)
        except FixerError as e:
            print(f"Error: {e}")
            status = 1
            continue
        print(json.dumps(info, indent=2))
    return status


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pbit-fixer",
        description="Convert Power BI templates from DirectQuery/composite to import mode.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    fix = sub.add_parser("fix", help="Patch containers in place.")
    fix.add_argument("inputs", nargs="+", help="Container paths or glob patterns (e.g. 'reports/*.pbit').")
    fix.add_argument(
        "--extended",
        action="store_true",
        help="Also apply the defect fixes (nullability, redundant column, cardinality); requires DataMashup.",
    )
    fix.add_argument("--dry-run", action="store_true", help="Report what would change without writing.")
    fix.add_argument("--no-backup", action="store_true", help="Do not create a .bak copy before writing.")
    fix.add_argument("--defects", type=Path, default=None, help="Defect catalog YAML (default: packaged catalog).")
    fix.add_argument("--json", type=Path, default=None, help="Optional path to write the reports as JSON.")
    fix.set_defaults(func=cmd_fix)

    insp = sub.add_parser("inspect", help="Show partition modes and DirectQuery flags.")
    insp.add_argument("inputs", nargs="+", help="Container paths or glob patterns.")
    insp.set_defaults(func=cmd_inspect)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
