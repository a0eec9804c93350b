"""
Orchestration: read both entries, transform them, write them back together.

One container is processed end-to-end before the next. Read and transform
failures are raised before the write step, so a container is either left
as it was or receives both rewritten entries in one update session.
"""

from __future__ import annotations

import glob
import re
import shutil
import zipfile
from pathlib import Path
from typing import Iterable

from .config import DefectCatalog, load_catalog
from .container import MASHUP_ENTRY, SCHEMA_ENTRY, read_entries, write_entries
from .errors import FixerError, MissingRequiredEntry
from .flags import DIRECT_QUERY_FLAG, FlagPatch
from .mashup import framing
from .report import FixReport, NullReporter, Reporter
from .rules import RuleSet, transform_schema


BACKUP_SUFFIX = ".bak"
_GLOB_CHARS = re.compile(r"[*?[]")


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def make_backup(path: Path) -> Path:
    """Copy the container next to itself; an existing backup is never overwritten."""
    target = backup_path(path)
    if not target.exists():
        shutil.copy2(path, target)
    return target


def fix_container(
    path: Path,
    rule_set: RuleSet = RuleSet.BASE,
    *,
    catalog: DefectCatalog | None = None,
    flag_patch: FlagPatch = DIRECT_QUERY_FLAG,
    dry_run: bool = False,
    backup: bool = False,
    reporter: Reporter | None = None,
) -> FixReport:
    """
    Patch one container in place and return its report.

    Raises MissingRequiredEntry when DataModelSchema is absent (or DataMashup
    under the extended rule set), MalformedDocument when the schema does not
    parse, and EntryNotFoundOnWrite when an entry vanished before writing.
    """
    path = Path(path)
    reporter = reporter or NullReporter()
    if catalog is None:
        catalog = load_catalog()

    reporter.container_started(path)
    report = FixReport(container=path, rule_set=rule_set, dry_run=dry_run)

    entries = read_entries(path, [SCHEMA_ENTRY, MASHUP_ENTRY])
    schema_raw = entries[SCHEMA_ENTRY]
    mashup_raw = entries[MASHUP_ENTRY]
    if schema_raw is None:
        raise MissingRequiredEntry(SCHEMA_ENTRY, path)
    if mashup_raw is None:
        if rule_set is RuleSet.EXTENDED:
            raise MissingRequiredEntry(MASHUP_ENTRY, path)
        report.mashup_present = False
        reporter.warning(path, f"{MASHUP_ENTRY} not found, skipping DirectQuery flag fix")

    try:
        new_schema, report.schema = transform_schema(schema_raw, rule_set, catalog)
    except FixerError as e:
        e.container = path
        raise

    new_mashup, report.flags_flipped = flag_patch.apply(mashup_raw)
    if mashup_raw is not None and len(new_mashup) != len(mashup_raw):
        raise FixerError(f"{MASHUP_ENTRY} length changed during flag patch", path)
    if framing(mashup_raw) != framing(new_mashup):
        raise FixerError(f"{MASHUP_ENTRY} section framing changed during flag patch", path)

    for label, count in report.counters():
        reporter.rule_applied(path, label, count)

    staged: dict[str, bytes] = {}
    if new_schema != schema_raw:
        staged[SCHEMA_ENTRY] = new_schema
    if mashup_raw is not None and new_mashup != mashup_raw:
        staged[MASHUP_ENTRY] = new_mashup

    if staged and not dry_run:
        if backup:
            report.backup = make_backup(path)
        write_entries(path, staged)
        report.entries_written = list(staged)

    reporter.container_finished(report)
    return report


def expand_inputs(patterns: Iterable[str]) -> list[Path]:
    """Resolve glob patterns to container paths; a literal path is kept even when missing."""
    out: list[Path] = []
    seen: set[Path] = set()
    for pattern in patterns:
        matches = sorted(glob.glob(pattern)) if _GLOB_CHARS.search(pattern) else [pattern]
        for match in matches:
            p = Path(match)
            if p in seen:
                continue
            seen.add(p)
            out.append(p)
    return out


def fix_containers(
    paths: Iterable[Path],
    rule_set: RuleSet = RuleSet.BASE,
    *,
    catalog: DefectCatalog | None = None,
    flag_patch: FlagPatch = DIRECT_QUERY_FLAG,
    dry_run: bool = False,
    backup: bool = False,
    reporter: Reporter | None = None,
) -> list[FixReport]:
    """Fix each container in turn; a failure is reported and the batch continues."""
    reporter = reporter or NullReporter()
    if catalog is None:
        catalog = load_catalog()

    reports: list[FixReport] = []
    for path in paths:
        path = Path(path)
        try:
            report = fix_container(
                path,
                rule_set,
                catalog=catalog,
                flag_patch=flag_patch,
                dry_run=dry_run,
                backup=backup,
                reporter=reporter,
            )
        except (FixerError, OSError, zipfile.BadZipFile) as e:
            reporter.container_failed(path, e)
            report = FixReport(container=path, rule_set=rule_set, dry_run=dry_run, error=str(e))
        reports.append(report)
    return reports
