"""
Fix rules applied to the DataModelSchema tree.

Rules run in a fixed order and each one is idempotent: a second pass over
already-fixed input changes nothing and counts zero. The base set (mode
conversion and default mode) applies to every template; the extended set
adds the defect fixes for the one known-broken template, driven by a
DefectCatalog.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from typing import Callable

from .config import DefectCatalog
from .schema import Model, decode_schema, encode_schema


DIRECT_QUERY = "directQuery"
IMPORT = "import"
ROW_NUMBER = "rowNumber"


@dataclass
class SchemaCounts:
    nullable_columns: int = 0
    redundant_columns_removed: int = 0
    cardinalities_removed: int = 0
    direct_query_partitions: int = 0
    default_mode_set: int = 0

    @property
    def changed(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))


def relax_nullability(model: Model, catalog: DefectCatalog) -> int:
    changed = 0
    for table in model.tables:
        for column in table.columns:
            if column.type == ROW_NUMBER:
                continue
            if column.is_nullable is False:
                column.is_nullable = True
                changed += 1
    return changed


def remove_redundant_columns(model: Model, catalog: DefectCatalog) -> int:
    removed = 0
    for defect in catalog.redundant_columns:
        for table in model.tables:
            if table.name != defect.table:
                continue
            kept = [c for c in table.columns if c.name != defect.column]
            removed += len(table.columns) - len(kept)
            table.columns = kept
    return removed


def drop_defective_cardinality(model: Model, catalog: DefectCatalog) -> int:
    removed = 0
    targets = {(d.from_table, d.from_column) for d in catalog.cardinality_fixes}
    for rel in model.relationships:
        if (rel.from_table, rel.from_column) not in targets:
            continue
        if rel.from_cardinality is not None:
            rel.from_cardinality = None
            removed += 1
        elif "fromCardinality" in rel.extra:
            # Explicit null.
            del rel.extra["fromCardinality"]
            removed += 1
    return removed


def convert_direct_query(model: Model, catalog: DefectCatalog) -> int:
    converted = 0
    for table in model.tables:
        for partition in table.partitions:
            if partition.mode == DIRECT_QUERY:
                partition.mode = IMPORT
                converted += 1
    return converted


def set_default_mode(model: Model, catalog: DefectCatalog) -> int:
    if model.default_mode == IMPORT:
        return 0
    model.default_mode = IMPORT
    return 1


@dataclass(frozen=True)
class Rule:
    name: str
    label: str
    counter: str
    apply: Callable[[Model, DefectCatalog], int]


NULLABILITY = Rule("nullability", "Nullable columns changed", "nullable_columns", relax_nullability)
REDUNDANT_COLUMN = Rule(
    "redundant-column", "Redundant columns removed", "redundant_columns_removed", remove_redundant_columns
)
CARDINALITY = Rule("cardinality", "Cardinalities removed", "cardinalities_removed", drop_defective_cardinality)
MODE = Rule("mode", "DirectQuery partitions converted", "direct_query_partitions", convert_direct_query)
DEFAULT_MODE = Rule("default-mode", "Default mode set to import", "default_mode_set", set_default_mode)


class RuleSet(enum.Enum):
    BASE = "base"
    EXTENDED = "extended"

    @property
    def rules(self) -> tuple[Rule, ...]:
        if self is RuleSet.EXTENDED:
            return (NULLABILITY, REDUNDANT_COLUMN, CARDINALITY, MODE, DEFAULT_MODE)
        return (MODE, DEFAULT_MODE)


def apply_rules(model: Model, rule_set: RuleSet, catalog: DefectCatalog) -> SchemaCounts:
    counts = SchemaCounts()
    for rule in rule_set.rules:
        setattr(counts, rule.counter, rule.apply(model, catalog))
    return counts


def transform_schema(raw: bytes, rule_set: RuleSet, catalog: DefectCatalog) -> tuple[bytes, SchemaCounts]:
    """
    Decode, fix and re-encode DataModelSchema bytes.

    When no rule changes anything the input bytes are returned as-is, so an
    already-fixed container keeps its schema entry byte-for-byte.
    """
    doc = decode_schema(raw)
    counts = apply_rules(doc.model, rule_set, catalog)
    if not counts.changed:
        return raw, counts
    return encode_schema(doc), counts
