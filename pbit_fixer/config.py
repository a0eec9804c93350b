"""Loading of the defect catalog consumed by the extended rule set."""

from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError


DEFAULT_CATALOG = "defects.yaml"


@dataclass(frozen=True)
class RedundantColumn:
    table: str
    column: str


@dataclass(frozen=True)
class CardinalityFix:
    from_table: str
    from_column: str


@dataclass(frozen=True)
class DefectCatalog:
    redundant_columns: tuple[RedundantColumn, ...] = ()
    cardinality_fixes: tuple[CardinalityFix, ...] = ()


def _require_str(item: dict[str, Any], key: str, where: str) -> str:
    value = item.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{where}.{key} must be a non-empty string")
    return value.strip()


def _entries(data: dict[str, Any], key: str, source: str) -> list[dict[str, Any]]:
    items = data.get(key, [])
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ConfigError(f"{key} must be a list in {source}")
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise ConfigError(f"{key}[{i}] must be a mapping in {source}")
    return items


def parse_catalog(text: str, source: str = "<string>") -> DefectCatalog:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing defect catalog {source}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected YAML mapping at {source}, got {type(data).__name__}")

    try:
        version = int(data.get("version", 0) or 0)
    except (TypeError, ValueError):
        version = 0
    if version != 1:
        raise ConfigError(f"Unsupported defect catalog version {version} in {source}")

    redundant = tuple(
        RedundantColumn(
            table=_require_str(item, "table", f"redundant_columns[{i}]"),
            column=_require_str(item, "column", f"redundant_columns[{i}]"),
        )
        for i, item in enumerate(_entries(data, "redundant_columns", source))
    )
    cardinality = tuple(
        CardinalityFix(
            from_table=_require_str(item, "from_table", f"cardinality_fixes[{i}]"),
            from_column=_require_str(item, "from_column", f"cardinality_fixes[{i}]"),
        )
        for i, item in enumerate(_entries(data, "cardinality_fixes", source))
    )
    return DefectCatalog(redundant_columns=redundant, cardinality_fixes=cardinality)


def load_catalog(path: Path | None = None) -> DefectCatalog:
    """Load a catalog from ``path``, or the packaged default when omitted."""
    if path is None:
        text = resources.files(__package__).joinpath(DEFAULT_CATALOG).read_text(encoding="utf-8")
        return parse_catalog(text, DEFAULT_CATALOG)
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Defect catalog not found at {path}")
    return parse_catalog(path.read_text(encoding="utf-8"), str(path))
