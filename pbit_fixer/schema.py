"""
DataModelSchema codec.

The entry is JSON text stored as UTF-16-LE without a byte-order mark. It is
decoded into a small typed tree covering the parts the fix rules touch
(tables, columns, partitions, relationships, defaultMode). Every record keeps
the keys it does not model in ``extra`` and remembers the original key order,
so re-encoding emits the same keys in the same order plus whatever a rule
added.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .errors import MalformedDocument


SCHEMA_ENCODING = "utf-16-le"
BOM = "\ufeff"


def _split(obj: dict[str, Any], known: dict[str, str]) -> tuple[dict[str, Any], dict[str, Any], list[str]]:
    """Partition a JSON object into modelled values (by attribute name) and the rest."""
    values: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in obj.items():
        # Explicit nulls ride along untouched so they round-trip as written.
        if key in known and value is not None:
            values[known[key]] = value
        else:
            extra[key] = value
    return values, extra, list(obj.keys())


def _join(record: Any, known: dict[str, str], converted: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}

    def value_of(key: str) -> Any:
        if key in converted:
            return converted[key]
        return getattr(record, known[key])

    for key in record.key_order:
        value = value_of(key) if key in known else None
        # An originally-null array stays null unless a rule filled it.
        if value is not None and not (value == [] and key in record.extra):
            out[key] = value
        elif key in record.extra:
            out[key] = record.extra[key]

    for key in known:
        if key in out:
            continue
        value = value_of(key)
        if value is None or value == []:
            continue
        out[key] = value

    for key, value in record.extra.items():
        if key not in out and key not in known:
            out[key] = value
    return out


def _expect_object(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedDocument(f"expected a JSON object at {where}, got {type(value).__name__}")
    return value


def _expect_objects(value: Any, where: str) -> list[dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedDocument(f"expected a JSON array at {where}, got {type(value).__name__}")
    return [_expect_object(item, f"{where}[{i}]") for i, item in enumerate(value)]


@dataclass
class Column:
    name: str | None = None
    type: str | None = None
    is_nullable: bool | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: list[str] = field(default_factory=list)

    KEYS = {"name": "name", "type": "type", "isNullable": "is_nullable"}

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "Column":
        values, extra, order = _split(obj, cls.KEYS)
        return cls(**values, extra=extra, key_order=order)

    def to_dict(self) -> dict[str, Any]:
        return _join(self, self.KEYS, {})


@dataclass
class Partition:
    mode: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: list[str] = field(default_factory=list)

    KEYS = {"mode": "mode"}

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "Partition":
        values, extra, order = _split(obj, cls.KEYS)
        return cls(**values, extra=extra, key_order=order)

    def to_dict(self) -> dict[str, Any]:
        return _join(self, self.KEYS, {})


@dataclass
class Relationship:
    from_table: str | None = None
    from_column: str | None = None
    from_cardinality: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: list[str] = field(default_factory=list)

    KEYS = {
        "fromTable": "from_table",
        "fromColumn": "from_column",
        "fromCardinality": "from_cardinality",
    }

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "Relationship":
        values, extra, order = _split(obj, cls.KEYS)
        return cls(**values, extra=extra, key_order=order)

    def to_dict(self) -> dict[str, Any]:
        return _join(self, self.KEYS, {})


@dataclass
class Table:
    name: str | None = None
    columns: list[Column] = field(default_factory=list)
    partitions: list[Partition] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: list[str] = field(default_factory=list)

    KEYS = {"name": "name", "columns": "columns", "partitions": "partitions"}

    @classmethod
    def from_dict(cls, obj: dict[str, Any], where: str = "table") -> "Table":
        values, extra, order = _split(obj, cls.KEYS)
        values["columns"] = [
            Column.from_dict(c) for c in _expect_objects(values.get("columns"), f"{where}.columns")
        ]
        values["partitions"] = [
            Partition.from_dict(p) for p in _expect_objects(values.get("partitions"), f"{where}.partitions")
        ]
        return cls(**values, extra=extra, key_order=order)

    def to_dict(self) -> dict[str, Any]:
        return _join(
            self,
            self.KEYS,
            {
                "columns": [c.to_dict() for c in self.columns],
                "partitions": [p.to_dict() for p in self.partitions],
            },
        )


@dataclass
class Model:
    tables: list[Table] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)
    default_mode: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: list[str] = field(default_factory=list)

    KEYS = {"defaultMode": "default_mode", "tables": "tables", "relationships": "relationships"}

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "Model":
        values, extra, order = _split(obj, cls.KEYS)
        values["tables"] = [
            Table.from_dict(t, f"model.tables[{i}]")
            for i, t in enumerate(_expect_objects(values.get("tables"), "model.tables"))
        ]
        values["relationships"] = [
            Relationship.from_dict(r)
            for r in _expect_objects(values.get("relationships"), "model.relationships")
        ]
        return cls(**values, extra=extra, key_order=order)

    def to_dict(self) -> dict[str, Any]:
        return _join(
            self,
            self.KEYS,
            {
                "tables": [t.to_dict() for t in self.tables],
                "relationships": [r.to_dict() for r in self.relationships],
            },
        )

    def table(self, name: str) -> Table | None:
        for table in self.tables:
            if table.name == name:
                return table
        return None


@dataclass
class SchemaDocument:
    model: Model
    extra: dict[str, Any] = field(default_factory=dict)
    key_order: list[str] = field(default_factory=list)

    KEYS = {"model": "model"}

    @classmethod
    def from_dict(cls, obj: Any) -> "SchemaDocument":
        obj = _expect_object(obj, "document root")
        if "model" not in obj:
            raise MalformedDocument("document root has no 'model' object")
        values, extra, order = _split(obj, cls.KEYS)
        if "model" not in values:
            raise MalformedDocument("'model' is null")
        model = Model.from_dict(_expect_object(values["model"], "model"))
        return cls(model=model, extra=extra, key_order=order)

    def to_dict(self) -> dict[str, Any]:
        return _join(self, self.KEYS, {"model": self.model.to_dict()})


def decode_schema(raw: bytes) -> SchemaDocument:
    try:
        text = raw.decode(SCHEMA_ENCODING)
    except UnicodeDecodeError as e:
        raise MalformedDocument(f"DataModelSchema is not UTF-16-LE text ({e})") from e
    if text.startswith(BOM):
        text = text[len(BOM):]
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedDocument(f"DataModelSchema is not valid JSON ({e})") from e
    except RecursionError as e:
        raise MalformedDocument("DataModelSchema nests too deeply to parse") from e
    return SchemaDocument.from_dict(data)


def encode_schema(doc: SchemaDocument) -> bytes:
    try:
        text = json.dumps(doc.to_dict(), indent=2, ensure_ascii=False)
    except RecursionError as e:
        raise MalformedDocument("DataModelSchema nests too deeply to encode") from e
    return text.encode(SCHEMA_ENCODING, errors="surrogatepass")
