import io
import json
import struct
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..container import MASHUP_ENTRY, SCHEMA_ENTRY
from ..mashup import MashupSections, assemble_sections
from ..schema import SCHEMA_ENCODING


# Entries every template carries besides the two the fixer rewrites.
DEFAULT_ENTRIES = {
    "Version": "1.28".encode(SCHEMA_ENCODING),
    "[Content_Types].xml": (
        b'<?xml version="1.0" encoding="utf-8"?>'
        b'<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
        b'<Default Extension="json" ContentType="" /></Types>'
    ),
    "DiagramLayout": json.dumps({"version": "1.1.0", "diagrams": []}).encode(SCHEMA_ENCODING),
    "Report/Layout": json.dumps({"id": 0, "sections": []}).encode(SCHEMA_ENCODING),
    "Settings": json.dumps({"Version": 4}).encode(SCHEMA_ENCODING),
    "Metadata": json.dumps({"Version": 5, "CreatedFrom": "Cloud"}).encode(SCHEMA_ENCODING),
    "Report/StaticResources/SharedResources/BaseThemes/CY24SU06.json": b'{"name":"CY24SU06"}',
    "SecurityBindings": b"\x01\x00\x00\x00\xd0\x8c\x9d\xdf\x01\x15\xd1\x11",
}


def _column(spec: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(spec, str):
        spec = {"name": spec}
    column: Dict[str, Any] = {}
    if "type" in spec:
        column["type"] = spec["type"]
    column["name"] = spec["name"]
    column["dataType"] = spec.get("dataType", "string")
    if spec.get("type") != "rowNumber":
        column["sourceColumn"] = spec.get("sourceColumn", spec["name"])
    if "isNullable" in spec:
        column["isNullable"] = spec["isNullable"]
    return column


def _partition(table_name: str, index: int, mode: str) -> Dict[str, Any]:
    return {
        "name": f"{table_name}-{index}",
        "mode": mode,
        "source": {
            "type": "m",
            "expression": [
                "let",
                '    Source = Sql.Database("cm-sql", "CM_PS1"),',
                f'    dbo_{table_name} = Source{{[Schema="dbo",Item="{table_name}"]}}[Data]',
                "in",
                f"    dbo_{table_name}",
            ],
        },
    }


def build_schema(
    tables: List[Dict[str, Any]],
    relationships: Optional[List[Dict[str, Any]]] = None,
    default_mode: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a DataModelSchema JSON document.

    Each table spec has a ``name``, ``columns`` (names or dicts with
    type/isNullable/dataType) and ``partitions`` (a list of mode strings).
    """
    model: Dict[str, Any] = {"culture": "en-US", "dataAccessOptions": {"legacyRedirects": True}}
    if default_mode is not None:
        model["defaultMode"] = default_mode
    model["tables"] = [
        {
            "name": t["name"],
            "lineageTag": f"tag-{t['name']}",
            "columns": [_column(c) for c in t.get("columns", [])],
            "partitions": [_partition(t["name"], i, m) for i, m in enumerate(t.get("partitions", []))],
            "annotations": [{"name": "PBI_ResultType", "value": "Table"}],
        }
        for t in tables
    ]
    model["relationships"] = [dict(r) for r in (relationships or [])]
    model["annotations"] = [{"name": "PBIDesktopVersion", "value": "2.128.751.0"}]
    return {"name": "SemanticModel", "compatibilityLevel": 1550, "model": model}


def encode_schema_json(doc: Dict[str, Any]) -> bytes:
    return json.dumps(doc, indent="\t", ensure_ascii=False).encode(SCHEMA_ENCODING)


def _format_entry_value(value):
    if isinstance(value, bool):
        return f"l{'1' if value else '0'}"
    return f"s{value}"


def _metadata_xml(items: List[Dict[str, Any]]) -> str:
    parts = [
        '<?xml version="1.0" encoding="utf-8"?>',
        '<LocalPackageMetadataFile xmlns:xsd="http://www.w3.org/2001/XMLSchema" '
        'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">',
        "<Items>",
        "<Item><ItemLocation><ItemType>AllFormulas</ItemType><ItemPath /></ItemLocation><StableEntries /></Item>",
    ]
    for item in items:
        parts.append("<Item>")
        parts.append("<ItemLocation>")
        parts.append("<ItemType>Formula</ItemType>")
        parts.append(f"<ItemPath>Section1/{item['path']}</ItemPath>")
        parts.append("</ItemLocation>")
        parts.append("<StableEntries>")
        entries = [("IsPrivate", False), ("IsDirectQuery", bool(item.get("direct_query", True)))]
        entries.append(("ResultType", "Table"))
        for entry_name, entry_value in entries:
            parts.append(f'<Entry Type="{entry_name}" Value="{_format_entry_value(entry_value)}" />')
        parts.append("</StableEntries>")
        parts.append("</Item>")
    parts.append("</Items></LocalPackageMetadataFile>")
    return "".join(parts)


def _package_parts(queries: List[Dict[str, Any]]) -> bytes:
    section = ["section Section1;", ""]
    for q in queries:
        section.append(f"shared {q['path']} = let Source = Sql.Database(\"cm-sql\", \"CM_PS1\") in Source;")
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as z:
        z.writestr("[Content_Types].xml", DEFAULT_ENTRIES["[Content_Types].xml"])
        z.writestr("Config/Package.xml", '<?xml version="1.0" encoding="utf-8"?><Package />')
        z.writestr("Formulas/Section1.m", "\n".join(section))
    return buffer.getvalue()


def build_mashup(queries: List[Dict[str, Any]], version: int = 0) -> bytes:
    """
    Build a DataMashup stream whose metadata lists one Formula item per query.

    Each query is ``{"path": name, "direct_query": bool}``.
    """
    xml_bytes = ("\ufeff" + _metadata_xml(queries)).encode("utf-8")
    metadata = struct.pack("<I", 0) + struct.pack("<I", len(xml_bytes)) + xml_bytes
    permissions = (
        '\ufeff<?xml version="1.0" encoding="utf-8"?><PermissionList>'
        "<CanEvaluateFuturePackages>false</CanEvaluateFuturePackages>"
        "<FirewallEnabled>true</FirewallEnabled></PermissionList>"
    ).encode("utf-8")
    return assemble_sections(
        MashupSections(
            version=version,
            package_parts=_package_parts(queries),
            permissions=permissions,
            metadata=metadata,
            bindings=b"",
        )
    )


def write_container(
    path: Path,
    schema: Optional[bytes],
    mashup: Optional[bytes],
    extra_entries: Optional[Dict[str, bytes]] = None,
) -> Path:
    entries = dict(DEFAULT_ENTRIES)
    entries.update(extra_entries or {})
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zout:
        for name in ("Version", "[Content_Types].xml"):
            zout.writestr(name, entries.pop(name))
        if mashup is not None:
            zout.writestr(MASHUP_ENTRY, mashup)
        for name in ("DiagramLayout", "Report/Layout", "Settings", "Metadata"):
            zout.writestr(name, entries.pop(name))
        if schema is not None:
            zout.writestr(SCHEMA_ENTRY, schema)
        for name, data in entries.items():
            zout.writestr(name, data)
    return path


class PbitGenerator:
    """
    Writes a template container from a manifest scenario.

    Args:
      tables: Table specs (see build_schema).
      relationships: Relationship objects copied verbatim.
      default_mode: Optional model defaultMode.
      queries: DataMashup queries; omitted means one DirectQuery query per table.
      datamashup: Set false to leave out the DataMashup entry.
      schema: Set false to leave out the DataModelSchema entry.
    """

    def __init__(self, args: Optional[Dict[str, Any]] = None):
        self.args = args or {}

    def generate(self, output_dir: Path, output_names: Union[str, List[str]]) -> List[Path]:
        if isinstance(output_names, str):
            output_names = [output_names]

        tables = self.args.get("tables") or []
        if not isinstance(tables, list):
            raise ValueError("pbit generator arg 'tables' must be a list")

        schema_bytes = None
        if self.args.get("schema", True):
            doc = build_schema(tables, self.args.get("relationships"), self.args.get("default_mode"))
            schema_bytes = encode_schema_json(doc)

        mashup_bytes = None
        if self.args.get("datamashup", True):
            queries = self.args.get("queries")
            if queries is None:
                queries = [{"path": t["name"], "direct_query": True} for t in tables]
            mashup_bytes = build_mashup(queries)

        written = []
        for name in output_names:
            target_path = (Path(output_dir) / name).resolve()
            written.append(write_container(target_path, schema_bytes, mashup_bytes))
        return written
