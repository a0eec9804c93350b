import json

import pytest

from pbit_fixer.errors import MalformedDocument
from pbit_fixer.schema import decode_schema, encode_schema


def _raw(doc) -> bytes:
    return json.dumps(doc).encode("utf-16-le")


SAMPLE = {
    "name": "SemanticModel",
    "compatibilityLevel": 1550,
    "model": {
        "culture": "en-US",
        "tables": [
            {
                "name": "Größe",
                "lineageTag": "abc",
                "columns": [
                    {"name": "Id", "dataType": "int64", "isNullable": False, "sourceColumn": "Id"},
                    {"type": "rowNumber", "name": "RowNumber", "isHidden": True},
                ],
                "partitions": [{"name": "p0", "mode": "directQuery", "source": {"type": "m", "expression": "x"}}],
                "measures": [{"name": "Total", "expression": "SUM(Id)"}],
            }
        ],
        "relationships": [
            {"name": "r1", "fromTable": "A", "fromColumn": "B", "fromCardinality": "one", "toTable": "C"}
        ],
        "annotations": [{"name": "PBIDesktopVersion", "value": "2.128"}],
    },
}


def test_decode_typed_view():
    doc = decode_schema(_raw(SAMPLE))
    table = doc.model.tables[0]
    assert table.name == "Größe"
    assert table.columns[0].is_nullable is False
    assert table.columns[1].type == "rowNumber"
    assert table.columns[1].is_nullable is None
    assert table.partitions[0].mode == "directQuery"
    assert doc.model.relationships[0].from_cardinality == "one"
    assert doc.model.default_mode is None
    assert doc.model.table("Größe") is table
    assert doc.model.table("missing") is None


def test_round_trip_keeps_keys_and_order():
    doc = decode_schema(_raw(SAMPLE))
    out = json.loads(encode_schema(doc).decode("utf-16-le"))
    assert out == SAMPLE
    assert list(out) == list(SAMPLE)
    assert list(out["model"]) == list(SAMPLE["model"])
    assert list(out["model"]["tables"][0]["columns"][0]) == ["name", "dataType", "isNullable", "sourceColumn"]


def test_encode_is_utf16le_without_bom():
    raw = encode_schema(decode_schema(_raw(SAMPLE)))
    assert not raw.startswith(b"\xff\xfe")
    assert not raw.startswith(b"\xfe\xff")
    assert raw[:2] == b"{\x00"
    assert "Größe".encode("utf-16-le") in raw


def test_decode_tolerates_bom():
    raw = b"\xff\xfe" + _raw(SAMPLE)
    doc = decode_schema(raw)
    assert doc.model.tables[0].name == "Größe"
    assert not encode_schema(doc).startswith(b"\xff\xfe")


def test_removed_optional_field_is_dropped_and_new_field_appended():
    doc = decode_schema(_raw(SAMPLE))
    doc.model.relationships[0].from_cardinality = None
    doc.model.default_mode = "import"
    out = json.loads(encode_schema(doc).decode("utf-16-le"))
    assert "fromCardinality" not in out["model"]["relationships"][0]
    assert list(out["model"]["relationships"][0]) == ["name", "fromTable", "fromColumn", "toTable"]
    assert out["model"]["defaultMode"] == "import"
    assert list(out["model"])[-1] == "defaultMode"


def test_explicit_nulls_round_trip():
    doc = {"model": {"defaultMode": None, "tables": None, "relationships": []}}
    out = json.loads(encode_schema(decode_schema(_raw(doc))).decode("utf-16-le"))
    assert out == doc


def test_null_default_mode_can_be_filled_in_place():
    doc = decode_schema(_raw({"model": {"defaultMode": None, "tables": []}}))
    doc.model.default_mode = "import"
    out = json.loads(encode_schema(doc).decode("utf-16-le"))
    assert list(out["model"].items()) == [("defaultMode", "import"), ("tables", [])]


@pytest.mark.parametrize(
    "raw",
    [
        b"{\x00\x22",  # odd length
        "not json".encode("utf-16-le"),
        json.dumps([1, 2]).encode("utf-16-le"),
        json.dumps({"name": "x"}).encode("utf-16-le"),
        json.dumps({"model": None}).encode("utf-16-le"),
        json.dumps({"model": {"tables": {"a": 1}}}).encode("utf-16-le"),
        json.dumps({"model": {"tables": [{"name": "t", "columns": ["x"]}]}}).encode("utf-16-le"),
        json.dumps({"model": {"relationships": [3]}}).encode("utf-16-le"),
    ],
)
def test_malformed_documents(raw):
    with pytest.raises(MalformedDocument):
        decode_schema(raw)


def test_utf8_input_is_rejected():
    with pytest.raises(MalformedDocument):
        decode_schema(json.dumps(SAMPLE).encode("utf-8"))
