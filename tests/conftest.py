import pytest

from pbit_fixer.fixtures import build_mashup, build_schema, encode_schema_json, write_container

from tests.helpers import DEFECT_RELATIONSHIPS, DEFECT_TABLES, SCENARIO_A_TABLES


@pytest.fixture
def make_container(tmp_path):
    def _make(
        name="template.pbit",
        tables=None,
        relationships=None,
        default_mode=None,
        queries=None,
        schema=True,
        mashup=True,
        schema_bytes=None,
    ):
        tables = SCENARIO_A_TABLES if tables is None else tables
        if schema_bytes is None and schema:
            schema_bytes = encode_schema_json(build_schema(tables, relationships, default_mode))
        mashup_bytes = None
        if mashup:
            if queries is None:
                queries = [{"path": t["name"], "direct_query": "directQuery" in t.get("partitions", [])} for t in tables]
            mashup_bytes = build_mashup(queries)
        return write_container(tmp_path / name, schema_bytes, mashup_bytes)

    return _make


@pytest.fixture
def defect_container(make_container):
    return make_container(name="defects.pbit", tables=DEFECT_TABLES, relationships=DEFECT_RELATIONSHIPS)
