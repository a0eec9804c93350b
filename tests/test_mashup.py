import struct

import pytest

from pbit_fixer.fixtures import build_mashup
from pbit_fixer.flags import DIRECT_QUERY_FLAG
from pbit_fixer.mashup import assemble_sections, direct_query_items, framing, split_sections


QUERIES = [
    {"path": "v_Collections", "direct_query": True},
    {"path": "DateTable", "direct_query": False},
    {"path": "v_Packages", "direct_query": True},
]


def test_split_and_assemble():
    raw = build_mashup(QUERIES)
    sections = split_sections(raw)
    assert sections.version == 0
    assert sections.package_parts[:2] == b"PK"
    assert sections.bindings == b""
    assert assemble_sections(sections) == raw


def test_split_rejects_bad_framing():
    raw = build_mashup(QUERIES)
    with pytest.raises(ValueError):
        split_sections(raw[:10])
    with pytest.raises(ValueError):
        split_sections(raw + b"\x00")
    with pytest.raises(ValueError):
        split_sections(raw[:4] + struct.pack("<I", len(raw)) + raw[8:])


def test_direct_query_items():
    items = direct_query_items(build_mashup(QUERIES))
    assert [(i.path, i.is_direct_query) for i in items] == [
        ("Section1/v_Collections", True),
        ("Section1/DateTable", False),
        ("Section1/v_Packages", True),
    ]


def test_flag_patch_clears_items_and_keeps_framing():
    raw = build_mashup(QUERIES)
    out, count = DIRECT_QUERY_FLAG.apply(raw)
    assert count == 2
    assert framing(out) == framing(raw)
    assert not any(i.is_direct_query for i in direct_query_items(out))


def test_framing_of_opaque_blob_is_none():
    assert framing(b"opaque bytes that are not a section stream") is None
    assert framing(b"") is None
    assert framing(None) is None
