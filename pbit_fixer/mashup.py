"""
DataMashup section framing and metadata inspection.

The stream is a version word followed by four length-prefixed sections:
PackageParts, Permissions, Metadata and Bindings (all little-endian uint32).
The fixer never rewrites sections; this module only lets it confirm that a
flag patch left the framing intact and lets the CLI list which queries are
still flagged as DirectQuery.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from lxml import etree


@dataclass(frozen=True)
class MashupSections:
    version: int
    package_parts: bytes
    permissions: bytes
    metadata: bytes
    bindings: bytes

    def lengths(self) -> tuple[int, int, int, int]:
        return (len(self.package_parts), len(self.permissions), len(self.metadata), len(self.bindings))


@dataclass(frozen=True)
class MashupItem:
    path: str
    is_direct_query: bool


def split_sections(raw_bytes: bytes) -> MashupSections:
    min_size = 4 + 4 * 4
    if len(raw_bytes) < min_size:
        raise ValueError("DataMashup stream too short")

    offset = 0
    version = struct.unpack_from("<I", raw_bytes, offset)[0]
    offset += 4

    sections = []
    for label in ("PackageParts", "permissions", "metadata", "bindings"):
        if offset + 4 > len(raw_bytes):
            raise ValueError(f"DataMashup truncated before {label} length")
        length = struct.unpack_from("<I", raw_bytes, offset)[0]
        offset += 4
        end = offset + length
        if end > len(raw_bytes):
            raise ValueError(f"invalid {label} length")
        sections.append(raw_bytes[offset:end])
        offset = end

    if offset != len(raw_bytes):
        raise ValueError("DataMashup trailing bytes mismatch")

    return MashupSections(version, *sections)


def assemble_sections(sections: MashupSections) -> bytes:
    return b"".join(
        [
            struct.pack("<I", sections.version),
            struct.pack("<I", len(sections.package_parts)),
            sections.package_parts,
            struct.pack("<I", len(sections.permissions)),
            sections.permissions,
            struct.pack("<I", len(sections.metadata)),
            sections.metadata,
            struct.pack("<I", len(sections.bindings)),
            sections.bindings,
        ]
    )


def framing(raw_bytes: bytes | None) -> tuple[int, ...] | None:
    """Version and section lengths, or None when the blob is not a section stream."""
    if not raw_bytes:
        return None
    try:
        sections = split_sections(raw_bytes)
    except ValueError:
        return None
    return (sections.version, *sections.lengths())


def metadata_xml(metadata: bytes) -> bytes:
    if len(metadata) < 8:
        raise ValueError("metadata section too short")
    xml_len = struct.unpack_from("<I", metadata, 4)[0]
    if 8 + xml_len > len(metadata):
        raise ValueError("invalid metadata XML length")
    return metadata[8 : 8 + xml_len]


def _local(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def direct_query_items(raw_bytes: bytes) -> list[MashupItem]:
    """List formula items with their IsDirectQuery stable entry."""
    sections = split_sections(raw_bytes)
    xml = metadata_xml(sections.metadata)
    try:
        root = etree.fromstring(xml)
    except etree.XMLSyntaxError as e:
        raise ValueError(f"metadata XML does not parse: {e}") from e

    items: list[MashupItem] = []
    for item in root.iter():
        if _local(item.tag) != "Item":
            continue
        path = ""
        flag = None
        for child in item.iter():
            name = _local(child.tag)
            if name == "ItemPath":
                path = (child.text or "").strip()
            elif name == "Entry" and child.get("Type") == "IsDirectQuery":
                flag = child.get("Value") == "l1"
        if flag is not None:
            items.append(MashupItem(path=path, is_direct_query=flag))
    return items
