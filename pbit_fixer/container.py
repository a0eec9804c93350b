"""
Named-entry access for template containers (.pbit/.pbix ZIP archives).

Entries are only ever read or overwritten by their stored name; nothing is
extracted to disk, so the archive's forward-slash entry paths are never
regenerated with the host separator. Writes go to a sibling temporary archive
that is swapped in with os.replace once every entry has been copied.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import zipfile
import zlib
from pathlib import Path
from typing import Iterable, Mapping

from .errors import EntryNotFoundOnWrite, FixerError


SCHEMA_ENTRY = "DataModelSchema"
MASHUP_ENTRY = "DataMashup"

# Raised by ZipFile.read for corrupt, encrypted or unsupported members.
_MEMBER_ERRORS = (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError, EOFError)


def _open_for_read(path: Path) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(path, "r")
    except FileNotFoundError:
        raise FixerError("container not found", path) from None
    except zipfile.BadZipFile as e:
        raise FixerError(f"not a ZIP container ({e})", path) from e


def _read_member(zin: zipfile.ZipFile, member: str | zipfile.ZipInfo, path: Path) -> bytes:
    name = member.filename if isinstance(member, zipfile.ZipInfo) else member
    try:
        return zin.read(member)
    except _MEMBER_ERRORS as e:
        raise FixerError(f"entry '{name}' cannot be read ({type(e).__name__}: {e})", path) from e


def list_entries(path: Path) -> list[str]:
    with _open_for_read(Path(path)) as zin:
        return zin.namelist()


def read_entries(path: Path, names: Iterable[str]) -> dict[str, bytes | None]:
    """Read several entries within one open handle. Missing entries map to None."""
    path = Path(path)
    out: dict[str, bytes | None] = {}
    with _open_for_read(path) as zin:
        present = set(zin.namelist())
        for name in names:
            if name not in present:
                out[name] = None
                continue
            out[name] = _read_member(zin, name, path)
    return out


def read_entry(path: Path, name: str) -> bytes | None:
    return read_entries(path, [name])[name]


def write_entries(path: Path, replacements: Mapping[str, bytes]) -> None:
    """
    Overwrite existing entries with new payloads in a single update session.

    Every other entry is copied with its original ZipInfo (stored name,
    timestamp, attributes, compression type, comment). Entries are never
    created: a name absent from the container raises EntryNotFoundOnWrite
    before anything is written. On failure the original file is untouched.
    """
    path = Path(path)
    if not replacements:
        return

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        with _open_for_read(path) as zin:
            present = set(zin.namelist())
            for name in replacements:
                if name not in present:
                    raise EntryNotFoundOnWrite(name, path)

            with zipfile.ZipFile(tmp, "w") as zout:
                zout.comment = zin.comment
                for info in zin.infolist():
                    data = replacements.get(info.filename)
                    if data is None:
                        data = _read_member(zin, info, path)
                    zout.writestr(info, data, compress_type=info.compress_type)

        shutil.copymode(path, tmp)
        os.replace(tmp, path)
    finally:
        tmp.unlink(missing_ok=True)


def write_entry(path: Path, name: str, data: bytes) -> None:
    write_entries(path, {name: data})
