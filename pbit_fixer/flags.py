"""Length-preserving byte patches for the opaque DataMashup blob."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import LengthMismatch


@dataclass(frozen=True)
class FlagPatch:
    search: bytes
    replacement: bytes

    def __post_init__(self):
        if not self.search:
            raise LengthMismatch("search sequence must not be empty")
        if len(self.search) != len(self.replacement):
            raise LengthMismatch(
                f"replacement is {len(self.replacement)} bytes but search is {len(self.search)} bytes; "
                "the blob's internal offsets must not shift"
            )

    def apply(self, data: bytes | None) -> tuple[bytes | None, int]:
        """
        Replace every non-overlapping occurrence of ``search`` in place.

        Scanning resumes right after each replaced region. Empty or missing
        input is returned unchanged with a zero count.
        """
        if not data:
            return data, 0

        buf = bytearray(data)
        width = len(self.search)
        count = 0
        i = buf.find(self.search)
        while i != -1:
            buf[i : i + width] = self.replacement
            count += 1
            i = buf.find(self.search, i + width)

        if not count:
            return data, 0
        return bytes(buf), count


DIRECT_QUERY_FLAG = FlagPatch(
    search=b'IsDirectQuery" Value="l1"',
    replacement=b'IsDirectQuery" Value="l0"',
)
