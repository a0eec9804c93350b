"""Sample template containers for tests and manual checks."""

from .pbit import (
    PbitGenerator,
    build_mashup,
    build_schema,
    encode_schema_json,
    write_container,
)

__all__ = [
    "PbitGenerator",
    "build_mashup",
    "build_schema",
    "encode_schema_json",
    "write_container",
]
