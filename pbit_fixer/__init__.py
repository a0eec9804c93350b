"""Convert Power BI templates with DirectQuery/composite models to import mode."""

from .config import DefectCatalog, load_catalog
from .container import MASHUP_ENTRY, SCHEMA_ENTRY, read_entry, read_entries, write_entries
from .engine import fix_container, fix_containers
from .errors import (
    ConfigError,
    EntryNotFoundOnWrite,
    FixerError,
    LengthMismatch,
    MalformedDocument,
    MissingRequiredEntry,
)
from .flags import DIRECT_QUERY_FLAG, FlagPatch
from .report import ConsoleReporter, FixReport, RecordingReporter, Reporter
from .rules import RuleSet, transform_schema
from .schema import SchemaDocument, decode_schema, encode_schema

__version__ = "0.1.0"
