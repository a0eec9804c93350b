"""Error kinds raised while patching a template container."""

from __future__ import annotations

from pathlib import Path


class FixerError(Exception):
    """Base class for per-container failures."""

    def __init__(self, message: str, container: Path | str | None = None):
        super().__init__(message)
        self.container = container

    def __str__(self) -> str:
        message = super().__str__()
        if self.container is None:
            return message
        return f"{self.container}: {message}"


class MissingRequiredEntry(FixerError):
    def __init__(self, entry: str, container: Path | str | None = None):
        super().__init__(f"required entry '{entry}' not found", container)
        self.entry = entry


class MalformedDocument(FixerError):
    """Raised when DataModelSchema does not decode as UTF-16-LE JSON of the expected shape."""


class EntryNotFoundOnWrite(FixerError):
    def __init__(self, entry: str, container: Path | str | None = None):
        super().__init__(f"entry '{entry}' disappeared before it could be overwritten", container)
        self.entry = entry


class LengthMismatch(ValueError):
    """Search and replacement byte sequences must have the same non-zero length."""


class ConfigError(ValueError):
    """Invalid defect catalog."""
