"""Per-container fix reports and the reporters that present them."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .rules import RuleSet, SchemaCounts


FLAGS_LABEL = "DataMashup DirectQuery flags fixed"


@dataclass
class FixReport:
    container: Path
    rule_set: RuleSet = RuleSet.BASE
    schema: SchemaCounts = field(default_factory=SchemaCounts)
    flags_flipped: int = 0
    mashup_present: bool = True
    entries_written: list[str] = field(default_factory=list)
    backup: Path | None = None
    dry_run: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def changed(self) -> bool:
        return self.schema.changed or self.flags_flipped > 0

    def counters(self) -> list[tuple[str, int]]:
        """Every counter for the rules that ran, zeros included."""
        rows = [(rule.label, getattr(self.schema, rule.counter)) for rule in self.rule_set.rules]
        rows.append((FLAGS_LABEL, self.flags_flipped))
        return rows

    def to_dict(self) -> dict[str, Any]:
        return {
            "container": str(self.container),
            "rule_set": self.rule_set.value,
            "counters": {rule.counter: getattr(self.schema, rule.counter) for rule in self.rule_set.rules}
            | {"flags_flipped": self.flags_flipped},
            "entries_written": list(self.entries_written),
            "backup": str(self.backup) if self.backup else None,
            "dry_run": self.dry_run,
            "error": self.error,
        }


class Reporter:
    """Receives structured progress events from the engine. The base class ignores them."""

    def container_started(self, path: Path) -> None:
        pass

    def warning(self, path: Path, message: str) -> None:
        pass

    def rule_applied(self, path: Path, label: str, count: int) -> None:
        pass

    def container_finished(self, report: FixReport) -> None:
        pass

    def container_failed(self, path: Path, error: Exception) -> None:
        pass


NullReporter = Reporter


class ConsoleReporter(Reporter):
    def container_started(self, path: Path) -> None:
        print(f"Processing: {path}")

    def warning(self, path: Path, message: str) -> None:
        print(f"  Warning: {message}")

    def rule_applied(self, path: Path, label: str, count: int) -> None:
        print(f"  {label}: {count}")

    def container_finished(self, report: FixReport) -> None:
        if report.backup is not None:
            print(f"  Backup: {report.backup}")
        if report.dry_run:
            print("  Dry run: nothing written")
        elif report.entries_written:
            print(f"  Success: rewrote {', '.join(report.entries_written)}")
        else:
            print("  Success: already fixed, container left untouched")

    def container_failed(self, path: Path, error: Exception) -> None:
        print(f"  Error processing {path}: {error}")


class RecordingReporter(Reporter):
    """Keeps every event as an (event, payload) tuple."""

    def __init__(self):
        self.events: list[tuple[str, Any]] = []

    def container_started(self, path: Path) -> None:
        self.events.append(("started", path))

    def warning(self, path: Path, message: str) -> None:
        self.events.append(("warning", message))

    def rule_applied(self, path: Path, label: str, count: int) -> None:
        self.events.append(("rule", (label, count)))

    def container_finished(self, report: FixReport) -> None:
        self.events.append(("finished", report))

    def container_failed(self, path: Path, error: Exception) -> None:
        self.events.append(("failed", error))

    def of(self, event: str) -> list[Any]:
        return [payload for name, payload in self.events if name == event]
