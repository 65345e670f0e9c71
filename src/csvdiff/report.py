"""Diff model: entries, the aggregate report and its canonical payload."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from . import __version__
from .errors import DuplicateKeyWarning
from .records import Record

_NUMBER_CHUNK = re.compile(r"(\d+)")


class DiffKind(str, Enum):
    ADDED = "added"
    DELETED = "deleted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class FieldDiff:
    field: str
    left: str
    right: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "from": self.left, "to": self.right}


@dataclass(frozen=True)
class DiffEntry:
    kind: DiffKind
    key: tuple[str, ...]
    parent_key: tuple[str, ...] = ()
    left: Record | None = None
    right: Record | None = None
    field_diffs: tuple[FieldDiff, ...] = ()
    moved: bool = False
    from_position: int | None = None
    to_position: int | None = None

    @property
    def record(self) -> Record:
        """The most recent version of the record (TO side when present)."""

        record = self.right if self.right is not None else self.left
        assert record is not None
        return record

    @property
    def reported(self) -> bool:
        return self.kind is not DiffKind.UNCHANGED or self.moved

    def changed_fields(self) -> list[str]:
        return [diff.field for diff in self.field_diffs]


def natural_key(values: Sequence[str]) -> tuple[tuple[tuple[int, int, str], ...], ...]:
    """Sort key comparing digit runs numerically, so ``2`` sorts before ``10``.

    Digit runs are compared by length and then text once leading zeros are
    dropped, so arbitrarily long runs never go through ``int()``.
    """

    parts = []
    for value in values:
        chunks = []
        # split() with a capturing group puts the digit runs at odd positions.
        for position, chunk in enumerate(_NUMBER_CHUNK.split(value)):
            if not chunk:
                continue
            if position % 2:
                digits = chunk.lstrip("0")
                chunks.append((0, len(digits), digits))
            else:
                chunks.append((1, 0, chunk))
        parts.append(tuple(chunks))
    return tuple(parts)


def _entry_order(entry: DiffEntry) -> tuple[object, ...]:
    return (natural_key(entry.parent_key), natural_key(entry.key), entry.key)


@dataclass
class DiffSummary:
    added: int = 0
    deleted: int = 0
    updated: int = 0
    moved: int = 0
    unchanged: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "added": self.added,
            "deleted": self.deleted,
            "updated": self.updated,
            "moved": self.moved,
            "unchanged": self.unchanged,
        }

    @property
    def total_changes(self) -> int:
        return self.added + self.deleted + self.updated + self.moved

    @classmethod
    def combined(cls, summaries: Iterable[DiffSummary]) -> DiffSummary:
        total = cls()
        for summary in summaries:
            total.added += summary.added
            total.deleted += summary.deleted
            total.updated += summary.updated
            total.moved += summary.moved
            total.unchanged += summary.unchanged
        return total


@dataclass
class DiffReport:
    """Aggregate diff between two sources.

    Iterating the report yields its entries in report order; every call to
    ``iter()`` starts again from the first entry.
    """

    entries: tuple[DiffEntry, ...]
    summary: DiffSummary
    left_duplicates: tuple[tuple[str, ...], ...] = ()
    right_duplicates: tuple[tuple[str, ...], ...] = ()
    total_left: int = 0
    total_right: int = 0
    suppressed: dict[str, int] = field(default_factory=dict)
    key_fields: tuple[str, ...] = ()
    parent_fields: tuple[str, ...] = ()
    compared_fields: tuple[str, ...] = ()
    output_fields: tuple[str, ...] = ()
    left_fields: tuple[str, ...] = ()
    right_fields: tuple[str, ...] = ()
    warnings: tuple[DuplicateKeyWarning, ...] = ()
    left_label: str = "FROM"
    right_label: str = "TO"

    def __iter__(self) -> Iterator[DiffEntry]:
        return (entry for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def of_kind(self, kind: DiffKind) -> Iterator[DiffEntry]:
        return (entry for entry in self.entries if entry.kind is kind)

    @property
    def added(self) -> list[DiffEntry]:
        return list(self.of_kind(DiffKind.ADDED))

    @property
    def deleted(self) -> list[DiffEntry]:
        return list(self.of_kind(DiffKind.DELETED))

    @property
    def updated(self) -> list[DiffEntry]:
        return list(self.of_kind(DiffKind.UPDATED))

    @property
    def moved(self) -> list[DiffEntry]:
        return [entry for entry in self.entries if entry.moved]

    @property
    def has_differences(self) -> bool:
        return any(entry.reported for entry in self.entries)


@dataclass
class DiffRun:
    """Reports of a directory diff, one per FROM/TO file pair, rendered as one document."""

    reports: list[DiffReport] = field(default_factory=list)
    left_label: str = "FROM"
    right_label: str = "TO"

    def __iter__(self) -> Iterator[DiffReport]:
        return iter(self.reports)

    def __len__(self) -> int:
        return len(self.reports)

    @property
    def summary(self) -> DiffSummary:
        return DiffSummary.combined(report.summary for report in self.reports)

    @property
    def total_left(self) -> int:
        return sum(report.total_left for report in self.reports)

    @property
    def total_right(self) -> int:
        return sum(report.total_right for report in self.reports)

    @property
    def has_differences(self) -> bool:
        return any(report.has_differences for report in self.reports)


def reports_of(target: DiffReport | DiffRun) -> list[DiffReport]:
    """The individual reports behind a single report or a directory run."""

    if isinstance(target, DiffRun):
        return list(target.reports)
    return [target]


def accumulate(
    added: Iterable[Record],
    deleted: Iterable[Record],
    classified: Iterable[DiffEntry],
    *,
    include_matched: bool = False,
    ignore_adds: bool = False,
    ignore_deletes: bool = False,
    **metadata: object,
) -> DiffReport:
    """Fold the match and classification results into a :class:`DiffReport`.

    Suppressed partitions are counted in ``suppressed`` but contribute no
    entries. Unchanged entries are kept when ``include_matched`` is set or
    when they moved.
    """

    summary = DiffSummary()
    suppressed: dict[str, int] = {}
    entries: list[DiffEntry] = []

    added_entries = [
        DiffEntry(
            DiffKind.ADDED,
            record.key,
            record.parent_key,
            right=record,
            to_position=record.source_index,
        )
        for record in added
    ]
    if ignore_adds:
        suppressed["added"] = len(added_entries)
    else:
        summary.added = len(added_entries)
        entries.extend(added_entries)

    deleted_entries = [
        DiffEntry(
            DiffKind.DELETED,
            record.key,
            record.parent_key,
            left=record,
            from_position=record.source_index,
        )
        for record in deleted
    ]
    if ignore_deletes:
        suppressed["deleted"] = len(deleted_entries)
    else:
        summary.deleted = len(deleted_entries)
        entries.extend(deleted_entries)

    for entry in classified:
        if entry.moved:
            summary.moved += 1
        if entry.kind is DiffKind.UPDATED:
            summary.updated += 1
            entries.append(entry)
            continue
        summary.unchanged += 1
        if include_matched or entry.moved:
            entries.append(entry)

    entries.sort(key=_entry_order)
    return DiffReport(
        entries=tuple(entries),
        summary=summary,
        suppressed=suppressed,
        **metadata,  # type: ignore[arg-type]
    )


def _record_payload(record: Record | None) -> dict[str, str]:
    return record.as_dict() if record is not None else {}


def _entry_payload(entry: DiffEntry) -> dict[str, object]:
    payload: dict[str, object] = {
        "key": list(entry.key),
        "kind": entry.kind.value,
    }
    if entry.parent_key:
        payload["parent_key"] = list(entry.parent_key)
    if entry.kind is DiffKind.ADDED:
        payload["record"] = _record_payload(entry.right)
    elif entry.kind is DiffKind.DELETED:
        payload["record"] = _record_payload(entry.left)
    else:
        payload["from"] = _record_payload(entry.left)
        payload["to"] = _record_payload(entry.right)
        payload["delta"] = [diff.to_dict() for diff in entry.field_diffs]
    if entry.moved:
        payload["moved"] = True
        payload["from_position"] = entry.from_position
        payload["to_position"] = entry.to_position
    return payload


def build_payload(
    report: DiffReport, *, generated_at: str | None = None
) -> dict[str, object]:
    """Build the JSON-serialisable payload shared by every renderer."""

    return {
        "schema_version": "1.0",
        "meta": {
            "generated_at": generated_at or datetime.now(timezone.utc).isoformat(),
            "tool_version": __version__,
            "from": report.left_label,
            "to": report.right_label,
            "key_fields": list(report.key_fields),
            "parent_fields": list(report.parent_fields),
            "compared_fields": list(report.compared_fields),
            "output_fields": list(report.output_fields),
        },
        "summary": {
            **report.summary.to_dict(),
            "total_from": report.total_left,
            "total_to": report.total_right,
            "suppressed": dict(report.suppressed),
        },
        "duplicates": {
            "from": ["|".join(key) for key in report.left_duplicates],
            "to": ["|".join(key) for key in report.right_duplicates],
        },
        "warnings": [str(warning) for warning in report.warnings],
        "entries": [_entry_payload(entry) for entry in report],
    }


def build_run_payload(
    run: DiffRun, *, generated_at: str | None = None
) -> dict[str, object]:
    """Payload of a directory diff: overall summary plus one report payload per file pair."""

    generated_at = generated_at or datetime.now(timezone.utc).isoformat()
    return {
        "schema_version": "1.0",
        "meta": {
            "generated_at": generated_at,
            "tool_version": __version__,
            "from": run.left_label,
            "to": run.right_label,
            "files": len(run),
        },
        "summary": {
            **run.summary.to_dict(),
            "total_from": run.total_left,
            "total_to": run.total_right,
        },
        "files": [build_payload(report, generated_at=generated_at) for report in run],
    }


def format_key(key: Sequence[str]) -> str:
    return "|".join(key)


__all__ = [
    "DiffEntry",
    "DiffKind",
    "DiffReport",
    "DiffRun",
    "DiffSummary",
    "FieldDiff",
    "accumulate",
    "build_payload",
    "build_run_payload",
    "format_key",
    "natural_key",
    "reports_of",
]
