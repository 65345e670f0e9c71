"""Delimited-text export of csv-diff reports, one row per changed field.

The leading ``file`` column names the FROM file, so a directory run fits in one file.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import TYPE_CHECKING

from .report import DiffKind, format_key, reports_of

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .report import DiffEntry, DiffReport, DiffRun

CSV_HEADERS = [
    "file",
    "diff",
    "key",
    "parent_key",
    "field",
    "from",
    "to",
    "from_position",
    "to_position",
]


def _position(value: int | None) -> str:
    return "" if value is None else str(value)


def _entry_rows(entry: DiffEntry, fields: tuple[str, ...]) -> list[list[str]]:
    kind = entry.kind.value
    if entry.moved and entry.kind is DiffKind.UNCHANGED:
        kind = "moved"
    base = [kind, format_key(entry.key), format_key(entry.parent_key)]
    positions = [_position(entry.from_position), _position(entry.to_position)]

    if entry.kind is DiffKind.ADDED:
        record = entry.right
        assert record is not None
        return [base + [name, "", record.get(name, "") or "", *positions] for name in fields]
    if entry.kind is DiffKind.DELETED:
        record = entry.left
        assert record is not None
        return [base + [name, record.get(name, "") or "", "", *positions] for name in fields]
    if entry.field_diffs:
        return [
            base + [diff.field, diff.left, diff.right, *positions] for diff in entry.field_diffs
        ]
    return [base + ["", "", "", *positions]]


def write_csv_report(
    report: DiffReport | DiffRun, destination: Path | str, *, delimiter: str = ","
) -> Path:
    path = Path(destination)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle, delimiter=delimiter)
        writer.writerow(CSV_HEADERS)
        for single in reports_of(report):
            for entry in single:
                writer.writerows(
                    [single.left_label, *row] for row in _entry_rows(entry, single.output_fields)
                )
    return path


__all__ = ["CSV_HEADERS", "write_csv_report"]
