"""Plain text table rendering for csv-diff reports."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from .report import DiffKind, DiffRun, format_key

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .report import DiffEntry, DiffReport, DiffSummary

HEADERS = ("Diff", "Key", "Field", "From", "To")
MAX_CELL_WIDTH = 60

_ACTIONS = {
    DiffKind.ADDED: "Add",
    DiffKind.DELETED: "Delete",
    DiffKind.UPDATED: "Update",
    DiffKind.UNCHANGED: "Match",
}


def _clip(value: str) -> str:
    value = value.replace("\r", " ").replace("\n", " ")
    if len(value) > MAX_CELL_WIDTH:
        return value[: MAX_CELL_WIDTH - 3] + "..."
    return value


def _record_summary(entry: DiffEntry, fields: Sequence[str]) -> str:
    record = entry.record
    return ", ".join(f"{name}={record.get(name, '')}" for name in fields)


def entry_rows(entry: DiffEntry, fields: Sequence[str]) -> list[tuple[str, ...]]:
    action = _ACTIONS[entry.kind]
    if entry.moved:
        action = f"{action}+Move" if entry.kind is DiffKind.UPDATED else "Move"
    key = format_key(entry.key)

    if entry.kind is DiffKind.ADDED:
        return [(action, key, "", "", _record_summary(entry, fields))]
    if entry.kind is DiffKind.DELETED:
        return [(action, key, "", _record_summary(entry, fields), "")]

    rows: list[tuple[str, ...]] = []
    if entry.moved:
        rows.append(
            (action, key, "(position)", str(entry.from_position), str(entry.to_position))
        )
    for diff in entry.field_diffs:
        rows.append((action, key, diff.field, diff.left, diff.right))
    if not rows:
        rows.append((action, key, "", "", ""))
    return rows


def _format_table(rows: Sequence[Sequence[str]]) -> list[str]:
    table = [HEADERS, *rows]
    table = [tuple(_clip(str(cell)) for cell in row) for row in table]
    widths = [max(len(row[column]) for row in table) for column in range(len(HEADERS))]
    separator = "+" + "+".join("-" * (width + 2) for width in widths) + "+"

    lines = [separator]
    for index, row in enumerate(table):
        cells = " | ".join(cell.ljust(width) for cell, width in zip(row, widths))
        lines.append(f"| {cells} |")
        if index == 0:
            lines.append(separator)
    lines.append(separator)
    return lines


def _summary_line(summary: DiffSummary) -> str:
    return (
        f"Summary: added={summary.added} deleted={summary.deleted} "
        f"updated={summary.updated} moved={summary.moved} unchanged={summary.unchanged}"
    )


def _render_single(report: DiffReport) -> str:
    lines = [
        f"csv-diff report: {report.left_label} -> {report.right_label}",
        f"Key fields: {', '.join(report.key_fields) or 'n/a'}",
        _summary_line(report.summary),
        f"Records: from={report.total_left} to={report.total_right}",
    ]
    if report.left_duplicates or report.right_duplicates:
        lines.append(
            "Duplicate keys: "
            f"from={', '.join(format_key(key) for key in report.left_duplicates) or 'none'}; "
            f"to={', '.join(format_key(key) for key in report.right_duplicates) or 'none'}"
        )
    lines.append("")

    rows = [row for entry in report for row in entry_rows(entry, report.output_fields)]
    if rows:
        lines.extend(_format_table(rows))
    else:
        lines.append("No differences found.")
    return "\n".join(lines) + "\n"


def render_text_report(report: DiffReport | DiffRun) -> str:
    """Render the report as a fixed-width text table preceded by a summary.

    A directory run gets an overall summary followed by one table per file pair.
    """

    if not isinstance(report, DiffRun):
        return _render_single(report)

    lines = [
        f"csv-diff directory report: {report.left_label} -> {report.right_label}",
        f"Files compared: {len(report)}",
        _summary_line(report.summary),
        f"Records: from={report.total_left} to={report.total_right}",
        "",
    ]
    if not report.reports:
        lines.append("No files compared.")
        return "\n".join(lines) + "\n"
    sections = [_render_single(single) for single in report]
    return "\n".join(lines) + "\n" + "\n".join(sections)


__all__ = ["render_text_report"]
