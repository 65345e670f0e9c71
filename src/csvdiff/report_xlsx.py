"""Utilities for rendering single-file XLSX reports."""

from __future__ import annotations

from collections.abc import Iterable
from os import PathLike
from typing import TYPE_CHECKING, Any, BinaryIO

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .report import DiffKind, format_key, reports_of

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .report import DiffReport, DiffRun


def _append_rows(ws, rows: Iterable[tuple[Any, ...]]) -> None:  # type: ignore[no-untyped-def]
    for row in rows:
        ws.append(list(row))


def _set_table_formatting(ws) -> None:  # type: ignore[no-untyped-def]
    ws.freeze_panes = "A2"
    last_column = get_column_letter(ws.max_column or 1)
    last_row = ws.max_row or 1
    ws.auto_filter.ref = f"A1:{last_column}{last_row}"
    for cell in ws[1]:
        cell.font = Font(bold=True)


def _format_summary_sheet(ws, target: DiffReport | DiffRun, payload: dict[str, Any]) -> None:  # type: ignore[no-untyped-def]
    meta = payload.get("meta", {})
    summary = target.summary

    rows = [
        ("Metric", "Value"),
        ("From", target.left_label),
        ("To", target.right_label),
        ("Generated at", meta.get("generated_at", "")),
        ("Files", len(reports_of(target))),
        ("Added", summary.added),
        ("Deleted", summary.deleted),
        ("Updated", summary.updated),
        ("Moved", summary.moved),
        ("Unchanged", summary.unchanged),
        ("Total from", target.total_left),
        ("Total to", target.total_right),
    ]

    _append_rows(ws, rows)
    _set_table_formatting(ws)


def _write_files_sheet(ws, reports: list[DiffReport]) -> None:  # type: ignore[no-untyped-def]
    ws.append(
        [
            "from",
            "to",
            "key fields",
            "added",
            "deleted",
            "updated",
            "moved",
            "unchanged",
            "duplicate keys (from)",
            "duplicate keys (to)",
        ]
    )
    for report in reports:
        summary = report.summary
        ws.append(
            [
                report.left_label,
                report.right_label,
                ", ".join(report.key_fields),
                summary.added,
                summary.deleted,
                summary.updated,
                summary.moved,
                summary.unchanged,
                ", ".join(format_key(key) for key in report.left_duplicates) or "None",
                ", ".join(format_key(key) for key in report.right_duplicates) or "None",
            ]
        )
    _set_table_formatting(ws)


def _output_columns(reports: list[DiffReport]) -> list[str]:
    columns: list[str] = []
    for report in reports:
        columns.extend(name for name in report.output_fields if name not in columns)
    return columns


def _write_record_sheet(ws, reports: list[DiffReport], kind: DiffKind) -> None:  # type: ignore[no-untyped-def]
    fields = _output_columns(reports)
    ws.append(["file", "key", "row", *fields])
    for report in reports:
        for entry in report.of_kind(kind):
            record = entry.record
            row = [
                report.left_label,
                format_key(entry.key),
                record.line_number or record.source_index + 1,
            ]
            row.extend(record.get(name, "") for name in fields)
            ws.append(row)
    _set_table_formatting(ws)


def _write_updated_sheet(ws, reports: list[DiffReport]) -> None:  # type: ignore[no-untyped-def]
    ws.append(["file", "key", "field", "from", "to"])
    for report in reports:
        for entry in report.updated:
            for diff in entry.field_diffs:
                ws.append(
                    [report.left_label, format_key(entry.key), diff.field, diff.left, diff.right]
                )
    _set_table_formatting(ws)


def _write_moved_sheet(ws, reports: list[DiffReport]) -> None:  # type: ignore[no-untyped-def]
    ws.append(["file", "key", "parent", "from position", "to position", "updated"])
    for report in reports:
        for entry in report.moved:
            ws.append(
                [
                    report.left_label,
                    format_key(entry.key),
                    format_key(entry.parent_key),
                    entry.from_position,
                    entry.to_position,
                    "yes" if entry.kind is DiffKind.UPDATED else "no",
                ]
            )
    _set_table_formatting(ws)


def render_xlsx_report(target: DiffReport | DiffRun, payload: dict[str, Any]) -> Workbook:
    """Create an openpyxl workbook for a single report or a whole directory run."""

    reports = reports_of(target)
    workbook = Workbook()
    summary_ws = workbook.active
    summary_ws.title = "Summary"
    _format_summary_sheet(summary_ws, target, payload)

    _write_files_sheet(workbook.create_sheet("Files"), reports)
    _write_record_sheet(workbook.create_sheet("Added"), reports, DiffKind.ADDED)
    _write_record_sheet(workbook.create_sheet("Deleted"), reports, DiffKind.DELETED)
    _write_updated_sheet(workbook.create_sheet("Updated"), reports)
    _write_moved_sheet(workbook.create_sheet("Moved"), reports)

    return workbook


def write_xlsx_report(
    target: DiffReport | DiffRun,
    payload: dict[str, Any],
    destination: BinaryIO | PathLike[str] | str,
) -> None:
    """Render the XLSX workbook and write it to a file-like object or path."""

    workbook = render_xlsx_report(target, payload)
    workbook.save(destination)


__all__ = ["render_xlsx_report", "write_xlsx_report"]
