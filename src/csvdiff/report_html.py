"""HTML report rendering for csv-diff."""

from __future__ import annotations

import html
import json
from typing import TYPE_CHECKING

from .report import DiffKind, DiffRun, format_key, reports_of

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .report import DiffEntry, DiffReport


def safe_json_for_script(payload: dict[str, object]) -> str:
    """Serialise JSON for embedding inside a ``<script type="application/json">`` tag."""

    serialised = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    serialised = serialised.replace("</", "<\\/")
    serialised = serialised.replace("\u2028", "\\u2028").replace("\u2029", "\\u2029")
    return serialised


def _escape(value: object) -> str:
    if value is None:
        return ""
    return html.escape(str(value))


def _render_table_header(columns: list[str]) -> str:
    headers = ['<th scope="col">Key</th>']
    headers.extend(f'<th scope="col">{_escape(column)}</th>' for column in columns)
    return "".join(headers)


def _render_record_row(entry: DiffEntry, columns: list[str]) -> str:
    record = entry.record
    cells = [f'<td class="cell-key">{_escape(format_key(entry.key))}</td>']
    cells.extend(f"<td>{_escape(record.get(column, ''))}</td>" for column in columns)
    return "<tr>" + "".join(cells) + "</tr>"


def _render_change_rows(entry: DiffEntry) -> str:
    key = _escape(format_key(entry.key))
    return "".join(
        "<tr>"
        f'<td class="cell-key">{key}</td>'
        f"<td>{_escape(diff.field)}</td>"
        f'<td class="cell-from">{_escape(diff.left)}</td>'
        f'<td class="cell-to">{_escape(diff.right)}</td>'
        "</tr>"
        for diff in entry.field_diffs
    )


def _render_move_row(entry: DiffEntry) -> str:
    updated = "yes" if entry.kind is DiffKind.UPDATED else "no"
    return (
        "<tr>"
        f'<td class="cell-key">{_escape(format_key(entry.key))}</td>'
        f"<td>{_escape(format_key(entry.parent_key))}</td>"
        f"<td>{_escape(entry.from_position)}</td>"
        f"<td>{_escape(entry.to_position)}</td>"
        f"<td>{updated}</td>"
        "</tr>"
    )


def _build_diagnostics(report: DiffReport) -> list[str]:
    messages = [str(warning) for warning in report.warnings]
    for partition, count in sorted(report.suppressed.items()):
        messages.append(f"{count} {partition} record(s) were suppressed by configuration.")
    if report.total_left == 0:
        messages.append(f"{report.left_label} contains no records.")
    if report.total_right == 0:
        messages.append(f"{report.right_label} contains no records.")
    return messages


def _section(title: str, table_id: str, header: str, body: str) -> list[str]:
    return [
        '    <section class="section">',
        f"      <h2>{_escape(title)}</h2>",
        f'      <div class="table-controls"><input type="search" placeholder="Filter rows..." data-table-filter="{table_id}"></div>',
        '      <div class="table-wrapper">',
        f'        <table id="{table_id}" class="sortable">',
        f"          <thead><tr>{header}</tr></thead>",
        f"          <tbody>{body}</tbody>",
        "        </table>",
        "      </div>",
        "    </section>",
    ]


def _empty_row(columns: int, message: str) -> str:
    return f'<tr><td colspan="{columns}"><em>{_escape(message)}</em></td></tr>'


_STYLE = [
    "    :root { color-scheme: light dark; font-family: 'Inter', 'Segoe UI', sans-serif; }",
    "    body { margin: 0; padding: 1.5rem; background: #f8fafc; color: #0f172a; }",
    "    h1, h2 { margin: 0; font-weight: 600; }",
    "    h2 { margin-top: 2.5rem; margin-bottom: 1rem; font-size: 1.5rem; }",
    "    .container { max-width: 1200px; margin: 0 auto; }",
    "    .header { background: #0f766e; color: #fff; padding: 1.5rem; border-radius: 1rem; }",
    "    .header dl { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 0.75rem; margin: 1.5rem 0 0; }",
    "    .header dt { font-weight: 700; font-size: 0.85rem; text-transform: uppercase; opacity: 0.8; }",
    "    .header dd { margin: 0; font-size: 0.95rem; }",
    "    .summary-grid { display: flex; flex-wrap: wrap; gap: 1rem; }",
    "    .summary-card { background: #fff; border-radius: 0.75rem; padding: 1rem 1.25rem; box-shadow: 0 1px 3px rgba(15, 23, 42, 0.12); min-width: 140px; }",
    "    .summary-label { display: block; font-size: 0.8rem; text-transform: uppercase; color: #475569; margin-bottom: 0.5rem; }",
    "    .badge { display: inline-block; padding: 0.25rem 0.75rem; border-radius: 999px; font-weight: 600; background: #0f766e; color: #fff; }",
    "    .section { margin-top: 2.5rem; }",
    "    .file-heading { margin-top: 3rem; padding-top: 1rem; border-top: 2px solid #0f766e; }",
    "    table { width: 100%; border-collapse: collapse; background: #fff; }",
    "    th, td { padding: 0.6rem 0.75rem; border-bottom: 1px solid #e2e8f0; text-align: left; vertical-align: top; }",
    "    thead th { position: sticky; top: 0; background: #f1f5f9; cursor: pointer; }",
    "    .table-wrapper { overflow-x: auto; border-radius: 0.75rem; }",
    "    .table-controls { display: flex; justify-content: flex-end; margin-bottom: 0.5rem; }",
    "    .table-controls input { padding: 0.4rem 0.6rem; border-radius: 0.5rem; border: 1px solid #cbd5f5; min-width: 220px; }",
    "    .cell-key { font-family: 'JetBrains Mono', monospace; font-size: 0.85rem; white-space: nowrap; }",
    "    .cell-from { background: #fee2e2; }",
    "    .cell-to { background: #dcfce7; }",
    "    footer { margin: 3rem 0 1rem; text-align: center; color: #64748b; font-size: 0.85rem; }",
]

_SCRIPT = [
    "  <script>",
    "    (function() {",
    "      document.querySelectorAll('[data-table-filter]').forEach((input) => {",
    "        input.addEventListener('input', () => {",
    "          const table = document.getElementById(input.getAttribute('data-table-filter'));",
    "          const term = input.value.trim().toLowerCase();",
    "          if (!table) { return; }",
    "          table.querySelectorAll('tbody tr').forEach((row) => {",
    "            const text = row.textContent.toLowerCase();",
    "            row.style.display = term === '' || text.includes(term) ? '' : 'none';",
    "          });",
    "        });",
    "      });",
    "      document.querySelectorAll('table.sortable thead th').forEach((th, index) => {",
    "        th.addEventListener('click', () => {",
    "          const tbody = th.closest('table').querySelector('tbody');",
    "          const rows = Array.from(tbody.querySelectorAll('tr'));",
    "          const ascending = th.dataset.sort !== 'asc';",
    "          rows.sort((a, b) => {",
    "            const av = a.children[index] ? a.children[index].textContent.trim() : '';",
    "            const bv = b.children[index] ? b.children[index].textContent.trim() : '';",
    "            return ascending ? av.localeCompare(bv, undefined, {numeric: true}) : bv.localeCompare(av, undefined, {numeric: true});",
    "          });",
    "          rows.forEach((row) => tbody.appendChild(row));",
    "          th.dataset.sort = ascending ? 'asc' : 'desc';",
    "        });",
    "      });",
    "    })();",
    "  </script>",
]


def _report_sections(report: DiffReport, prefix: str, suffix: str) -> list[str]:
    columns = list(report.output_fields)
    record_columns = len(columns) + 1
    added_rows = "".join(_render_record_row(entry, columns) for entry in report.added)
    deleted_rows = "".join(_render_record_row(entry, columns) for entry in report.deleted)
    updated_rows = "".join(_render_change_rows(entry) for entry in report.updated)
    moved_rows = "".join(_render_move_row(entry) for entry in report.moved)

    parts: list[str] = []
    parts.extend(
        _section(
            f"{prefix}Added records",
            f"table-added{suffix}",
            _render_table_header(columns),
            added_rows or _empty_row(record_columns, "No added records."),
        )
    )
    parts.extend(
        _section(
            f"{prefix}Deleted records",
            f"table-deleted{suffix}",
            _render_table_header(columns),
            deleted_rows or _empty_row(record_columns, "No deleted records."),
        )
    )
    parts.extend(
        _section(
            f"{prefix}Updated fields",
            f"table-updated{suffix}",
            '<th scope="col">Key</th><th scope="col">Field</th>'
            '<th scope="col">From</th><th scope="col">To</th>',
            updated_rows or _empty_row(4, "No updated fields."),
        )
    )
    parts.extend(
        _section(
            f"{prefix}Moved records",
            f"table-moved{suffix}",
            '<th scope="col">Key</th><th scope="col">Parent</th><th scope="col">From position</th>'
            '<th scope="col">To position</th><th scope="col">Updated</th>',
            moved_rows or _empty_row(5, "No moved records."),
        )
    )
    return parts


def render_html_report(target: DiffReport | DiffRun, payload: dict[str, object]) -> str:
    """Render a single-file HTML report for a diff report or a directory run.

    A directory run shows the overall summary first, then the sections of each
    file pair titled with the pair's file names.
    """

    meta = payload.get("meta", {}) if isinstance(payload, dict) else {}
    reports = reports_of(target)
    combined = isinstance(target, DiffRun)
    summary = target.summary
    title = f"csv-diff report – {target.left_label} to {target.right_label}"

    summary_cards = "".join(
        '<div class="summary-card">'
        f'<span class="summary-label">{label}</span>'
        f'<span class="badge">{value}</span>'
        "</div>"
        for label, value in [
            ("Added", summary.added),
            ("Deleted", summary.deleted),
            ("Updated", summary.updated),
            ("Moved", summary.moved),
            ("Unchanged", summary.unchanged),
            ("From rows", target.total_left),
            ("To rows", target.total_right),
        ]
    )

    header_rows = [
        ("From", target.left_label),
        ("To", target.right_label),
        ("Generated at", meta.get("generated_at", "") if isinstance(meta, dict) else ""),
        ("Tool version", meta.get("tool_version", "") if isinstance(meta, dict) else ""),
    ]
    if combined:
        header_rows.append(("Files", str(len(reports))))
    else:
        header_rows.append(("Key fields", ", ".join(target.key_fields) or "n/a"))
        header_rows.append(("Parent fields", ", ".join(target.parent_fields) or "n/a"))

    diagnostics: list[str] = []
    for report in reports:
        label = f"{report.left_label}: " if combined else ""
        diagnostics.extend(f"{label}{message}" for message in _build_diagnostics(report))
    if combined and not reports:
        diagnostics.append("No file pairs were compared.")
    diagnostics_block = (
        "<ul>" + "".join(f"<li>{_escape(message)}</li>" for message in diagnostics) + "</ul>"
        if diagnostics
        else "<p>No diagnostics were generated for this run.</p>"
    )

    html_parts = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '  <meta charset="utf-8">',
        '  <meta http-equiv="Content-Security-Policy" '
        "content=\"default-src 'none'; style-src 'unsafe-inline'; script-src 'unsafe-inline'\">",
        f"  <title>{_escape(title)}</title>",
        "  <style>",
        *_STYLE,
        "  </style>",
        "</head>",
        "<body>",
        '  <div class="container">',
        '    <header class="header">',
        "      <h1>csv-diff comparison report</h1>",
        "      <dl>",
    ]
    for label, value in header_rows:
        html_parts.append(f"        <dt>{_escape(label)}</dt>")
        html_parts.append(f"        <dd>{_escape(value)}</dd>")
    html_parts.extend(
        [
            "      </dl>",
            "    </header>",
            '    <section class="section">',
            "      <h2>Summary</h2>",
            f'      <div class="summary-grid">{summary_cards}</div>',
            "    </section>",
        ]
    )

    for index, report in enumerate(reports, start=1):
        if combined:
            html_parts.append(
                f'    <h2 class="file-heading">{_escape(report.left_label)} to '
                f"{_escape(report.right_label)}</h2>"
            )
            html_parts.extend(_report_sections(report, f"{report.left_label}: ", f"-{index}"))
        else:
            html_parts.extend(_report_sections(report, "", ""))

    html_parts.extend(
        [
            '    <section class="section">',
            "      <h2>Diagnostics</h2>",
            f"      {diagnostics_block}",
            "    </section>",
            "    <footer>Generated by csv-diff. The canonical payload is embedded as JSON.</footer>",
            "  </div>",
            f'  <script type="application/json" id="csv-diff-data">{safe_json_for_script(payload)}</script>',
            *_SCRIPT,
            "</body>",
            "</html>",
        ]
    )

    return "\n".join(html_parts)


__all__ = ["render_html_report", "safe_json_for_script"]
