"""Programmatic entrypoints: diff files or directories and write reports."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import Any

from .engine import DiffOptions, coerce_bool, diff_sources
from .errors import SourceError
from .file_types import FileType, file_type_for
from .report import DiffReport, DiffRun, build_payload, build_run_payload
from .report_csv import write_csv_report
from .report_html import render_html_report
from .report_text import render_text_report
from .report_xlsx import write_xlsx_report
from .source import SourceOptions, load_source

logger = logging.getLogger(__name__)

REPORT_FORMATS = {
    "html": "html",
    "htm": "html",
    "xlsx": "xlsx",
    "xls": "xlsx",
    "txt": "txt",
    "text": "txt",
    "csv": "csv",
    "json": "json",
}

_SOURCE_SETTINGS = ("delimiter", "encoding", "has_header", "ignore_header", "field_names")


def normalise_format(value: str | None) -> str:
    fmt = (value or "html").strip().lower()
    try:
        return REPORT_FORMATS[fmt]
    except KeyError:
        raise ValueError(
            f"Unknown report format {value!r}; choose from html, xlsx, txt, csv or json"
        ) from None


def default_output_path(left: Path, right: Path, report_format: str) -> Path:
    """``Diff_<FROM>_to_<TO>.<ext>`` beside the FROM file (inside it for directories)."""

    output_dir = left if left.is_dir() else left.parent
    return output_dir / f"Diff_{left.stem}_to_{right.stem}.{normalise_format(report_format)}"


def build_source_options(settings: Mapping[str, Any]) -> SourceOptions:
    values: dict[str, Any] = {}
    for name in _SOURCE_SETTINGS:
        value = settings.get(name)
        if value is None:
            continue
        if name in {"has_header", "ignore_header"}:
            value = coerce_bool(value)
        elif name == "field_names" and not isinstance(value, str):
            value = tuple(str(item).strip() for item in value)
        values[name] = value
    return SourceOptions(**values)


def layer_settings(*layers: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge settings mappings; later layers win and ``None`` values never override."""

    merged: dict[str, Any] = {}
    for layer in layers:
        if not layer:
            continue
        for name, value in layer.items():
            if value is not None:
                merged[name.replace("-", "_")] = value
    return merged


def write_report(
    report: DiffReport | DiffRun, destination: Path, report_format: str
) -> Path:
    """Render ``report`` in ``report_format`` and write it to ``destination``.

    A :class:`DiffRun` becomes one combined report covering every file pair.
    """

    fmt = normalise_format(report_format)
    destination.parent.mkdir(parents=True, exist_ok=True)
    payload = build_run_payload(report) if isinstance(report, DiffRun) else build_payload(report)

    if fmt == "html":
        destination.write_text(render_html_report(report, payload), encoding="utf-8")
    elif fmt == "xlsx":
        write_xlsx_report(report, payload, destination)
    elif fmt == "txt":
        destination.write_text(render_text_report(report), encoding="utf-8")
    elif fmt == "csv":
        write_csv_report(report, destination)
    else:
        with destination.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, ensure_ascii=False)
    return destination


@dataclass(slots=True)
class PairResult:
    """Outcome of diffing one FROM/TO file pair."""

    left: Path
    right: Path
    report: DiffReport
    file_type: str | None = None


@dataclass(slots=True)
class DiffRunResult:
    """Structured response returned by :func:`run_diff`."""

    pairs: list[PairResult] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    output: Path | None = None

    @property
    def produced(self) -> list[Path]:
        return [self.output] if self.output is not None else []

    @property
    def has_differences(self) -> bool:
        return any(pair.report.has_differences for pair in self.pairs)

    def totals(self) -> dict[str, int]:
        totals = {"added": 0, "deleted": 0, "updated": 0, "moved": 0, "unchanged": 0}
        for pair in self.pairs:
            for name, value in pair.report.summary.to_dict().items():
                totals[name] += value
        return totals


def _diff_pair(
    left: Path,
    right: Path,
    settings: Mapping[str, Any],
    file_type: FileType | None,
) -> PairResult:
    options = DiffOptions.from_mapping(settings)
    source_options = build_source_options(settings)
    logger.info("Diffing %s against %s", left, right)
    report = diff_sources(
        load_source(left, source_options), load_source(right, source_options), options
    )
    return PairResult(
        left=left,
        right=right,
        report=report,
        file_type=file_type.name if file_type else None,
    )


def _pair_directory_files(
    left_dir: Path,
    right_dir: Path,
    pattern: str,
    exclude_pattern: str | None,
    only_file_types: bool,
    file_types: Sequence[FileType],
    destination: Path | None = None,
) -> tuple[list[tuple[Path, Path, FileType | None]], list[Path]]:
    pairs: list[tuple[Path, Path, FileType | None]] = []
    skipped: list[Path] = []
    for left in sorted(path for path in left_dir.glob(pattern) if path.is_file()):
        if exclude_pattern and fnmatch(left.name, exclude_pattern):
            continue
        if destination is not None and left.resolve() == destination.resolve():
            continue
        file_type = file_type_for(left.name, file_types)
        if only_file_types and file_type is None:
            continue
        right = right_dir / left.name
        if not right.is_file():
            logger.warning("No matching file for %s in %s", left.name, right_dir)
            skipped.append(left)
            continue
        pairs.append((left, right, file_type))
    return pairs, skipped


def run_diff(
    from_path: str | Path,
    to_path: str | Path,
    *,
    settings: Mapping[str, Any] | None = None,
    overrides: Mapping[str, Any] | None = None,
    pattern: str = "*",
    exclude_pattern: str | None = None,
    file_types: Sequence[FileType] = (),
    only_file_types: bool = False,
    output: str | Path | None = None,
    report_format: str = "html",
) -> DiffRunResult:
    """Diff two files, or every matching file pair of two directories.

    Parameters
    ----------
    from_path, to_path:
        The FROM (left) and TO (right) file or directory.
    settings:
        Baseline diff and source settings, usually the ``[defaults]`` table of
        the configuration file.
    overrides:
        Settings given explicitly by the caller (CLI flags). They win over
        file type settings, which win over ``settings``.
    pattern, exclude_pattern:
        Glob patterns selecting FROM files in directory mode.
    file_types:
        Known file types; a file matching one gets that type's settings.
    only_file_types:
        In directory mode, skip files that match none of ``file_types``.
    output:
        Report path. Defaults to :func:`default_output_path`. In directory
        mode every file pair is rendered into this one combined report.
    """

    left = Path(from_path).expanduser()
    right = Path(to_path).expanduser()
    fmt = normalise_format(report_format)

    if not left.exists():
        raise SourceError(f"FROM not found: {left}")
    if not right.exists():
        raise SourceError(f"TO not found: {right}")
    if left.is_dir() != right.is_dir():
        raise SourceError("FROM and TO must both be files or both be directories")

    result = DiffRunResult()

    if not left.is_dir():
        file_type = file_type_for(left.name, file_types)
        pair_settings = layer_settings(
            settings, file_type.settings if file_type else None, overrides
        )
        destination = Path(output) if output else default_output_path(left, right, fmt)
        result.pairs.append(_diff_pair(left, right, pair_settings, file_type))
        write_report(result.pairs[0].report, destination, fmt)
        result.output = destination
        return result

    destination = Path(output) if output else default_output_path(left, right, fmt)
    pairs, skipped = _pair_directory_files(
        left, right, pattern, exclude_pattern, only_file_types, file_types, destination
    )
    result.skipped = skipped
    for left_file, right_file, file_type in pairs:
        pair_settings = layer_settings(
            settings, file_type.settings if file_type else None, overrides
        )
        result.pairs.append(_diff_pair(left_file, right_file, pair_settings, file_type))

    run = DiffRun([pair.report for pair in result.pairs], left.name, right.name)
    logger.info("Writing combined report for %d file pair(s) to %s", len(run), destination)
    write_report(run, destination, fmt)
    result.output = destination
    return result


__all__ = [
    "DiffRunResult",
    "PairResult",
    "REPORT_FORMATS",
    "build_source_options",
    "default_output_path",
    "layer_settings",
    "normalise_format",
    "run_diff",
    "write_report",
]
