"""Command line interface for the csv-diff tool."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from csvdiff import __version__
from csvdiff.config import LoadedConfig, find_config
from csvdiff.entrypoints import REPORT_FORMATS, DiffRunResult, layer_settings, run_diff
from csvdiff.errors import CsvDiffError
from csvdiff.file_types import load_file_types, select_file_types
from csvdiff.report import format_key

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

_SETTING_ARGS = (
    "key_fields",
    "parent_fields",
    "child_fields",
    "ignore_fields",
    "output_fields",
    "field_names",
    "delimiter",
    "encoding",
    "trim_whitespace",
    "ignore_header",
    "has_header",
    "ignore_case",
    "diff_common_fields_only",
    "include_matched",
    "ignore_adds",
    "ignore_deletes",
    "ignore_updates",
    "ignore_moves",
    "parallel",
)


def _flag(parser: argparse.ArgumentParser, *names: str, help: str) -> None:
    parser.add_argument(*names, action=argparse.BooleanOptionalAction, default=None, help=help)


def _create_diff_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="csv-diff",
        description="Generate a diff report between two delimited files or directories.",
    )
    parser.add_argument(
        "from_path", metavar="FROM", help="The file or dir to use as the left or from source"
    )
    parser.add_argument(
        "to_path", metavar="TO", help="The file or dir to use as the right or to source"
    )
    parser.add_argument(
        "pattern",
        nargs="?",
        default="*",
        help="File name pattern selecting files when diffing directories (default: *)",
    )

    source = parser.add_argument_group("source options")
    source.add_argument(
        "-t",
        "--file-types",
        help="Comma separated file type names (wildcards allowed) defined in .csvdiff config",
    )
    source.add_argument(
        "-x", "--exclude-pattern", help="File name pattern of files to exclude in directory mode"
    )
    source.add_argument(
        "-f",
        "--field-names",
        help="Comma separated names for each field; required when files have no header row",
    )
    source.add_argument(
        "-k",
        "--key-fields",
        help="Key field name(s) or index(es); the last one is the child, the rest the parent",
    )
    source.add_argument("-p", "--parent-fields", help="Parent field name(s) or index(es)")
    source.add_argument("-c", "--child-fields", help="Child field name(s) or index(es)")
    source.add_argument(
        "-d", "--delimiter", help="Field delimiter; use TAB for tab-delimited files (default: ,)"
    )
    source.add_argument(
        "-e", "--encoding", help="Encoding used to read the files (default: utf-8, BOM tolerated)"
    )
    _flag(
        source,
        "-w",
        "--trim-whitespace",
        help="Trim leading/trailing whitespace before comparing fields",
    )
    _flag(
        source,
        "-i",
        "--ignore-header",
        help="Skip the first line of each file; requires --field-names",
    )
    _flag(source, "--header", help="Whether the first line holds field names (default: yes)")

    diff = parser.add_argument_group("diff options")
    _flag(diff, "--ignore-case", help="Compare fields without regard to case")
    _flag(diff, "-C", "--diff-common-fields-only", help="Only compare fields present in both files")
    diff.add_argument(
        "-I", "--ignore-fields", help="Names or indexes of fields to ignore during the diff"
    )
    _flag(diff, "-A", "--ignore-adds", help="Ignore items in TO that are not in FROM")
    _flag(diff, "-D", "--ignore-deletes", help="Ignore items in FROM that are not in TO")
    _flag(diff, "-U", "--ignore-updates", help="Ignore changes to fields of existing items")
    _flag(diff, "-M", "--ignore-moves", help="Ignore changes in an item's position")
    _flag(diff, "--parallel", help="Index FROM and TO on two worker threads")

    output = parser.add_argument_group("output options")
    output.add_argument(
        "--format",
        type=str.lower,
        choices=sorted(REPORT_FORMATS),
        default=None,
        help="Report format: html, xlsx, txt, csv or json (default: html)",
    )
    output.add_argument(
        "-o",
        "--output",
        help="Report path; defaults to Diff_<FROM>_to_<TO>.<FORMAT> beside FROM. "
        "Directory runs write one combined report",
    )
    output.add_argument(
        "-O", "--output-fields", help="Names or indexes of the fields to include in the output"
    )
    _flag(output, "--include-matched", help="Include matched records without differences")
    output.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    output.add_argument("--version", action="version", version=f"csv-diff {__version__}")
    return parser


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return _create_diff_parser().parse_args(argv)


def _parse_init_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="csv-diff init",
        description="Create a .csvdiff.toml configuration template in the current directory.",
    )
    return parser.parse_args(argv)


def _generate_config_template() -> str:
    lines = [
        "# csv-diff configuration template",
        "# Generated by `csv-diff init`. Uncomment and edit values to customise defaults.",
        "# Command line options always override the values below.",
        "",
        "[defaults]",
        '# key_fields = ["id"]',
        '# ignore_fields = ["updated_at"]',
        '# delimiter = ","',
        '# encoding = "utf-8"',
        "# trim_whitespace = false",
        "# ignore_case = false",
        "# diff_common_fields_only = false",
        '# format = "html"  # options: html | xlsx | txt | csv | json',
        "",
        "# [file_types.orders]",
        '# pattern = "orders_*.csv"',
        '# parent_fields = ["customer_id"]',
        '# child_fields = ["order_id"]',
        "",
    ]
    return "\n".join(lines)


def _run_init(argv: Sequence[str] | None = None) -> int:
    _parse_init_args(argv)
    target = Path.cwd() / ".csvdiff.toml"
    if target.exists():
        print(f"Configuration already exists at {target}")
        return EXIT_SUCCESS

    target.write_text(_generate_config_template() + "\n", encoding="utf-8")
    print(f"Wrote configuration template to {target}")
    return EXIT_SUCCESS


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _split_list(value: str | None) -> list[str] | None:
    if not value:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or None


def _collect_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for name in _SETTING_ARGS:
        value = getattr(args, "header" if name == "has_header" else name, None)
        if value is not None:
            overrides[name] = value
    return overrides


def _config_search_dirs(from_path: Path) -> list[Path]:
    from_dir = from_path if from_path.is_dir() else from_path.parent
    return [from_dir, Path.cwd()]


def _resolve_format(args: argparse.Namespace, loaded: LoadedConfig) -> str:
    if args.format:
        return args.format
    configured = loaded.defaults.get("format")
    return str(configured) if configured else "html"


def _print_summary(result: DiffRunResult) -> None:
    totals = result.totals()
    summary_line = (
        "Diff summary | added: {added} | deleted: {deleted} | updated: {updated} | "
        "moved: {moved} | unchanged: {unchanged} | output: {output}"
    ).format(output=str(result.output), **totals)
    print(summary_line)

    for pair in result.pairs:
        report = pair.report
        for warning in report.warnings:
            print(f"Warning: {pair.left.name}: {warning}", file=sys.stderr)
        if report.total_left == 0 or report.total_right == 0:
            empty = report.left_label if report.total_left == 0 else report.right_label
            print(f"Note: {empty} contains no records", file=sys.stderr)

    for skipped in result.skipped:
        print(f"Warning: no matching TO file for {skipped.name}; skipped", file=sys.stderr)

    print("Generated reports:")
    for path in result.produced:
        print(f"  - {path}")


def _describe_duplicates(result: DiffRunResult) -> list[str]:
    lines: list[str] = []
    for pair in result.pairs:
        report = pair.report
        if report.left_duplicates:
            keys = ", ".join(format_key(key) for key in report.left_duplicates)
            lines.append(f"{pair.left.name}: duplicate FROM keys {keys}")
        if report.right_duplicates:
            keys = ", ".join(format_key(key) for key in report.right_duplicates)
            lines.append(f"{pair.right.name}: duplicate TO keys {keys}")
    return lines


def main(argv: Sequence[str] | None = None) -> int:
    argv_list = list(sys.argv[1:]) if argv is None else list(argv)

    if argv_list and argv_list[0] == "init":
        return _run_init(argv_list[1:])

    args = _parse_args(argv_list)
    _configure_logging(args.verbose)

    from_path = Path(args.from_path)
    try:
        loaded_config = find_config(_config_search_dirs(from_path))
        settings = layer_settings(loaded_config.defaults)
        requested_types = _split_list(args.file_types)
        file_types = select_file_types(load_file_types(loaded_config), requested_types)
        result = run_diff(
            from_path,
            args.to_path,
            settings=settings,
            overrides=_collect_overrides(args),
            pattern=args.pattern,
            exclude_pattern=args.exclude_pattern,
            file_types=file_types,
            only_file_types=bool(requested_types),
            output=args.output,
            report_format=_resolve_format(args, loaded_config),
        )
    except (CsvDiffError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    _print_summary(result)
    for line in _describe_duplicates(result):
        print(f"Note: {line}")
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
