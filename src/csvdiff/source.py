"""Loading delimited text files into schemas and rows."""

from __future__ import annotations

import csv
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .errors import EmptySourceError, SourceError
from .fields import Schema
from .records import KeySpec, Record, build_record

logger = logging.getLogger(__name__)

DELIMITER_ALIASES = {
    "TAB": "\t",
    "\\T": "\t",
    "COMMA": ",",
    "PIPE": "|",
    "SEMICOLON": ";",
}


def parse_delimiter(value: str | None) -> str:
    """Translate delimiter names such as ``TAB`` into the character itself."""

    if value is None or value == "":
        return ","
    alias = DELIMITER_ALIASES.get(value.upper())
    if alias is not None:
        return alias
    if len(value) != 1:
        raise SourceError(f"Delimiter must be a single character, got {value!r}")
    return value


@dataclass(frozen=True)
class SourceOptions:
    """How to tokenise a delimited source file."""

    delimiter: str = ","
    encoding: str = "utf-8-sig"
    has_header: bool = True
    ignore_header: bool = False
    field_names: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "delimiter", parse_delimiter(self.delimiter))
        names = self.field_names
        if isinstance(names, str):
            names = tuple(name.strip() for name in names.split(",") if name.strip())
        object.__setattr__(self, "field_names", tuple(names or ()))
        if self.ignore_header and not self.field_names:
            raise SourceError("--ignore-header requires --field-names to name the fields")


@dataclass
class Source:
    """Rows of one delimited file together with the schema naming their fields."""

    label: str
    schema: Schema
    rows: list[tuple[str, ...]] = field(default_factory=list)
    line_numbers: list[int] = field(default_factory=list)
    path: Path | None = None

    def __len__(self) -> int:
        return len(self.rows)

    def to_records(self, key_spec: KeySpec) -> list[Record]:
        bound = key_spec.bind(self.schema)
        records: list[Record] = []
        for index, row in enumerate(self.rows):
            line_number = self.line_numbers[index] if index < len(self.line_numbers) else None
            records.append(build_record(row, bound, index, line_number=line_number))
        return records


def _make_schema(names: Sequence[str], path: Path) -> Schema:
    try:
        return Schema(tuple(names))
    except ValueError as exc:
        raise SourceError(f"{path}: {exc}") from exc


def load_source(path: Path | str, options: SourceOptions | None = None) -> Source:
    """Read ``path`` into a :class:`Source`.

    The header row (when present) names the fields unless explicit
    ``field_names`` are configured. Blank lines are skipped.
    """

    options = options or SourceOptions()
    source_path = Path(path)
    try:
        handle = source_path.open("r", encoding=options.encoding, newline="")
    except OSError as exc:
        raise SourceError(f"Unable to open {source_path}: {exc}") from exc

    header: list[str] | None = None
    rows: list[tuple[str, ...]] = []
    line_numbers: list[int] = []
    with handle:
        reader = csv.reader(handle, delimiter=options.delimiter)
        try:
            for values in reader:
                if not values or all(not value.strip() for value in values):
                    continue
                if header is None and (options.has_header or options.ignore_header):
                    header = [value.strip() for value in values]
                    continue
                rows.append(tuple(values))
                line_numbers.append(reader.line_num)
        except (csv.Error, UnicodeDecodeError) as exc:
            raise SourceError(f"Unable to parse {source_path}: {exc}") from exc

    if options.field_names:
        schema = _make_schema(options.field_names, source_path)
    elif header is not None:
        schema = _make_schema(header, source_path)
    elif rows:
        schema = Schema.positional(max(len(row) for row in rows))
    else:
        raise EmptySourceError(source_path)

    wide_rows = sum(1 for row in rows if len(row) > len(schema))
    if wide_rows:
        logger.warning(
            "%s: %d row(s) have more values than the %d named fields; extra values are ignored",
            source_path,
            wide_rows,
            len(schema),
        )
    logger.debug("Read %d rows with %d fields from %s", len(rows), len(schema), source_path)
    return Source(
        label=source_path.name,
        schema=schema,
        rows=rows,
        line_numbers=line_numbers,
        path=source_path,
    )


__all__ = ["DELIMITER_ALIASES", "Source", "SourceOptions", "load_source", "parse_delimiter"]
