"""Diff engine entry points tying matching, classification and reporting together."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from dataclasses import fields as dataclass_fields
from typing import TYPE_CHECKING, Any

from .classify import classify
from .compare import FieldComparator, plan_fields
from .fields import FieldRef, Schema, parse_field_spec
from .matching import match
from .records import KeySpec, Record, build_records
from .report import DiffReport, accumulate

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .source import Source

logger = logging.getLogger(__name__)

_FIELD_LIST_OPTIONS = (
    "key_fields",
    "parent_fields",
    "child_fields",
    "ignore_fields",
    "output_fields",
)


def coerce_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalised = value.strip().lower()
        if normalised in {"true", "1", "yes", "y", "on"}:
            return True
        if normalised in {"false", "0", "no", "n", "off", ""}:
            return False
    return bool(value)


@dataclass(frozen=True)
class DiffOptions:
    """Immutable configuration for one diff run."""

    key_fields: tuple[FieldRef, ...] = ()
    parent_fields: tuple[FieldRef, ...] = ()
    child_fields: tuple[FieldRef, ...] = ()
    ignore_fields: tuple[FieldRef, ...] = ()
    output_fields: tuple[FieldRef, ...] = ()
    diff_common_fields_only: bool = False
    include_matched: bool = False
    ignore_case: bool = False
    trim_whitespace: bool = False
    ignore_adds: bool = False
    ignore_deletes: bool = False
    ignore_updates: bool = False
    ignore_moves: bool = False
    parallel: bool = False

    def __post_init__(self) -> None:
        for name in _FIELD_LIST_OPTIONS:
            object.__setattr__(self, name, parse_field_spec(getattr(self, name)))

    @classmethod
    def option_names(cls) -> tuple[str, ...]:
        return tuple(item.name for item in dataclass_fields(cls))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> DiffOptions:
        """Build options from a config mapping, ignoring unrelated keys."""

        return cls().merged(mapping)

    def merged(self, overrides: Mapping[str, Any]) -> DiffOptions:
        known = set(self.option_names())
        changes: dict[str, Any] = {}
        for name, value in overrides.items():
            name = name.replace("-", "_")
            if name not in known or value is None:
                continue
            if name in _FIELD_LIST_OPTIONS:
                changes[name] = parse_field_spec(value)
            else:
                changes[name] = coerce_bool(value)
        return replace(self, **changes) if changes else self

    @property
    def key_spec(self) -> KeySpec:
        return KeySpec(
            key_fields=self.key_fields,
            parent_fields=self.parent_fields,
            child_fields=self.child_fields,
        )

    @property
    def comparator(self) -> FieldComparator:
        return FieldComparator(ignore_case=self.ignore_case, trim_whitespace=self.trim_whitespace)


def diff_records(
    left: Sequence[Record],
    right: Sequence[Record],
    options: DiffOptions,
    *,
    left_schema: Schema | None = None,
    right_schema: Schema | None = None,
    left_label: str = "FROM",
    right_label: str = "TO",
) -> DiffReport:
    """Diff two already built record sequences.

    Schemas default to the schema of each side's first record; an empty side
    borrows the other side's schema.
    """

    left_schema = left_schema or (left[0].schema if left else None)
    right_schema = right_schema or (right[0].schema if right else None)
    left_schema = left_schema or right_schema or Schema(())
    right_schema = right_schema or left_schema

    plan = plan_fields(
        left_schema,
        right_schema,
        ignore_fields=options.ignore_fields,
        output_fields=options.output_fields,
        diff_common_fields_only=options.diff_common_fields_only,
    )
    comparator = options.comparator

    result = match(left, right, comparator, parallel=options.parallel)
    classified = classify(
        result.matched,
        plan,
        comparator,
        ignore_updates=options.ignore_updates,
        ignore_moves=options.ignore_moves,
    )

    bound = options.key_spec.bind(left_schema)
    report = accumulate(
        result.added,
        result.deleted,
        classified,
        include_matched=options.include_matched,
        ignore_adds=options.ignore_adds,
        ignore_deletes=options.ignore_deletes,
        left_duplicates=result.left_duplicates,
        right_duplicates=result.right_duplicates,
        total_left=len(left),
        total_right=len(right),
        key_fields=bound.key_names,
        parent_fields=bound.parent_names,
        compared_fields=plan.compared,
        output_fields=plan.output,
        left_fields=left_schema.names,
        right_fields=right_schema.names,
        warnings=tuple(result.warnings),
        left_label=left_label,
        right_label=right_label,
    )
    logger.debug("Diff %s -> %s: %s", left_label, right_label, report.summary.to_dict())
    return report


def _row_values(row: Sequence[object] | Mapping[str, object], schema: Schema) -> list[object]:
    if isinstance(row, Mapping):
        return [row.get(name, "") for name in schema.names]
    return list(row)


def diff_rows(
    left_rows: Iterable[Sequence[object] | Mapping[str, object]],
    right_rows: Iterable[Sequence[object] | Mapping[str, object]],
    options: DiffOptions,
    *,
    fields: Sequence[str],
    right_fields: Sequence[str] | None = None,
) -> DiffReport:
    """Diff in-memory rows (sequences or mappings) described by field names."""

    left_schema = Schema(tuple(fields))
    right_schema = Schema(tuple(right_fields)) if right_fields is not None else left_schema
    key_spec = options.key_spec
    left = build_records(
        (_row_values(row, left_schema) for row in left_rows), left_schema, key_spec
    )
    right = build_records(
        (_row_values(row, right_schema) for row in right_rows), right_schema, key_spec
    )
    return diff_records(
        left, right, options, left_schema=left_schema, right_schema=right_schema
    )


def diff_sources(left: Source, right: Source, options: DiffOptions) -> DiffReport:
    """Diff two loaded delimited-text sources."""

    key_spec = options.key_spec
    left_records = left.to_records(key_spec)
    right_records = right.to_records(key_spec)
    logger.debug(
        "Loaded %d FROM records from %s and %d TO records from %s",
        len(left_records),
        left.label,
        len(right_records),
        right.label,
    )
    return diff_records(
        left_records,
        right_records,
        options,
        left_schema=left.schema,
        right_schema=right.schema,
        left_label=left.label,
        right_label=right.label,
    )


__all__ = ["DiffOptions", "coerce_bool", "diff_records", "diff_rows", "diff_sources"]
