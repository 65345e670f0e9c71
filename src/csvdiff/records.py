"""Record model: one parsed source row plus its derived key."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .fields import FieldRef, Schema, parse_field_spec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeySpec:
    """How to derive a record key from its fields.

    Either ``key_fields`` (the last field is the child, the rest form the
    parent) or ``parent_fields`` plus ``child_fields`` (key is parent + child).
    When ``key_fields`` and ``parent_fields`` are both given, the key is used
    as-is and the parent fields only group siblings.
    """

    key_fields: tuple[FieldRef, ...] = ()
    parent_fields: tuple[FieldRef, ...] = ()
    child_fields: tuple[FieldRef, ...] = ()

    def __post_init__(self) -> None:
        if not self.key_fields and not (self.parent_fields or self.child_fields):
            raise ValueError("key_fields or parent_fields/child_fields must be provided")
        if self.key_fields and self.child_fields:
            raise ValueError("key_fields cannot be combined with child_fields")

    @classmethod
    def from_options(
        cls,
        key_fields: object = None,
        parent_fields: object = None,
        child_fields: object = None,
    ) -> KeySpec:
        return cls(
            key_fields=parse_field_spec(key_fields),  # type: ignore[arg-type]
            parent_fields=parse_field_spec(parent_fields),  # type: ignore[arg-type]
            child_fields=parse_field_spec(child_fields),  # type: ignore[arg-type]
        )

    def bind(self, schema: Schema) -> BoundKeySpec:
        """Resolve every reference against ``schema`` once, failing early."""

        if self.key_fields:
            key_positions = schema.resolve_all(self.key_fields, role="key")
            if self.parent_fields:
                parent_positions = schema.resolve_all(self.parent_fields, role="parent")
            else:
                parent_positions = key_positions[:-1]
        else:
            parent_positions = schema.resolve_all(self.parent_fields, role="parent")
            child_positions = schema.resolve_all(self.child_fields, role="child")
            key_positions = parent_positions + child_positions
        return BoundKeySpec(
            schema=schema,
            key_positions=key_positions,
            parent_positions=parent_positions,
        )


@dataclass(frozen=True)
class BoundKeySpec:
    schema: Schema
    key_positions: tuple[int, ...]
    parent_positions: tuple[int, ...]

    @property
    def key_names(self) -> tuple[str, ...]:
        return tuple(self.schema.names[position] for position in self.key_positions)

    @property
    def parent_names(self) -> tuple[str, ...]:
        return tuple(self.schema.names[position] for position in self.parent_positions)


@dataclass(frozen=True)
class Record:
    """A source row with its field values stored verbatim."""

    schema: Schema
    values: tuple[str, ...]
    key: tuple[str, ...]
    parent_key: tuple[str, ...] = ()
    source_index: int = 0
    line_number: int | None = field(default=None, compare=False)

    def get(self, name: str, default: str | None = None) -> str | None:
        try:
            return self.values[self.schema.names.index(name)]
        except ValueError:
            return default

    def as_dict(self) -> dict[str, str]:
        return dict(zip(self.schema.names, self.values))


def build_record(
    row: Sequence[object],
    bound: BoundKeySpec,
    source_index: int,
    *,
    line_number: int | None = None,
) -> Record:
    width = len(bound.schema)
    if len(row) > width:
        logger.debug(
            "Row %s has %d values but the schema names %d fields; extra values dropped",
            line_number if line_number is not None else source_index + 1,
            len(row),
            width,
        )
    values = tuple("" if value is None else str(value) for value in row[:width])
    if len(values) < width:
        values = values + ("",) * (width - len(values))
    return Record(
        schema=bound.schema,
        values=values,
        key=tuple(values[position] for position in bound.key_positions),
        parent_key=tuple(values[position] for position in bound.parent_positions),
        source_index=source_index,
        line_number=line_number,
    )


def build_records(
    rows: Iterable[Sequence[object]],
    schema: Schema,
    key_spec: KeySpec,
) -> list[Record]:
    """Build records for every row, resolving the key spec before the first row."""

    bound = key_spec.bind(schema)
    return [build_record(row, bound, index) for index, row in enumerate(rows)]


__all__ = ["BoundKeySpec", "KeySpec", "Record", "build_record", "build_records"]
