"""Field comparison rules shared by key matching and record classification."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from .errors import KeyExtractionError, SchemaMismatchError
from .fields import ByIndex, FieldRef, Schema


class Comparison(str, Enum):
    EQUAL = "equal"
    DIFFERENT = "different"


@dataclass(frozen=True)
class FieldComparator:
    """Normalise and compare raw field values.

    Values are compared as literal strings after optional whitespace trimming
    and case folding; nothing is parsed as a number or date.
    """

    ignore_case: bool = False
    trim_whitespace: bool = False

    def normalise(self, value: str | None) -> str:
        if value is None:
            return ""
        if self.trim_whitespace:
            value = value.strip()
        if self.ignore_case:
            value = value.casefold()
        return value

    def normalise_key(self, key: Sequence[str]) -> tuple[str, ...]:
        return tuple(self.normalise(part) for part in key)

    def compare(self, left_value: str | None, right_value: str | None) -> Comparison:
        if self.normalise(left_value) == self.normalise(right_value):
            return Comparison.EQUAL
        return Comparison.DIFFERENT


@dataclass(frozen=True)
class FieldPlan:
    """Which fields take part in a diff run.

    ``compared`` decides Unchanged vs Updated; ``output`` is the subset allowed
    to appear in field diffs.
    """

    compared: tuple[str, ...]
    output: tuple[str, ...]
    ignored: tuple[str, ...] = ()
    left_only: tuple[str, ...] = ()
    right_only: tuple[str, ...] = ()

    def is_output(self, name: str) -> bool:
        return name in self.output


def _resolve_names(
    refs: Sequence[FieldRef], left: Schema, right: Schema, *, role: str
) -> tuple[str, ...]:
    available = list(left.names) + [name for name in right.names if name not in left]
    names: list[str] = []
    for ref in refs:
        if isinstance(ref, ByIndex):
            # Indexes address the FROM layout.
            name = left.names[left.resolve(ref, role=role)]
        elif ref.name in available:
            name = ref.name
        else:
            raise KeyExtractionError(ref.name, available, role=role)
        if name not in names:
            names.append(name)
    return tuple(names)


def plan_fields(
    left: Schema,
    right: Schema,
    *,
    ignore_fields: Sequence[FieldRef] = (),
    output_fields: Sequence[FieldRef] = (),
    diff_common_fields_only: bool = False,
) -> FieldPlan:
    """Work out the compared and output field lists for two schemas.

    Raises :class:`SchemaMismatchError` when a non-ignored field exists on only
    one side and ``diff_common_fields_only`` is not set.
    """

    ignored = _resolve_names(ignore_fields, left, right, role="ignore")
    left_only = tuple(name for name in left.names if name not in right and name not in ignored)
    right_only = tuple(name for name in right.names if name not in left and name not in ignored)

    if (left_only or right_only) and not diff_common_fields_only:
        raise SchemaMismatchError(left_only, right_only)

    compared = tuple(name for name in left.names if name in right and name not in ignored)

    if output_fields:
        requested = _resolve_names(output_fields, left, right, role="output")
        output = tuple(name for name in requested if name in compared)
    else:
        output = compared

    return FieldPlan(
        compared=compared,
        output=output,
        ignored=ignored,
        left_only=left_only,
        right_only=right_only,
    )


__all__ = ["Comparison", "FieldComparator", "FieldPlan", "plan_fields"]
