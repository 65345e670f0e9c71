"""Field references and schema name tables."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .errors import KeyExtractionError

_INDEX_PATTERN = re.compile(r"^\d+$")


@dataclass(frozen=True)
class ByName:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ByIndex:
    index: int

    def __str__(self) -> str:
        return str(self.index)


FieldRef = ByName | ByIndex


def parse_field_ref(token: object) -> FieldRef:
    """Turn a user supplied token into a field reference.

    Integers and all-digit strings are 0-based indexes; a leading ``:`` forces
    the remainder to be treated as a name (``:2019`` names a column called
    ``2019``). Anything else is a name.
    """

    if isinstance(token, ByName | ByIndex):
        return token
    if isinstance(token, bool):
        raise TypeError(f"Invalid field reference {token!r}")
    if isinstance(token, int):
        return ByIndex(token)
    text = str(token).strip()
    if _INDEX_PATTERN.match(text):
        return ByIndex(int(text))
    if text.startswith(":") and len(text) > 1:
        return ByName(text[1:])
    return ByName(text)


def parse_field_spec(value: str | Iterable[object] | None) -> tuple[FieldRef, ...]:
    """Parse a comma separated string (or list from a config file) of field references."""

    if value is None:
        return ()
    tokens: Iterable[object]
    if isinstance(value, str):
        tokens = value.split(",")
    else:
        tokens = value
    refs: list[FieldRef] = []
    for token in tokens:
        if isinstance(token, str) and not token.strip():
            continue
        refs.append(parse_field_ref(token))
    return tuple(refs)


@dataclass(frozen=True)
class Schema:
    """Ordered field names of one source."""

    names: tuple[str, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for name in self.names:
            if name in seen:
                raise ValueError(f"Duplicate field name {name!r} in schema")
            seen.add(name)

    @classmethod
    def positional(cls, width: int) -> Schema:
        return cls(tuple(str(position) for position in range(1, width + 1)))

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def resolve(self, ref: FieldRef, *, role: str = "key") -> int:
        """Return the column position of ``ref`` or raise :class:`KeyExtractionError`."""

        if isinstance(ref, ByIndex):
            if 0 <= ref.index < len(self.names):
                return ref.index
            raise KeyExtractionError(ref.index, self.names, role=role)
        try:
            return self.names.index(ref.name)
        except ValueError:
            raise KeyExtractionError(ref.name, self.names, role=role) from None

    def resolve_all(self, refs: Sequence[FieldRef], *, role: str = "key") -> tuple[int, ...]:
        return tuple(self.resolve(ref, role=role) for ref in refs)

    def names_for(self, refs: Sequence[FieldRef], *, role: str = "field") -> tuple[str, ...]:
        return tuple(self.names[position] for position in self.resolve_all(refs, role=role))


__all__ = [
    "ByIndex",
    "ByName",
    "FieldRef",
    "Schema",
    "parse_field_ref",
    "parse_field_spec",
]
