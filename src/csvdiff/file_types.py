"""File types: named groups of files that share diff settings.

File types are declared in the configuration file, for example::

    [file_types.orders]
    pattern = "orders_*.csv"
    key_fields = ["order_id"]
    ignore_fields = ["updated_at"]
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from fnmatch import fnmatch
from typing import Any

from .config import ConfigError, LoadedConfig


@dataclass(frozen=True)
class FileType:
    name: str
    pattern: str
    exclude_pattern: str | None = None
    settings: Mapping[str, Any] = field(default_factory=dict)
    description: str = ""

    def matches(self, filename: str) -> bool:
        if not fnmatch(filename, self.pattern):
            return False
        return not (self.exclude_pattern and fnmatch(filename, self.exclude_pattern))


def _build_file_type(name: str, section: Mapping[str, Any]) -> FileType:
    pattern = section.get("pattern")
    if not isinstance(pattern, str) or not pattern.strip():
        raise ConfigError(f"File type {name!r} must define a pattern")
    exclude = section.get("exclude_pattern")
    settings = {
        key: value
        for key, value in section.items()
        if key not in {"pattern", "exclude_pattern", "description"}
    }
    return FileType(
        name=name,
        pattern=pattern.strip(),
        exclude_pattern=str(exclude).strip() if exclude else None,
        settings=settings,
        description=str(section.get("description", "")),
    )


def load_file_types(config: LoadedConfig) -> dict[str, FileType]:
    file_types: dict[str, FileType] = {}
    for name, section in config.file_types.items():
        if not isinstance(section, Mapping):
            raise ConfigError(f"File type {name!r} must be a table")
        file_types[name] = _build_file_type(name, section)
    return file_types


def select_file_types(
    available: Mapping[str, FileType], requested: Sequence[str] | None
) -> list[FileType]:
    """Pick the file types named in ``requested``; names may use wildcards."""

    if not requested:
        return list(available.values())
    if not available:
        raise ConfigError("--file-types requires a .csvdiff configuration defining file_types")

    selected: list[FileType] = []
    for request in requested:
        matches = [
            file_type
            for name, file_type in available.items()
            if fnmatch(name.lower(), request.strip().lower())
        ]
        if not matches:
            raise ConfigError(
                f"Unknown file type {request!r}; known types: {', '.join(available)}"
            )
        selected.extend(match for match in matches if match not in selected)
    return selected


def file_type_for(filename: str, file_types: Iterable[FileType]) -> FileType | None:
    for file_type in file_types:
        if file_type.matches(filename):
            return file_type
    return None


__all__ = ["FileType", "file_type_for", "load_file_types", "select_file_types"]
