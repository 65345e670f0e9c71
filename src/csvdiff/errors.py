"""Error types raised by the diff engine and its source loaders."""

from __future__ import annotations

from collections.abc import Sequence


class CsvDiffError(RuntimeError):
    """Base class for every fatal csv-diff error."""


class KeyExtractionError(CsvDiffError):
    """Raised when a key, parent or child field cannot be resolved against a schema."""

    def __init__(self, field: object, available: Sequence[str], *, role: str = "key") -> None:
        self.field = field
        self.available = list(available)
        self.role = role
        super().__init__(
            f"Unable to resolve {role} field {field!r}; "
            f"available fields: {', '.join(self.available) or 'none'}"
        )


class SchemaMismatchError(CsvDiffError):
    """Raised when the two sides expose different field sets."""

    def __init__(self, left_only: Sequence[str], right_only: Sequence[str]) -> None:
        self.left_only = list(left_only)
        self.right_only = list(right_only)
        parts: list[str] = []
        if self.left_only:
            parts.append(f"only in FROM: {', '.join(self.left_only)}")
        if self.right_only:
            parts.append(f"only in TO: {', '.join(self.right_only)}")
        super().__init__(
            "Sources have different fields ("
            + "; ".join(parts)
            + "); use --diff-common-fields-only to compare the shared fields"
        )


class SourceError(CsvDiffError):
    """Raised when a source file cannot be turned into records."""


class EmptySourceError(SourceError):
    """Raised when a source has neither a header line nor configured field names."""

    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(f"{path} is empty and no field names were supplied")


class DuplicateKeyWarning(UserWarning):
    """Non-fatal notice that a key occurs more than once in one source.

    Instances are collected on the report; they are never raised.
    """

    def __init__(self, side: str, key: tuple[str, ...], occurrences: int) -> None:
        self.side = side
        self.key = key
        self.occurrences = occurrences
        super().__init__(
            f"Duplicate key {'|'.join(key)!r} seen {occurrences} times in {side}; "
            "first occurrence used"
        )


__all__ = [
    "CsvDiffError",
    "DuplicateKeyWarning",
    "EmptySourceError",
    "KeyExtractionError",
    "SchemaMismatchError",
    "SourceError",
]
