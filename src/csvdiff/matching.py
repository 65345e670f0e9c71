"""Key matching between the FROM (left) and TO (right) record sets."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from .compare import FieldComparator
from .errors import DuplicateKeyWarning
from .records import Record

logger = logging.getLogger(__name__)

Key = tuple[str, ...]


@dataclass
class KeyIndex:
    """Records of one source keyed by normalised key, in encounter order.

    The first record seen for a key wins; later ones only bump the duplicate
    counter.
    """

    records: dict[Key, Record] = field(default_factory=dict)
    occurrences: dict[Key, int] = field(default_factory=dict)

    def add(self, key: Key, record: Record) -> bool:
        if key in self.records:
            self.occurrences[key] += 1
            return False
        self.records[key] = record
        self.occurrences[key] = 1
        return True

    def __contains__(self, key: object) -> bool:
        return key in self.records

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Key]:
        return iter(self.records)

    def __getitem__(self, key: Key) -> Record:
        return self.records[key]

    def items(self) -> Iterable[tuple[Key, Record]]:
        return self.records.items()

    def _duplicated(self) -> list[Key]:
        return [key for key, count in self.occurrences.items() if count > 1]

    @property
    def duplicates(self) -> tuple[Key, ...]:
        """Duplicated keys as spelled by the first record seen for each."""

        return tuple(self.records[key].key for key in self._duplicated())

    def duplicate_warnings(self, side: str) -> list[DuplicateKeyWarning]:
        return [
            DuplicateKeyWarning(side, self.records[key].key, self.occurrences[key])
            for key in self._duplicated()
        ]


def build_index(records: Iterable[Record], comparator: FieldComparator) -> KeyIndex:
    index = KeyIndex()
    for record in records:
        index.add(comparator.normalise_key(record.key), record)
    return index


@dataclass
class MatchResult:
    added: list[Record]
    deleted: list[Record]
    matched: list[tuple[Record, Record]]
    left_duplicates: tuple[Key, ...]
    right_duplicates: tuple[Key, ...]
    left_index: KeyIndex
    right_index: KeyIndex

    @property
    def warnings(self) -> list[DuplicateKeyWarning]:
        return self.left_index.duplicate_warnings("FROM") + self.right_index.duplicate_warnings(
            "TO"
        )


def _build_indices(
    left: Iterable[Record],
    right: Iterable[Record],
    comparator: FieldComparator,
    parallel: bool,
) -> tuple[KeyIndex, KeyIndex]:
    if not parallel:
        return build_index(left, comparator), build_index(right, comparator)
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="csvdiff-index") as pool:
        left_future = pool.submit(build_index, left, comparator)
        right_future = pool.submit(build_index, right, comparator)
        return left_future.result(), right_future.result()


def match(
    left: Iterable[Record],
    right: Iterable[Record],
    comparator: FieldComparator,
    *,
    parallel: bool = False,
) -> MatchResult:
    """Partition two record sets into added, deleted and matched records.

    ``added`` follows TO order, ``deleted`` and ``matched`` follow FROM order.
    Keys are compared after the comparator's normalisation.
    """

    left_index, right_index = _build_indices(left, right, comparator, parallel)

    deleted = [record for key, record in left_index.items() if key not in right_index]
    matched = [
        (record, right_index[key]) for key, record in left_index.items() if key in right_index
    ]
    added = [record for key, record in right_index.items() if key not in left_index]

    logger.debug(
        "Matched keys: from=%d to=%d matched=%d added=%d deleted=%d",
        len(left_index),
        len(right_index),
        len(matched),
        len(added),
        len(deleted),
    )
    if left_index.duplicates or right_index.duplicates:
        logger.debug(
            "Duplicate keys: from=%d to=%d",
            len(left_index.duplicates),
            len(right_index.duplicates),
        )

    return MatchResult(
        added=added,
        deleted=deleted,
        matched=matched,
        left_duplicates=left_index.duplicates,
        right_duplicates=right_index.duplicates,
        left_index=left_index,
        right_index=right_index,
    )


__all__ = ["Key", "KeyIndex", "MatchResult", "build_index", "match"]
