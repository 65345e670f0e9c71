"""Classification of matched record pairs into updates, moves and no-ops."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass

from .compare import Comparison, FieldComparator, FieldPlan
from .records import Record
from .report import DiffEntry, DiffKind, FieldDiff


@dataclass(frozen=True)
class Move:
    moved: bool
    from_position: int
    to_position: int


def field_diffs(
    left: Record, right: Record, plan: FieldPlan, comparator: FieldComparator
) -> tuple[bool, tuple[FieldDiff, ...]]:
    """Compare every planned field of a matched pair.

    Returns whether any compared field differs, and the differing fields that
    are eligible for output. The two can disagree when ``output_fields``
    hides a changed field.
    """

    changed = False
    diffs: list[FieldDiff] = []
    for name in plan.compared:
        left_value = left.get(name, "") or ""
        right_value = right.get(name, "") or ""
        if comparator.compare(left_value, right_value) is Comparison.EQUAL:
            continue
        changed = True
        if plan.is_output(name):
            diffs.append(FieldDiff(name, left_value, right_value))
    return changed, tuple(diffs)


def _sibling_ordinals(
    pairs: Sequence[tuple[Record, Record]],
    indexes: Sequence[int],
    side: int,
    comparator: FieldComparator,
) -> dict[int, int]:
    groups: dict[tuple[str, ...], list[int]] = defaultdict(list)
    ordered = sorted(indexes, key=lambda index: pairs[index][side].source_index)
    for index in ordered:
        parent = comparator.normalise_key(pairs[index][side].parent_key)
        groups[parent].append(index)
    ordinals: dict[int, int] = {}
    for members in groups.values():
        for ordinal, index in enumerate(members):
            ordinals[index] = ordinal
    return ordinals


def detect_moves(
    pairs: Sequence[tuple[Record, Record]], comparator: FieldComparator
) -> list[Move]:
    """Work out which matched pairs changed position.

    A pair moved when its parent key differs between the two sides, or when
    its ordinal among the matched siblings of the same parent differs.
    Re-parented pairs are left out of the sibling ranking so they do not
    shift their former siblings.
    """

    reparented = [
        comparator.normalise_key(left.parent_key) != comparator.normalise_key(right.parent_key)
        for left, right in pairs
    ]
    stable = [index for index, flag in enumerate(reparented) if not flag]
    everything = range(len(pairs))

    stable_left = _sibling_ordinals(pairs, stable, 0, comparator)
    stable_right = _sibling_ordinals(pairs, stable, 1, comparator)
    all_left = _sibling_ordinals(pairs, everything, 0, comparator)
    all_right = _sibling_ordinals(pairs, everything, 1, comparator)

    moves: list[Move] = []
    for index, flag in enumerate(reparented):
        if flag:
            moves.append(Move(True, all_left[index], all_right[index]))
            continue
        from_position = stable_left[index]
        to_position = stable_right[index]
        moves.append(Move(from_position != to_position, from_position, to_position))
    return moves


def classify(
    pairs: Sequence[tuple[Record, Record]],
    plan: FieldPlan,
    comparator: FieldComparator,
    *,
    ignore_updates: bool = False,
    ignore_moves: bool = False,
) -> list[DiffEntry]:
    """Turn matched pairs into UPDATED or UNCHANGED entries, flagging moves."""

    moves = None if ignore_moves else detect_moves(pairs, comparator)
    entries: list[DiffEntry] = []
    for index, (left, right) in enumerate(pairs):
        kind = DiffKind.UNCHANGED
        diffs: tuple[FieldDiff, ...] = ()
        if not ignore_updates:
            changed, diffs = field_diffs(left, right, plan, comparator)
            if changed:
                kind = DiffKind.UPDATED

        move = moves[index] if moves is not None else None
        entries.append(
            DiffEntry(
                kind=kind,
                key=left.key,
                parent_key=right.parent_key,
                left=left,
                right=right,
                field_diffs=diffs,
                moved=bool(move and move.moved),
                from_position=move.from_position if move else None,
                to_position=move.to_position if move else None,
            )
        )
    return entries


__all__ = ["Move", "classify", "detect_moves", "field_diffs"]
