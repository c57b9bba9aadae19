"""
Structural comparison of serialized record collections.

Records are aligned by content rather than position: identical records
cancel out regardless of order, then leftovers are paired by URL and then
by title so an edited listing shows up as a field-level change instead of
a removal plus an addition.
"""

import logging
from collections import Counter
from typing import List, Optional, Tuple

from ..interfaces import IDifferencer
from ..models.diff import DiffResult, RecordChange
from ..models.record import Record, RecordCollection, deserialize_records

logger = logging.getLogger(__name__)


class Differencer(IDifferencer):
    """Compares the previous snapshot against the current one."""

    def diff(self, old: bytes, new: bytes) -> DiffResult:
        """
        Compare two serialized record collections.

        Args:
            old: Previous snapshot bytes
            new: Current snapshot bytes

        Returns:
            DiffResult, empty when there is no meaningful difference

        Raises:
            SerializationError: If either payload is not a valid snapshot
        """
        if old == new:
            logger.info("Snapshots are byte-identical, skipping comparison")
            return DiffResult()

        result = compare_records(deserialize_records(old), deserialize_records(new))
        if result.is_empty:
            logger.info("Snapshots differ only in formatting or order")
        else:
            logger.info(f"Listing changes detected: {result.summary()}")
        return result


def compare_records(old: RecordCollection, new: RecordCollection) -> DiffResult:
    """Structurally compare two record collections, ignoring order."""
    unmatched_old, unmatched_new = _cancel_identical(old, new)

    changed = []
    for key in ("url", "title"):
        pairs, unmatched_old, unmatched_new = _pair_by(key, unmatched_old, unmatched_new)
        changed.extend(RecordChange(before=before, after=after) for before, after in pairs)

    return DiffResult(added=unmatched_new, removed=unmatched_old, changed=changed)


def _cancel_identical(
    old: RecordCollection, new: RecordCollection
) -> Tuple[List[Record], List[Record]]:
    """Drop records present in both collections, counting duplicates."""
    remaining = Counter(old)

    unmatched_new = []
    for record in new:
        if remaining[record] > 0:
            remaining[record] -= 1
        else:
            unmatched_new.append(record)

    unmatched_old = []
    for record in old:
        if remaining[record] > 0:
            remaining[record] -= 1
            unmatched_old.append(record)

    return unmatched_old, unmatched_new


def _pair_by(
    key: str, old: List[Record], new: List[Record]
) -> Tuple[List[Tuple[Record, Record]], List[Record], List[Record]]:
    """Pair old and new records sharing a non-empty value for key."""
    pairs = []
    leftover_old = list(old)
    leftover_new = []

    for record in new:
        match = _find(leftover_old, key, getattr(record, key))
        if match is None:
            leftover_new.append(record)
        else:
            leftover_old.remove(match)
            pairs.append((match, record))

    return pairs, leftover_old, leftover_new


def _find(records: List[Record], key: str, value: str) -> Optional[Record]:
    if not value:
        return None
    for record in records:
        if getattr(record, key) == value:
            return record
    return None
