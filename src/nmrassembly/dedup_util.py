# -*- coding: ascii -*-
"""Centralized deduplication utilities for nmrassembly."""

import threading
from typing import Any, Dict, Iterator, Optional, Set, Tuple


def early_check(key: Optional[str], seen: Set[str], stats=None,
                metric: str = "duplicate_solutions") -> Tuple[Optional[str], bool]:
    """
    Check if a solution key was already accepted.

    Duplicates are counted under `metric` but NOT added to the seen set; the
    caller must call commit() once the solution is actually kept.

    Returns:
        (key, is_duplicate) tuple; a missing key is treated as a drop
    """
    if not key:
        return None, True

    if key in seen:
        if stats is not None:
            stats.record(metric)
        return key, True

    return key, False


def commit(key: Optional[str], seen: Set[str]) -> None:
    """Commit a key to the seen set after the solution has been kept."""
    if key:
        seen.add(key)


class ResultMap:
    """
    Thread-safe insert-if-absent map from canonical signature to structure.

    The first structure stored under a signature is kept; later inserts of
    the same signature are no-ops, so merging the same results twice leaves
    the map unchanged.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, Any] = {}

    def insert_if_absent(self, key: str, value: Any) -> bool:
        """Store `value` under `key` unless present; True if stored."""
        with self._lock:
            if key in self._items:
                return False
            self._items[key] = value
            return True

    def update(self, items: Dict[str, Any]) -> int:
        """Insert every entry of `items`; returns how many were new."""
        added = 0
        for key, value in items.items():
            if self.insert_if_absent(key, value):
                added += 1
        return added

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._items.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._items)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self.to_dict())
