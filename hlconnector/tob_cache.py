"""Bounded de-duplicating cache of top-of-book snapshots."""

from __future__ import annotations

import enum
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

Tob = tuple[Any, Any]

DEFAULT_CAPACITY = 100


class CacheOutcome(enum.Enum):
    ADDED = "added"
    DUPLICATE = "duplicate"
    ADDED_WITH_EVICTION = "added_with_eviction"


@dataclass(frozen=True)
class TobCacheResult:
    """What an update did; ``evicted_id`` is set when the oldest entry was dropped."""

    outcome: CacheOutcome
    evicted_id: str | None = None


class TobCache:
    """Remembers the most recent snapshots by message id, oldest evicted first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: OrderedDict[str, Tob] = OrderedDict()

    def update(self, message_id: str, tob: Tob) -> TobCacheResult:
        """Insert a snapshot unless its id is already known."""
        if message_id in self._entries:
            return TobCacheResult(CacheOutcome.DUPLICATE)
        evicted_id = None
        if len(self._entries) >= self.capacity:
            evicted_id, _ = self._entries.popitem(last=False)
        self._entries[message_id] = tob
        if evicted_id is None:
            return TobCacheResult(CacheOutcome.ADDED)
        return TobCacheResult(CacheOutcome.ADDED_WITH_EVICTION, evicted_id)

    def get(self, message_id: str) -> Tob | None:
        return self._entries.get(message_id)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._entries