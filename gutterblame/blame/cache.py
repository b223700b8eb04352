# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable
from typing import NamedTuple

from gutterblame.blame.attribution import FileBlameSet

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 30_000


def monotonicMs() -> float:
    return time.monotonic() * 1000


class CacheKey(NamedTuple):
    repoRoot: str
    relativePath: str


@dataclasses.dataclass(frozen=True)
class CacheEntry:
    key: CacheKey
    payload: str | FileBlameSet
    fetchedAt: float
    "Clock reading (ms) when the entry was stored"


class BlameCache:
    """
    Blame data per file. Entries go stale after `ttl` milliseconds, but they
    stay in the cache until they're explicitly invalidated or overwritten.
    """

    def __init__(self, ttl: int = DEFAULT_TTL_MS, clock: Callable[[], float] = monotonicMs, maxEntries: int = 0):
        self.ttl = ttl
        self.clock = clock
        self.maxEntries = maxEntries
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._invalidatedAt: dict[CacheKey, float] = {}
        self._clearedAt = float("-inf")

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key: CacheKey):
        return key in self._entries

    def keys(self) -> list[CacheKey]:
        return list(self._entries.keys())

    def get(self, key: CacheKey) -> CacheEntry | None:
        """ Return the entry for `key` even if it's stale. """
        entry = self._entries.get(key, None)
        if entry is None:
            return None
        return dataclasses.replace(entry)

    def put(self, key: CacheKey, payload: str | FileBlameSet, requestedAt: float | None = None) -> bool:
        """
        Store `payload` for `key` and stamp it with the current time.

        If `requestedAt` is given, the write is discarded (and False returned)
        when the data was requested before the current entry was stored, or
        before the key was last invalidated.
        """
        if requestedAt is not None:
            current = self._entries.get(key, None)
            if current is not None and requestedAt < current.fetchedAt:
                logger.debug(f"Discarding late fetch for {key.relativePath} (requested before current entry)")
                return False
            if requestedAt < max(self._clearedAt, self._invalidatedAt.get(key, float("-inf"))):
                logger.debug(f"Discarding late fetch for {key.relativePath} (requested before invalidation)")
                return False

        self._entries[key] = CacheEntry(key, payload, self.clock())
        # Late fetches for this key are now rejected by the entry's own timestamp
        self._invalidatedAt.pop(key, None)
        self.trim()
        return True

    def isFresh(self, key: CacheKey) -> bool:
        entry = self._entries.get(key, None)
        if entry is None:
            return False
        return self.clock() - entry.fetchedAt <= self.ttl

    def invalidate(self, key: CacheKey):
        self._invalidatedAt[key] = self.clock()
        self._entries.pop(key, None)

    def clear(self):
        self._clearedAt = self.clock()
        self._invalidatedAt.clear()
        self._entries.clear()

    def trim(self):
        """ Drop the oldest entries until the cache fits within maxEntries. """
        if self.maxEntries <= 0:
            return

        while len(self._entries) > self.maxEntries:
            oldest = min(self._entries.values(), key=lambda e: e.fetchedAt)
            logger.debug(f"Cache full, dropping {oldest.key.relativePath}")
            del self._entries[oldest.key]
