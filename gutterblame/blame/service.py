# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Callable

from gutterblame.blame import parser
from gutterblame.blame.attribution import BlameFailure, FailureReason, FileBlameSet, LineAttribution
from gutterblame.blame.cache import BlameCache, CacheKey
from gutterblame.gitdriver import BlameDriver, BlameInvoker, resolveRelativePath, resolveRepoRoot
from gutterblame.qt import *
from gutterblame.settings import BlamePrefs
from gutterblame.toolbox import Benchmark, resolveDirectorySymlinks

logger = logging.getLogger(__name__)

FileBlameCallback = Callable[[FileBlameSet | BlameFailure], None]


@dataclasses.dataclass
class _PendingFetch:
    requestedAt: float
    callbacks: list[FileBlameCallback]
    superseded: bool = False


class BlameService(QObject):
    """
    Answers blame queries for whole files and single lines.

    Runs git blame at most once per file within the cache's TTL. Asynchronous
    fetches never run two blame processes for the same file at the same time.
    A blocking query made while a fetch is in flight runs its own process;
    its result then supersedes the one the fetch brings back.
    Failures are returned as BlameFailure values; nothing is raised.
    """

    def __init__(self, cache: BlameCache | None = None, invoker: BlameInvoker | None = None, parent: QObject | None = None):
        super().__init__(parent)
        self.setObjectName("BlameService")
        self.cache = cache if cache is not None else BlameCache()
        self.invoker = invoker if invoker is not None else BlameInvoker(parent=self)
        self._parsed: dict[CacheKey, tuple[float, FileBlameSet]] = {}
        self._pending: dict[CacheKey, _PendingFetch] = {}

    # -------------------------------------------------------------------------
    # Keys

    @staticmethod
    def resolveKey(repoRoot: str, filePath: str) -> CacheKey:
        """ Raise BlameFailure if the file isn't inside a repository. """
        if not repoRoot:
            repoRoot = resolveRepoRoot(filePath)
        # pygit2 reports a resolved working directory; match it when the file
        # is opened through a symlinked directory
        repoRoot = os.path.normpath(os.path.realpath(repoRoot))
        relativePath = resolveRelativePath(repoRoot, resolveDirectorySymlinks(filePath))
        return CacheKey(repoRoot, relativePath)

    # -------------------------------------------------------------------------
    # Synchronous queries

    def getFileBlame(self, repoRoot: str, filePath: str) -> FileBlameSet | BlameFailure:
        try:
            key = self.resolveKey(repoRoot, filePath)
        except BlameFailure as failure:
            logger.debug(f"No blame for {filePath}: {failure}")
            return failure

        if self.cache.isFresh(key):
            return self._parseCached(key)

        requestedAt = self.cache.clock()
        try:
            rawOutput = self.invoker.run(key.repoRoot, key.relativePath)
        except BlameFailure as failure:
            self._logFailure(key, failure)
            return failure

        return self._store(key, rawOutput, requestedAt)

    def getLineBlame(self, repoRoot: str, filePath: str, lineIndex: int) -> LineAttribution | None | BlameFailure:
        result = self.getFileBlame(repoRoot, filePath)
        if isinstance(result, BlameFailure):
            return result
        return result.get(lineIndex)

    # -------------------------------------------------------------------------
    # Asynchronous queries

    def fetchFileBlame(self, repoRoot: str, filePath: str, callback: FileBlameCallback):
        """
        Get the blame for a file without blocking the event loop.

        If the cache is fresh, `callback` is called before this function returns.
        Otherwise, it's called once the blame process has completed.
        """
        try:
            key = self.resolveKey(repoRoot, filePath)
        except BlameFailure as failure:
            logger.debug(f"No blame for {filePath}: {failure}")
            callback(failure)
            return

        if self.cache.isFresh(key):
            callback(self._parseCached(key))
            return

        pending = self._pending.get(key, None)
        if pending is not None:
            # Queue up behind the fetch that's already running for this file
            pending.callbacks.append(callback)
            return

        self._startFetch(key, [callback])

    def isFetching(self, repoRoot: str, filePath: str) -> bool:
        try:
            key = self.resolveKey(repoRoot, filePath)
        except BlameFailure:
            return False
        return key in self._pending

    def _startFetch(self, key: CacheKey, callbacks: list[FileBlameCallback]):
        pending = _PendingFetch(self.cache.clock(), callbacks)
        self._pending[key] = pending
        self.invoker.start(key.repoRoot, key.relativePath,
                           lambda result: self._onFetchComplete(key, pending, result))

    def _onFetchComplete(self, key: CacheKey, pending: _PendingFetch, result: str | BlameFailure):
        if self._pending.get(key, None) is not pending:
            # Service was shut down while the process was running
            return

        del self._pending[key]

        if pending.superseded:
            # The file was invalidated after this fetch began: its output is
            # stale. Serve the waiting callbacks from a new fetch instead.
            logger.debug(f"Fetch for {key.relativePath} was superseded, fetching again")
            self._startFetch(key, pending.callbacks)
            return

        if isinstance(result, BlameFailure):
            self._logFailure(key, result)
            outcome = result
        else:
            outcome = self._store(key, result, pending.requestedAt)

        for callback in pending.callbacks:
            callback(outcome)

    # -------------------------------------------------------------------------
    # Cache management

    def invalidate(self, repoRoot: str, filePath: str):
        try:
            key = self.resolveKey(repoRoot, filePath)
        except BlameFailure:
            return

        self.cache.invalidate(key)
        self._parsed.pop(key, None)

        pending = self._pending.get(key, None)
        if pending is not None:
            pending.superseded = True

    def applyPrefs(self, prefs: BlamePrefs):
        """ Apply cache, timeout and git settings to this service and its invoker. """
        self.cache.ttl = prefs.cacheTTL
        self.cache.maxEntries = prefs.maxCacheEntries
        self.cache.trim()
        self._pruneParsed()
        self.invoker.timeout = prefs.processTimeout
        BlameDriver.setGitPath(prefs.gitPath)

    def clearCache(self):
        self.cache.clear()
        self._parsed.clear()

    def shutdown(self):
        """ Stop all blame processes, drop pending callbacks, and clear the cache. """
        self._pending.clear()
        self.invoker.killAll()
        self.clearCache()

    # -------------------------------------------------------------------------

    def _store(self, key: CacheKey, rawOutput: str, requestedAt: float) -> FileBlameSet:
        with Benchmark(f"parse {key.relativePath}"):
            blameSet = parser.parse(rawOutput)

        if self.cache.put(key, rawOutput, requestedAt):
            entry = self.cache.get(key)
            if entry is not None:
                self._parsed[key] = (entry.fetchedAt, blameSet)
            self._pruneParsed()
        else:
            # A newer fetch has already landed in the cache; prefer it.
            cached = self._parseCached(key)
            if cached is not None:
                return cached

        return blameSet

    def _parseCached(self, key: CacheKey) -> FileBlameSet | None:
        entry = self.cache.get(key)
        if entry is None:
            return None

        memo = self._parsed.get(key, None)
        if memo is not None and memo[0] == entry.fetchedAt:
            return memo[1]

        payload = entry.payload
        if isinstance(payload, FileBlameSet):
            blameSet = payload
        else:
            with Benchmark(f"parse {key.relativePath}"):
                blameSet = parser.parse(payload)

        self._parsed[key] = (entry.fetchedAt, blameSet)
        return blameSet

    def _pruneParsed(self):
        """ Forget parsed results for entries the cache has dropped. """
        for key in [k for k in self._parsed if k not in self.cache]:
            del self._parsed[key]

    @staticmethod
    def _logFailure(key: CacheKey, failure: BlameFailure):
        if failure.reason in (FailureReason.NotARepository, FailureReason.UntrackedFile):
            logger.debug(f"No blame for {key.relativePath}: {failure}")
        else:
            logger.warning(f"Blame failed for {key.relativePath}: {failure}")
