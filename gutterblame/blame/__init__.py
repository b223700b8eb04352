# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Line attributions from "git blame": parsing and caching.

BlameService lives in gutterblame.blame.service (import it from there).
"""

from gutterblame.blame.attribution import (
    BlameFailure,
    FailureReason,
    FileBlameSet,
    LineAttribution,
    isUncommittedRevision,
)
from gutterblame.blame.cache import BlameCache, CacheEntry, CacheKey
from gutterblame.blame.parser import parse, parseLine
