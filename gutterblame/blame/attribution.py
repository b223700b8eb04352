# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import dataclasses
import enum
import re
from collections.abc import Iterable, Iterator

UNCOMMITTED_PATTERN = re.compile(r"^0+$")
""" All-zero revision ID that git uses for lines that aren't committed yet. """


def isUncommittedRevision(revisionId: str) -> bool:
    return bool(UNCOMMITTED_PATTERN.match(revisionId))


@dataclasses.dataclass(frozen=True)
class LineAttribution:
    revisionId: str
    authorName: str
    authorEmail: str
    authorShortName: str
    committedDate: str
    "YYYY-MM-DD"
    summary: str
    lineIndex: int
    "0-based line number in the file at blame time"

    def shortRevision(self, numChars: int = 7) -> str:
        return self.revisionId[:numChars]


class FileBlameSet:
    """
    Attributions for one file at one point in time, ordered by line index.
    Uncommitted lines are absent, so the line indices may have gaps.
    """

    def __init__(self, attributions: Iterable[LineAttribution] = ()):
        byLine = {a.lineIndex: a for a in attributions}
        self._byLine = byLine
        self._ordered = tuple(byLine[i] for i in sorted(byLine))

    def __len__(self):
        return len(self._ordered)

    def __bool__(self):
        return bool(self._ordered)

    def __iter__(self) -> Iterator[LineAttribution]:
        return iter(self._ordered)

    def __contains__(self, lineIndex: int):
        return lineIndex in self._byLine

    def __eq__(self, other):
        if not isinstance(other, FileBlameSet):
            return NotImplemented
        return self._ordered == other._ordered

    def __hash__(self):
        return hash(self._ordered)

    def __repr__(self):
        return f"FileBlameSet({len(self)} lines)"

    def get(self, lineIndex: int) -> LineAttribution | None:
        return self._byLine.get(lineIndex, None)

    def lineIndices(self) -> list[int]:
        return [a.lineIndex for a in self._ordered]


class FailureReason(enum.Enum):
    NotARepository = "not a repository"
    UntrackedFile = "untracked file"
    ProcessError = "process error"
    Timeout = "timeout"


class BlameFailure(Exception):
    """
    Why no blame data could be obtained for a file.

    Raised by the process layer and returned (never raised) by BlameService:
    callers treat it exactly like "no data".
    """

    def __init__(self, reason: FailureReason, message: str = ""):
        super().__init__(message or reason.value)
        self.reason = reason
        self.message = message

    def __repr__(self):
        return f"BlameFailure({self.reason.name}, {self.message!r})"

    def __bool__(self):
        return False
