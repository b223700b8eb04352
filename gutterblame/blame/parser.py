# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Parser for the output of "git blame --porcelain" and "git blame --line-porcelain".

Each line of the blamed file is described by a block:

    <revision> <original line> <final line> [<group size>]
    author Jane Roe
    author-mail <jane@example.com>
    author-time 1700000000
    ...
    summary Fix the frobnicator
    \t<line contents>

With --porcelain, the metadata lines only appear in the first block that
mentions a given revision. Later blocks for the same revision inherit them.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from datetime import datetime, timezone

from gutterblame.blame.attribution import FileBlameSet, LineAttribution, isUncommittedRevision
from gutterblame.toolbox import firstToken

logger = logging.getLogger(__name__)

# <revision> <original line> <final line> [<group size>]
# Revision is a SHA-1 (40 hex) or SHA-256 (64 hex) object ID.
_headerPattern = re.compile(r"^([\da-f]{40}(?:[\da-f]{24})?) (\d+) (\d+)(?: (\d+))?$")

# Metadata fields that we keep. Any other keyword is ignored.
_keptFields = ("author", "author-mail", "author-time", "summary")


@dataclasses.dataclass
class BlameBlock:
    revisionId: str
    originalLine: int
    finalLine: int
    "1-based"
    fields: dict[str, str] = dataclasses.field(default_factory=dict)

    @property
    def lineIndex(self) -> int:
        return self.finalLine - 1

    @property
    def isUncommitted(self) -> bool:
        return isUncommittedRevision(self.revisionId)


def splitBlameLines(rawText: str) -> list[str]:
    # Don't use str.splitlines(): it would also split on \x0c, \x1c, etc.
    # which may legitimately appear inside a tab-prefixed content line.
    lines = rawText.split("\n")
    if lines and not lines[-1]:
        lines.pop()
    return [line.removesuffix("\r") for line in lines]


def formatAuthorTime(value: str) -> str:
    """ Convert a Unix timestamp to a YYYY-MM-DD string (UTC). """
    try:
        timestamp = int(value.strip())
        return datetime.fromtimestamp(timestamp, timezone.utc).strftime("%Y-%m-%d")
    except (ValueError, OverflowError, OSError):
        logger.debug(f"Unparsable author-time: {value!r}")
        return ""


def stripAngleBrackets(mail: str) -> str:
    return mail.removeprefix("<").removesuffix(">")


def parseBlock(lines: list[str], offset: int) -> tuple[BlameBlock | None, int]:
    """
    Extract one block starting at `offset`.

    Return the block (or None if the line at `offset` isn't a valid header)
    and the offset of the line that follows the block.
    """
    header = lines[offset]
    match = _headerPattern.match(header)
    if not match:
        if header and not header.startswith("\t"):
            logger.debug(f"Skipping malformed blame header at line {offset}: {header[:60]!r}")
        return None, offset + 1

    revisionId, originalLine, finalLine, _groupSize = match.groups()
    block = BlameBlock(revisionId, int(originalLine), int(finalLine))

    pos = offset + 1
    while pos < len(lines):
        line = lines[pos]
        pos += 1

        if line.startswith("\t"):
            # Line contents: that's the end of the block.
            # The text itself is the document's business, not ours.
            break

        keyword, _sep, value = line.partition(" ")
        if keyword in _keptFields:
            block.fields[keyword] = value
        elif _headerPattern.match(line):
            # Truncated block (no content line); let the next block start here.
            logger.debug(f"Blame block at line {offset} has no content line")
            pos -= 1
            break

    return block, pos


def iterateBlocks(rawText: str):
    """
    Yield every well-formed block in `rawText`, with metadata inherited from
    earlier blocks of the same revision filled in.
    """
    lines = splitBlameLines(rawText)
    knownRevisions: dict[str, dict[str, str]] = {}

    offset = 0
    while offset < len(lines):
        block, offset = parseBlock(lines, offset)
        if block is None:
            continue

        inherited = knownRevisions.setdefault(block.revisionId, {})
        inherited.update(block.fields)
        block.fields = dict(inherited)

        yield block


def makeAttribution(block: BlameBlock) -> LineAttribution:
    fields = block.fields
    author = fields.get("author", "")
    return LineAttribution(
        revisionId=block.revisionId,
        authorName=author,
        authorEmail=stripAngleBrackets(fields.get("author-mail", "")),
        authorShortName=firstToken(author),
        committedDate=formatAuthorTime(fields["author-time"]) if "author-time" in fields else "",
        summary=fields.get("summary", ""),
        lineIndex=block.lineIndex,
    )


def parse(rawText: str) -> FileBlameSet:
    """ Parse an entire blame. Uncommitted lines are left out. """
    return FileBlameSet(
        makeAttribution(block)
        for block in iterateBlocks(rawText)
        if not block.isUncommitted)


def parseLine(rawText: str, targetLineIndex: int) -> LineAttribution | None:
    """
    Return the attribution of the line at 0-based `targetLineIndex`,
    or None if that line is uncommitted or not covered by the blame.
    """
    for block in iterateBlocks(rawText):
        if block.lineIndex != targetLineIndex:
            continue
        if block.isUncommitted:
            return None
        return makeAttribution(block)
    return None
