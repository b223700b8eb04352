# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from gutterblame.blame.attribution import LineAttribution
from gutterblame.settings import AuthorFormat
from gutterblame.toolbox import fitToColumn, initials, shortHash

DEFAULT_COLUMN_WIDTH = 12


def authorText(attribution: LineAttribution, authorFormat: AuthorFormat) -> str:
    if authorFormat == AuthorFormat.Initials:
        return initials(attribution.authorName)
    elif authorFormat == AuthorFormat.Email:
        return attribution.authorEmail
    else:
        return attribution.authorName


def formatAnnotation(
        attribution: LineAttribution,
        authorFormat: AuthorFormat = AuthorFormat.Initials,
        width: int = DEFAULT_COLUMN_WIDTH
) -> str:
    """ Gutter text for a line. Always exactly `width` characters long. """
    return fitToColumn(authorText(attribution, authorFormat), width)


def emptyPlaceholder(width: int = DEFAULT_COLUMN_WIDTH) -> str:
    """ Gutter text for lines without an attribution. """
    return " " * max(0, width)


def describeAttribution(attribution: LineAttribution, shortHashChars: int = 7) -> str:
    """ Multi-line plain-text description of a line's last change. """
    author = attribution.authorName
    if attribution.authorEmail:
        author += f" <{attribution.authorEmail}>"

    lines = [
        f"commit: {shortHash(attribution.revisionId, shortHashChars)}",
        f"author: {author}",
        f"date:   {attribution.committedDate}",
    ]

    if attribution.summary:
        lines.append("")
        lines.append(attribution.summary)

    return "\n".join(lines)
