# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

ELLIPSIS = "…"


def fitToColumn(text: str, width: int, ellipsis: str = ELLIPSIS) -> str:
    """
    Truncate or pad `text` so that it occupies exactly `width` characters.
    Truncated text ends with `ellipsis`.
    """
    if width <= 0:
        return ""
    if len(text) > width:
        keep = max(0, width - len(ellipsis))
        return (text[:keep] + ellipsis)[:width]
    return text.ljust(width)


def initials(name: str, maxLetters: int = 2) -> str:
    """ First letter of each whitespace-delimited token, uppercased. """
    return "".join(token[0] for token in name.split())[:maxLetters].upper()


def firstToken(text: str) -> str:
    tokens = text.split(maxsplit=1)
    return tokens[0] if tokens else ""


def shortHash(revisionId: str, numChars: int = 7) -> str:
    return revisionId[:numChars]
