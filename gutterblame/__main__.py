# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations as _annotations

import logging as _logging
import sys as _sys


def blameCommandLineTool(argv: list[str] | None = None) -> int:
    from argparse import ArgumentParser

    from gutterblame.annotations import describeAttribution, emptyPlaceholder, formatAnnotation
    from gutterblame.appconsts import APP_DISPLAY_NAME, APP_SYSTEM_NAME, APP_VERSION
    from gutterblame.blame import BlameFailure
    from gutterblame.blame.service import BlameService
    from gutterblame.qt import QCoreApplication
    from gutterblame.settings import AuthorFormat, BlamePrefs, LoggingLevel, applyLoggingLevel

    parser = ArgumentParser(prog=APP_SYSTEM_NAME, description=f"{APP_DISPLAY_NAME} {APP_VERSION} - annotate a file with git blame")
    parser.add_argument("path", help="File path")
    parser.add_argument("-f", "--format", choices=[f.value for f in AuthorFormat], default=None, help="Author display format")
    parser.add_argument("-w", "--width", type=int, default=None, help="Annotation column width")
    parser.add_argument("-l", "--line", type=int, default=0, help="Describe a single line (1-based) instead")
    parser.add_argument("-p", "--prefs", default="", help="Path to a JSON prefs file")
    parser.add_argument("--git", default=None, help="Path to git executable")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    prefs = BlamePrefs.load(args.prefs) if args.prefs else BlamePrefs()
    overrides = {"authorFormat": args.format, "columnWidth": args.width, "gitPath": args.git}
    prefs = BlamePrefs.fromDict(prefs.toDict() | {k: v for k, v in overrides.items() if v is not None})
    if args.verbose:
        prefs.verbosity = LoggingLevel.Debug

    _logging.basicConfig(level=_logging.WARNING)
    applyLoggingLevel(prefs)

    _app = QCoreApplication.instance() or QCoreApplication([])

    service = BlameService()
    service.applyPrefs(prefs)

    if args.line:
        result = service.getLineBlame("", args.path, args.line - 1)
        if isinstance(result, BlameFailure):
            print(f"{args.path}: {result}", file=_sys.stderr)
            return 1
        if result is None:
            print(f"{args.path}:{args.line}: not committed yet")
        else:
            print(describeAttribution(result, prefs.shortHashChars))
        return 0

    result = service.getFileBlame("", args.path)
    if isinstance(result, BlameFailure):
        print(f"{args.path}: {result}", file=_sys.stderr)
        return 1

    with open(args.path, encoding="utf-8", errors="replace") as f:
        lines = f.read().splitlines()

    placeholder = emptyPlaceholder(prefs.columnWidth)
    for lineIndex, text in enumerate(lines):
        attribution = result.get(lineIndex)
        if attribution is None:
            gutter = placeholder
        else:
            gutter = formatAnnotation(attribution, prefs.authorFormat, prefs.columnWidth)
        print(f"{gutter} {lineIndex + 1:5} {text}")

    return 0


if __name__ == '__main__':
    _sys.exit(blameCommandLineTool())
