# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

import os


def toPosixPath(path: str) -> str:
    """ Turn platform path separators into forward slashes, as git expects. """
    return path.replace(os.sep, "/").replace("\\", "/")


def relativeToRoot(root: str, path: str) -> str:
    """
    Return `path` relative to `root`, with forward slashes.
    Raise ValueError if `path` doesn't live under `root`.
    """
    root = os.path.abspath(root)
    path = os.path.abspath(os.path.join(root, path))

    try:
        relPath = os.path.relpath(path, root)
    except ValueError as exc:  # Different drives on Windows
        raise ValueError(f"{path} is not under {root}") from exc

    if relPath == os.curdir or relPath == os.pardir or relPath.startswith(os.pardir + os.sep):
        raise ValueError(f"{path} is not under {root}")

    return toPosixPath(relPath)


def resolveDirectorySymlinks(path: str) -> str:
    """
    Resolve symlinks in the directories leading up to `path`, keeping its
    last component as-is (a symlinked file is blamed as the link itself).
    """
    path = os.path.abspath(path)
    head, tail = os.path.split(path)
    return os.path.join(os.path.realpath(head), tail)
