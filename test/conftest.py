# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Generator

import pygit2
import pytest


def setUpGitConfigSearchPaths(prefix=""):
    """
    Prevent unit tests from accessing the host system's git config files.
    This modifies libgit2 search paths and GIT_CONFIG environment variables
    for vanilla git.
    """
    ConfigLevel = pygit2.enums.ConfigLevel

    levels = [
        ConfigLevel.GLOBAL,
        ConfigLevel.XDG,
        ConfigLevel.SYSTEM,
    ]

    for level in levels:
        pygit2.settings.search_path[level] = f"{prefix}_{level.name}" if prefix else ""

    os.environ["GIT_CONFIG_NOSYSTEM"] = "1"
    os.environ["GIT_CONFIG_GLOBAL"] = os.devnull


@pytest.fixture(scope='session', autouse=True)
def maskHostGitConfig():
    setUpGitConfigSearchPaths("")


@pytest.fixture(scope='session', autouse=True)
def setUpLogging():
    rootLogger = logging.root
    rootLogger.setLevel(logging.DEBUG)

    yield

    # Work around https://github.com/pytest-dev/pytest/issues/5502
    for handler in rootLogger.handlers:
        rootLogger.removeHandler(handler)


@pytest.fixture
def tempDir() -> Generator[tempfile.TemporaryDirectory, None, None]:
    td = tempfile.TemporaryDirectory(prefix="gutterblametest-")
    yield td
    td.cleanup()


@pytest.fixture
def fakeClock():
    from .util import FakeClock
    return FakeClock()


@pytest.fixture
def gitPath():
    """ Restore the default git command after a test overrides it. """
    from gutterblame.gitdriver import BlameDriver
    yield
    BlameDriver.setGitPath("git")
