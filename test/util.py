# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

import os
import shutil
import tempfile

import pygit2
import pytest

from gutterblame.blame import BlameFailure, FailureReason
from . import *

TEST_SIGNATURE = pygit2.Signature("Test Person", "toto@example.com", 1672600000, 0)

HASH_A = "a" * 40
HASH_B = "b" * 40
HASH_C = "c0ffee" + "1" * 34
HASH_ZERO = "0" * 40

requiresGit = pytest.mark.skipif(
    not shutil.which("git"),
    reason="Requires git")


class FakeClock:
    """ Millisecond clock that only moves when told to. """

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


class FakeInvoker(QObject):
    """
    Stand-in for BlameInvoker. Serves canned porcelain output per relative path.
    Asynchronous results are delivered `delay` ms later, with the output that
    was current when the fetch started.
    """

    def __init__(self, outputs: dict | None = None, delay: int = 0):
        super().__init__()
        self.outputs = dict(outputs or {})
        self.delay = delay
        self.runCalls = []
        self.startCalls = []
        self.killed = False
        self._timers = []

    def _lookup(self, relativePath: str):
        return self.outputs.get(relativePath, BlameFailure(FailureReason.UntrackedFile, "no such path"))

    def run(self, repoRoot: str, relativePath: str) -> str:
        self.runCalls.append(relativePath)
        result = self._lookup(relativePath)
        if isinstance(result, BlameFailure):
            raise result
        return result

    def start(self, repoRoot: str, relativePath: str, callback):
        self.startCalls.append(relativePath)
        result = self._lookup(relativePath)

        timer = QTimer(self)
        timer.setSingleShot(True)
        timer.timeout.connect(lambda: callback(result))
        timer.start(self.delay)
        self._timers.append(timer)
        return timer

    def isBusy(self) -> bool:
        return any(timer.isActive() for timer in self._timers)

    def killAll(self):
        self.killed = True
        for timer in self._timers:
            timer.stop()


def porcelainBlock(
        revision: str,
        finalLine: int,
        author: str | None = "Jane Roe",
        mail: str | None = "jane@example.com",
        time: int | None = 1700000000,
        summary: str | None = "Initial commit",
        originalLine: int = 0,
        groupSize: int | None = 1,
        content: str = "some text",
        extraFields: tuple[str, ...] = ("committer Jane Roe", "committer-tz +0000", "filename hello.txt"),
) -> str:
    header = f"{revision} {originalLine or finalLine} {finalLine}"
    if groupSize is not None:
        header += f" {groupSize}"

    lines = [header]
    if author is not None:
        lines.append(f"author {author}")
    if mail is not None:
        lines.append(f"author-mail <{mail}>")
    if time is not None:
        lines.append(f"author-time {time}")
        lines.append("author-tz +0000")
    if summary is not None:
        lines.append(f"summary {summary}")
    lines.extend(extraFields)
    lines.append(f"\t{content}")
    return "\n".join(lines) + "\n"


def makeRepo(tempDir: tempfile.TemporaryDirectory | str, name: str = "repo") -> pygit2.Repository:
    tempDirPath = tempDir if isinstance(tempDir, str) else tempDir.name
    path = os.path.realpath(os.path.join(tempDirPath, name))
    return pygit2.init_repository(path)


def writeFile(path, text):
    # Prevent accidental littering of current working directory
    assert os.path.isabs(path), "pass me an absolute path"

    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(text.encode("utf-8"))


def commitFile(
        repo: pygit2.Repository,
        relativePath: str,
        text: str,
        message: str,
        author: pygit2.Signature = TEST_SIGNATURE,
) -> pygit2.Oid:
    writeFile(os.path.join(repo.workdir, relativePath), text)
    repo.index.add(relativePath)
    repo.index.write()
    tree = repo.index.write_tree()
    parents = [] if repo.head_is_unborn else [repo.head.target]
    return repo.create_commit("HEAD", author, author, message, tree, parents)
