# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

import os

import pytest

from gutterblame.annotations import AnnotationSynchronizer, TrackedDocument
from gutterblame.blame import BlameCache
from gutterblame.blame.service import BlameService
from gutterblame.gitdriver import BlameDriver
from gutterblame.settings import AuthorFormat, BlamePrefs
from .util import *

HELLO_BLAME = (porcelainBlock(HASH_A, 1, author="Jane Roe")
               + porcelainBlock(HASH_ZERO, 2, author="Not Committed Yet")
               + porcelainBlock(HASH_B, 3, author="John Doe", summary="Third line"))

DEBOUNCE = 100


class Harness:
    def __init__(self, tempDir, enabled=True, delay=0):
        self.repo = makeRepo(tempDir)
        self.workdir = self.repo.workdir
        self.helloPath = os.path.join(self.workdir, "hello.txt")
        self.otherPath = os.path.join(self.workdir, "other.txt")
        writeFile(self.helloPath, "one\ntwo\nthree\n")
        writeFile(self.otherPath, "alpha\nbeta\n")

        self.invoker = FakeInvoker({
            "hello.txt": HELLO_BLAME,
            "other.txt": porcelainBlock(HASH_C, 1, author="Someone Else") + porcelainBlock(HASH_C, 2, author="Someone Else"),
        }, delay=delay)
        self.service = BlameService(BlameCache(), self.invoker)
        self.prefs = BlamePrefs(enabled=enabled, debounceDelay=DEBOUNCE)
        self.sync = AnnotationSynchronizer(self.service, self.prefs)

        self.emissions = []
        self.sync.annotationsChanged.connect(self.emissions.append)

    def open(self, path):
        return TrackedDocument.fromFile(path, parent=self.sync)

    def texts(self):
        return [row.text for row in self.sync.rows()]


@pytest.fixture
def harness(qtbot, tempDir):
    h = Harness(tempDir)
    yield h
    h.sync.dispose()


def waitForRows(qtbot, sync, count):
    qtbot.waitUntil(lambda: not sync.isRefreshing() and len(sync.rows()) == count, timeout=2000)


def testAnnotationsForActiveDocument(qtbot, harness):
    sync = harness.sync
    sync.setActiveDocument(harness.open(harness.helloPath))
    waitForRows(qtbot, sync, 3)

    rows = sync.rows()
    assert [row.lineIndex for row in rows] == [0, 1, 2]
    assert rows[0].text == "JR".ljust(12)
    assert rows[0].attribution.authorName == "Jane Roe"
    # Uncommitted line gets a blank placeholder of the same width
    assert rows[1].isPlaceholder
    assert rows[1].text == " " * 12
    assert rows[2].text == "JD".ljust(12)
    assert all(len(row.text) == 12 for row in rows)


def testHiddenByDefault(qtbot, tempDir):
    h = Harness(tempDir, enabled=False)
    h.sync.setActiveDocument(h.open(h.helloPath))
    qtbot.wait(50)
    assert not h.sync.isVisible()
    assert h.sync.rows() == []
    assert h.invoker.startCalls == []


def testShowHideToggle(qtbot, tempDir):
    h = Harness(tempDir, enabled=False)
    sync = h.sync
    sync.setActiveDocument(h.open(h.helloPath))

    with qtbot.waitSignal(sync.visibilityChanged) as blocker:
        sync.toggle()
    assert blocker.args == [True]
    waitForRows(qtbot, sync, 3)

    with qtbot.waitSignal(sync.visibilityChanged) as blocker:
        sync.toggle()
    assert blocker.args == [False]
    assert not sync.isVisible()
    assert sync.rows() == []
    assert h.emissions[-1] == []

    # Hiding twice is harmless
    with qtbot.assertNotEmitted(sync.visibilityChanged):
        sync.hide()


def testHideDiscardsRefreshInFlight(qtbot, tempDir):
    h = Harness(tempDir, delay=100)
    sync = h.sync
    sync.setActiveDocument(h.open(h.helloPath))
    assert sync.isRefreshing()
    sync.hide()
    qtbot.wait(200)
    assert sync.rows() == []
    assert h.emissions == []


def testEditsAreDebounced(qtbot, harness):
    sync = harness.sync
    document = harness.open(harness.helloPath)
    sync.setActiveDocument(document)
    waitForRows(qtbot, sync, 3)
    assert harness.invoker.startCalls == ["hello.txt"]

    # Burst of edits, each one restarting the timer
    cursor = QTextCursor(document.textDocument)
    for _ in range(5):
        cursor.insertText("x")
        assert sync.isRefreshPending()
        qtbot.wait(DEBOUNCE // 4)

    # No refresh on the leading edge
    assert sync.isRefreshPending()
    assert harness.service.isFetching("", harness.helloPath) is False
    emissionsBefore = len(harness.emissions)

    qtbot.waitUntil(lambda: not sync.isRefreshPending(), timeout=2000)
    qtbot.waitUntil(lambda: len(harness.emissions) > emissionsBefore, timeout=2000)
    assert not sync.isRefreshPending()

    # The cache is still fresh: a single git process ran during the burst
    assert harness.invoker.startCalls == ["hello.txt"]


def testSaveInvalidatesAndRefreshesImmediately(qtbot, harness):
    sync = harness.sync
    document = harness.open(harness.helloPath)
    sync.setActiveDocument(document)
    waitForRows(qtbot, sync, 3)

    QTextCursor(document.textDocument).insertText("x")
    assert sync.isRefreshPending()

    harness.invoker.outputs["hello.txt"] = "".join(
        porcelainBlock(HASH_C, i, author="Someone Else") for i in (1, 2, 3))
    document.markSaved()

    assert not sync.isRefreshPending()
    qtbot.waitUntil(lambda: len(sync.rows()) == 3 and sync.rows()[1].text.startswith("SE"), timeout=2000)
    assert harness.invoker.startCalls == ["hello.txt", "hello.txt"]
    assert all(row.text == "SE".ljust(12) for row in sync.rows())


def testSwitchingDocumentsClearsAnnotations(qtbot, harness):
    sync = harness.sync
    sync.setActiveDocument(harness.open(harness.helloPath))
    waitForRows(qtbot, sync, 3)

    sync.setActiveDocument(harness.open(harness.otherPath))
    # Stale rows are cleared before the new document's blame comes in
    assert sync.rows() == []
    assert harness.emissions[-1] == []

    waitForRows(qtbot, sync, 2)
    assert [row.text.strip() for row in sync.rows()] == ["SE", "SE"]


def testLateResultForPreviousDocumentIsDropped(qtbot, tempDir):
    h = Harness(tempDir, delay=150)
    sync = h.sync
    sync.setActiveDocument(h.open(h.helloPath))
    qtbot.wait(20)
    sync.setActiveDocument(h.open(h.otherPath))

    waitForRows(qtbot, sync, 2)
    qtbot.wait(200)
    assert len(sync.rows()) == 2
    assert all(row.attribution.authorName == "Someone Else" for row in sync.rows())


def testRowsNeverExceedLineCount(qtbot, harness):
    sync = harness.sync
    document = harness.open(harness.helloPath)
    sync.setActiveDocument(document)
    waitForRows(qtbot, sync, 3)

    # Delete the last line; blame for the file on disk still covers 3 lines
    cursor = QTextCursor(document.textDocument)
    cursor.movePosition(QTextCursor.MoveOperation.End)
    cursor.movePosition(QTextCursor.MoveOperation.StartOfBlock, QTextCursor.MoveMode.KeepAnchor)
    cursor.movePosition(QTextCursor.MoveOperation.PreviousCharacter, QTextCursor.MoveMode.KeepAnchor)
    cursor.removeSelectedText()
    assert document.lineCount() == 2

    waitForRows(qtbot, sync, 2)
    assert [row.lineIndex for row in sync.rows()] == [0, 1]


def testFailureClearsAnnotations(qtbot, harness):
    sync = harness.sync
    document = harness.open(harness.helloPath)
    sync.setActiveDocument(document)
    waitForRows(qtbot, sync, 3)

    del harness.invoker.outputs["hello.txt"]
    document.markSaved()
    waitForRows(qtbot, sync, 0)
    assert harness.emissions[-1] == []


def testUntrackedDocumentHasNoAnnotations(qtbot, harness):
    path = os.path.join(harness.workdir, "untracked.txt")
    writeFile(path, "nothing to see\n")
    harness.sync.setActiveDocument(harness.open(path))
    qtbot.waitUntil(lambda: harness.invoker.startCalls == ["untracked.txt"], timeout=2000)
    qtbot.waitUntil(lambda: not harness.sync.isRefreshing(), timeout=2000)
    assert harness.sync.rows() == []


def testDocumentOutsideRepo(qtbot, harness, tempDir):
    path = os.path.join(tempDir.name, "loose.txt")
    writeFile(path, "hello\n")
    harness.sync.setActiveDocument(harness.open(path))
    qtbot.waitUntil(lambda: not harness.sync.isRefreshing(), timeout=2000)
    assert harness.sync.rows() == []
    assert harness.invoker.startCalls == []


def testUnsavedDocumentIsIgnored(qtbot, harness):
    harness.sync.setActiveDocument(TrackedDocument("", parent=harness.sync))
    assert not harness.sync.isRefreshing()
    assert harness.invoker.startCalls == []


def testRefreshQueuedWhileInFlight(qtbot, tempDir):
    h = Harness(tempDir, delay=100)
    sync = h.sync
    sync.setActiveDocument(h.open(h.helloPath))
    assert sync.isRefreshing()

    sync.refresh()
    sync.refresh()
    waitForRows(qtbot, sync, 3)
    qtbot.waitUntil(lambda: not sync.isRefreshing(), timeout=2000)

    # The queued refresh ran once; the cache answered it without a new process
    assert h.invoker.startCalls == ["hello.txt"]
    assert len(h.emissions) == 2


def testUpdatePrefs(qtbot, harness):
    sync = harness.sync
    sync.setActiveDocument(harness.open(harness.helloPath))
    waitForRows(qtbot, sync, 3)

    sync.updatePrefs(BlamePrefs(enabled=True, authorFormat=AuthorFormat.FullName, columnWidth=6))
    qtbot.waitUntil(lambda: harness.texts()[:1] == ["Jane …"], timeout=2000)
    assert harness.texts()[2] == "John …"
    assert sync.debounceTimer.interval() == 300

    with qtbot.waitSignal(sync.visibilityChanged):
        sync.updatePrefs(BlamePrefs(enabled=False))
    assert sync.rows() == []


def testDispose(qtbot, harness):
    sync = harness.sync
    document = harness.open(harness.helloPath)
    sync.setActiveDocument(document)
    waitForRows(qtbot, sync, 3)

    QTextCursor(document.textDocument).insertText("x")
    assert sync.isRefreshPending()

    sync.dispose()
    assert not sync.isRefreshPending()
    assert sync.rows() == []

    # Events after disposal have no effect
    QTextCursor(document.textDocument).insertText("y")
    document.markSaved()
    sync.show()
    qtbot.wait(DEBOUNCE * 2)
    assert sync.rows() == []
    assert harness.invoker.startCalls == ["hello.txt"]


def testHideCancelsPendingRefresh(qtbot, harness):
    sync = harness.sync
    document = harness.open(harness.helloPath)
    sync.setActiveDocument(document)
    waitForRows(qtbot, sync, 3)

    QTextCursor(document.textDocument).insertText("x")
    assert sync.isRefreshPending()

    sync.hide()
    assert not sync.isRefreshPending()

    harness.service.invalidate("", harness.helloPath)
    qtbot.wait(DEBOUNCE * 2)
    assert sync.rows() == []
    assert harness.invoker.startCalls == ["hello.txt"]


def testSwitchingDocumentsCancelsPendingRefresh(qtbot, tempDir):
    h = Harness(tempDir, delay=50)
    sync = h.sync
    document = h.open(h.helloPath)
    sync.setActiveDocument(document)
    waitForRows(qtbot, sync, 3)

    QTextCursor(document.textDocument).insertText("x")
    assert sync.isRefreshPending()

    sync.setActiveDocument(h.open(h.otherPath))
    assert not sync.isRefreshPending()

    # Edits to the previous document no longer schedule anything
    QTextCursor(document.textDocument).insertText("y")
    assert not sync.isRefreshPending()

    waitForRows(qtbot, sync, 2)
    qtbot.wait(DEBOUNCE * 2)
    assert h.invoker.startCalls == ["hello.txt", "other.txt"]
    sync.dispose()


def testUpdatePrefsReachesService(qtbot, harness, gitPath):
    harness.sync.updatePrefs(BlamePrefs(enabled=True, cacheTTL=1234, processTimeout=5678,
                                        maxCacheEntries=3, gitPath="/usr/local/bin/git"))
    assert harness.service.cache.ttl == 1234
    assert harness.service.cache.maxEntries == 3
    assert harness.invoker.timeout == 5678
    assert BlameDriver.buildBlameCommand("a.txt")[0] == "/usr/local/bin/git"
