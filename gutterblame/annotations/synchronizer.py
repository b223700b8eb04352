# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

"""
Keeps the blame gutter of the active document in sync with its edits.
"""

from __future__ import annotations

import dataclasses
import enum
import logging

from gutterblame.annotations.document import TrackedDocument
from gutterblame.annotations.formatting import emptyPlaceholder, formatAnnotation
from gutterblame.blame.attribution import BlameFailure, FileBlameSet, LineAttribution
from gutterblame.blame.service import BlameService
from gutterblame.qt import *
from gutterblame.settings import BlamePrefs

logger = logging.getLogger(__name__)


class Visibility(enum.IntEnum):
    Hidden = 0
    Visible = 1


@dataclasses.dataclass(frozen=True)
class AnnotationRow:
    lineIndex: int
    text: str
    attribution: LineAttribution | None = None

    @property
    def isPlaceholder(self) -> bool:
        return self.attribution is None


class AnnotationSynchronizer(QObject):
    """
    Maintains one annotation row per line of the active document.

    Edits schedule a debounced refresh; saves invalidate the file's blame and
    refresh immediately. The rows are reapplied wholesale on every refresh
    (see annotationsChanged).
    """

    annotationsChanged = Signal(list)
    visibilityChanged = Signal(bool)

    def __init__(self, service: BlameService, prefs: BlamePrefs | None = None, parent: QObject | None = None):
        super().__init__(parent)
        self.setObjectName("AnnotationSynchronizer")

        self.service = service
        self.prefs = prefs if prefs is not None else BlamePrefs()
        self.visibility = Visibility.Hidden
        self.document: TrackedDocument | None = None
        self._rows: list[AnnotationRow] = []
        self._disposed = False

        # Refresh bookkeeping. _refreshSerial increases whenever previously
        # requested results become irrelevant (document switch, hide, dispose).
        self._refreshSerial = 0
        self._refreshInFlight = False
        self._refreshQueued = False

        self.debounceTimer = QTimer(self)
        self.debounceTimer.setObjectName("BlameDebounce")
        self.debounceTimer.setSingleShot(True)
        self.debounceTimer.setInterval(self.prefs.debounceDelay)
        self.debounceTimer.timeout.connect(self.refresh)

        if self.prefs.enabled:
            self.visibility = Visibility.Visible

    # -------------------------------------------------------------------------
    # State

    def isVisible(self) -> bool:
        return self.visibility == Visibility.Visible

    def isRefreshPending(self) -> bool:
        return self.debounceTimer.isActive()

    def isRefreshing(self) -> bool:
        return self._refreshInFlight

    def rows(self) -> list[AnnotationRow]:
        return list(self._rows)

    def show(self):
        if self._disposed:
            return
        wasVisible = self.isVisible()
        self.visibility = Visibility.Visible
        if not wasVisible:
            self.visibilityChanged.emit(True)
        self.refresh()

    def hide(self):
        self.debounceTimer.stop()
        self._dropRefreshesInFlight()
        wasVisible = self.isVisible()
        self.visibility = Visibility.Hidden
        self._applyRows([])
        if wasVisible:
            self.visibilityChanged.emit(False)

    def toggle(self):
        if self.isVisible():
            self.hide()
        else:
            self.show()

    def updatePrefs(self, prefs: BlamePrefs):
        """
        Take new settings into account. Cache, timeout and git settings are
        forwarded to the service; display settings re-render the rows.
        """
        wasEnabled = self.prefs.enabled
        self.prefs = prefs
        self.debounceTimer.setInterval(prefs.debounceDelay)
        self.service.applyPrefs(prefs)

        if prefs.enabled and not wasEnabled:
            self.show()
        elif not prefs.enabled and wasEnabled:
            self.hide()
        elif self.isVisible():
            # Other settings (e.g. author format) changed, re-render
            self.refresh()

    # -------------------------------------------------------------------------
    # Document events

    def setActiveDocument(self, document: TrackedDocument | None):
        if document is self.document:
            return

        self.debounceTimer.stop()
        self._dropRefreshesInFlight()

        if self.document is not None:
            self.document.edited.disconnect(self.onDocumentEdited)
            self.document.saved.disconnect(self.onDocumentSaved)

        # Don't leave the previous document's annotations dangling
        self._applyRows([])

        self.document = document

        if document is not None:
            document.edited.connect(self.onDocumentEdited)
            document.saved.connect(self.onDocumentSaved)

            if self.isVisible():
                self.refresh()

    def onDocumentEdited(self):
        if not self.isVisible() or self.document is None:
            return
        # Restart the timer: only the last edit of a burst triggers a refresh
        self.debounceTimer.start()

    def onDocumentSaved(self):
        if not self.isVisible() or self.document is None:
            return
        self.debounceTimer.stop()
        self.service.invalidate("", self.document.fileIdentity)
        self.refresh()

    def dispose(self):
        self.setActiveDocument(None)
        self.hide()
        self.debounceTimer.stop()
        self._disposed = True

    # -------------------------------------------------------------------------
    # Refresh

    def refresh(self):
        self.debounceTimer.stop()

        document = self.document
        if self._disposed or not self.isVisible() or document is None:
            return

        if not document.isFileBacked():
            return

        if self._refreshInFlight:
            # Run once more after the current refresh lands
            self._refreshQueued = True
            return

        logger.debug(f"Refreshing blame annotations for {document.fileIdentity}")

        self._refreshInFlight = True
        self._refreshQueued = False
        serial = self._refreshSerial

        self.service.fetchFileBlame("", document.fileIdentity,
                                    lambda result: self._onBlameReady(serial, document, result))

    def _onBlameReady(self, serial: int, document: TrackedDocument, result: FileBlameSet | BlameFailure):
        if serial != self._refreshSerial:
            logger.debug(f"Dropping blame for {document.fileIdentity}: no longer relevant")
            return

        self._refreshInFlight = False

        if document is not self.document or not self.isVisible():
            return

        if isinstance(result, BlameFailure) or not result:
            # No data: don't keep showing outdated annotations
            logger.debug(f"No blame annotations for {document.fileIdentity}: {result!r}")
            self._applyRows([])
        else:
            self._applyRows(self.projectRows(result, document.lineCount()))

        if self._refreshQueued:
            self._refreshQueued = False
            self.refresh()

    def projectRows(self, blameSet: FileBlameSet, lineCount: int) -> list[AnnotationRow]:
        """
        One row per line in the document. Attributions pointing past the end
        of the document (e.g. computed before lines were deleted) are dropped.
        """
        width = self.prefs.columnWidth
        authorFormat = self.prefs.authorFormat
        placeholder = emptyPlaceholder(width)

        rows = []
        for lineIndex in range(lineCount):
            attribution = blameSet.get(lineIndex)
            if attribution is None:
                rows.append(AnnotationRow(lineIndex, placeholder))
            else:
                rows.append(AnnotationRow(lineIndex, formatAnnotation(attribution, authorFormat, width), attribution))
        return rows

    def _dropRefreshesInFlight(self):
        self._refreshSerial += 1
        self._refreshInFlight = False
        self._refreshQueued = False

    def _applyRows(self, rows: list[AnnotationRow]):
        if not rows and not self._rows:
            return
        self._rows = rows
        self.annotationsChanged.emit(list(rows))
