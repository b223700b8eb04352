# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import os

from gutterblame.qt import *


class TrackedDocument(QObject):
    """
    A text document backed by a file on disk, as seen by the annotation layer.

    `edited` fires whenever the document's contents change;
    `saved` fires when the editor reports that the file was written out.
    """

    edited = Signal()
    saved = Signal()

    def __init__(self, filePath: str, textDocument: QTextDocument | None = None, parent: QObject | None = None):
        super().__init__(parent)
        self.setObjectName("TrackedDocument")

        if textDocument is None:
            textDocument = QTextDocument(self)

        self.filePath = os.path.abspath(filePath) if filePath else ""
        self.textDocument = textDocument
        textDocument.contentsChanged.connect(self.edited)

    @classmethod
    def fromFile(cls, filePath: str, parent: QObject | None = None) -> TrackedDocument:
        document = cls(filePath, parent=parent)
        with open(filePath, encoding="utf-8", errors="replace") as f:
            text = f.read()

        textDocument = document.textDocument
        textDocument.blockSignals(True)
        # A trailing newline doesn't start a new line as far as git is concerned
        textDocument.setPlainText(text.removesuffix("\n"))
        textDocument.setModified(False)
        textDocument.blockSignals(False)
        return document

    @property
    def fileIdentity(self) -> str:
        return self.filePath

    def isFileBacked(self) -> bool:
        return bool(self.filePath)

    def lineCount(self) -> int:
        return self.textDocument.blockCount()

    def markSaved(self):
        self.textDocument.setModified(False)
        self.saved.emit()

    def __repr__(self):
        return f"TrackedDocument({self.filePath!r})"
