# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

import os as _os

# Run offscreen unless told otherwise, and import the same Qt binding as pytest-qt.
_os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
_os.environ.setdefault("QT_API", _os.environ.get("PYTEST_QT_API", ""))

from gutterblame.qt import *
