# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from .blamedriver import BlameCallback, BlameDriver, BlameInvoker
from .blamedriver import classifyStderr, resolveRelativePath, resolveRepoRoot
