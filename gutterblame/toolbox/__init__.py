# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from .benchmark import BENCHMARK_LOGGING_LEVEL, Benchmark
from .pathutils import relativeToRoot, resolveDirectorySymlinks, toPosixPath
from .textutils import ELLIPSIS, firstToken, fitToColumn, initials, shortHash
