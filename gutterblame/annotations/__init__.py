# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from gutterblame.annotations.document import TrackedDocument
from gutterblame.annotations.formatting import describeAttribution, emptyPlaceholder, formatAnnotation
from gutterblame.annotations.synchronizer import AnnotationRow, AnnotationSynchronizer, Visibility
