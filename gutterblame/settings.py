# -----------------------------------------------------------------------------
# Copyright (C) 2025 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import dataclasses
import enum
import json
import logging
from collections.abc import Mapping
from typing import Any

from gutterblame.appconsts import APP_TESTMODE
from gutterblame.toolbox.benchmark import BENCHMARK_LOGGING_LEVEL

logger = logging.getLogger(__name__)


class AuthorFormat(enum.StrEnum):
    Initials = "initials"
    FullName = "fullName"
    Email = "email"


class LoggingLevel(enum.IntEnum):
    Benchmark = BENCHMARK_LOGGING_LEVEL
    Debug = logging.DEBUG
    Info = logging.INFO
    Warning = logging.WARNING


def resolveDisplayValue(userValue: Any, defaultValue: Any) -> Any:
    """
    Pick the user's value if it's usable, otherwise fall back to the default.
    The user's value is coerced to the default's type (enums included).
    """
    if userValue is None:
        return defaultValue

    defaultType = type(defaultValue)

    if isinstance(defaultValue, enum.Enum):
        try:
            return defaultType(userValue)
        except ValueError:
            byName = getattr(defaultType, str(userValue), None)
            return byName if isinstance(byName, defaultType) else defaultValue

    if isinstance(defaultValue, bool):
        return userValue if isinstance(userValue, bool) else defaultValue

    if isinstance(defaultValue, int):
        if isinstance(userValue, bool) or not isinstance(userValue, (int, float)):
            return defaultValue
        return int(userValue)

    if isinstance(userValue, defaultType):
        return userValue

    return defaultValue


@dataclasses.dataclass
class BlamePrefs:
    enabled                     : bool                  = False
    authorFormat                : AuthorFormat          = AuthorFormat.Initials
    columnWidth                 : int                   = 12
    shortHashChars              : int                   = 7

    cacheTTL                    : int                   = 30_000
    debounceDelay               : int                   = 300
    processTimeout              : int                   = 10_000
    maxCacheEntries             : int                   = 0
    gitPath                     : str                   = "git"

    verbosity                   : LoggingLevel          = LoggingLevel.Debug if APP_TESTMODE else LoggingLevel.Warning

    @classmethod
    def fromDict(cls, values: Mapping[str, Any]) -> BlamePrefs:
        defaults = cls()
        known = {f.name for f in dataclasses.fields(cls)}

        for key in values:
            if key not in known:
                logger.warning(f"Ignoring unknown pref: {key}")

        resolved = {
            name: resolveDisplayValue(values.get(name, None), getattr(defaults, name))
            for name in known
        }
        return cls(**resolved)

    @classmethod
    def load(cls, path: str) -> BlamePrefs:
        try:
            with open(path, encoding="utf-8") as f:
                values = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning(f"Couldn't load prefs from {path}, using defaults: {exc}")
            return cls()

        if not isinstance(values, dict):
            logger.warning(f"Prefs file {path} doesn't contain a JSON object, using defaults")
            return cls()

        return cls.fromDict(values)

    def toDict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def applyLoggingLevel(prefs: BlamePrefs):
    logging.getLogger("gutterblame").setLevel(prefs.verbosity)
