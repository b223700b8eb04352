# -----------------------------------------------------------------------------
# Copyright (C) 2026 Iliyas Jorio.
# This file is part of GitFourchette, distributed under the GNU GPL v3.
# For full terms, see the included LICENSE file.
# -----------------------------------------------------------------------------

from __future__ import annotations

import io
import logging
import os
import shlex
import signal
from collections.abc import Callable
from contextlib import suppress

import pygit2

from gutterblame.blame.attribution import BlameFailure, FailureReason
from gutterblame.qt import *
from gutterblame.toolbox import BENCHMARK_LOGGING_LEVEL, Benchmark, relativeToRoot, toPosixPath

logger = logging.getLogger(__name__)

BlameCallback = Callable[[str | BlameFailure], None]

DEFAULT_TIMEOUT_MS = 10_000


def resolveRepoRoot(filePath: str) -> str:
    """
    Find the working directory of the repository containing `filePath`.
    Raise BlameFailure(NotARepository) if there's none.
    """
    startDir = filePath if os.path.isdir(filePath) else os.path.dirname(os.path.abspath(filePath))

    gitDir = pygit2.discover_repository(startDir)
    if not gitDir:
        raise BlameFailure(FailureReason.NotARepository, f"not inside a repository: {filePath}")

    workdir = pygit2.Repository(gitDir).workdir
    if not workdir:
        raise BlameFailure(FailureReason.NotARepository, f"bare repository: {gitDir}")

    return os.path.normpath(workdir)


def resolveRelativePath(repoRoot: str, filePath: str) -> str:
    try:
        return relativeToRoot(repoRoot, filePath)
    except ValueError as exc:
        raise BlameFailure(FailureReason.NotARepository, str(exc)) from exc


def classifyStderr(stderr: str) -> FailureReason:
    lowered = stderr.lower()
    if "not a git repository" in lowered:
        return FailureReason.NotARepository
    if "no such path" in lowered or "is outside repository" in lowered or "no such file" in lowered:
        return FailureReason.UntrackedFile
    return FailureReason.ProcessError


class BlameDriver(QProcess):
    """
    Runs "git blame --line-porcelain" on a single file.
    """

    _commandStem = ["git"]

    @classmethod
    def setGitPath(cls, gitPath: str):
        cls._commandStem = shlex.split(gitPath, posix=True) or ["git"]

    @classmethod
    def buildBlameCommand(cls, relativePath: str) -> list[str]:
        return [
            *cls._commandStem,
            "blame",
            "--line-porcelain",
            "--",
            toPosixPath(relativePath),
        ]

    def __init__(self, repoRoot: str, relativePath: str, parent: QObject | None = None):
        super().__init__(parent)
        self.setObjectName("BlameDriver")

        self.repoRoot = repoRoot
        self.relativePath = toPosixPath(relativePath)

        tokens = BlameDriver.buildBlameCommand(self.relativePath)
        self.setProgram(tokens[0])
        self.setArguments(tokens[1:])
        self.setWorkingDirectory(repoRoot)

        self.readyReadStandardError.connect(self._onReadyReadStandardError)
        self._stderrScrollback = io.BytesIO()
        self._stdout = None

    def _onReadyReadStandardError(self):
        self._stderrScrollback.write(self.readAllStandardError().data())

    def stderrScrollback(self) -> str:
        return self._stderrScrollback.getvalue().decode("utf-8", errors="replace").strip()

    def stdoutScrollback(self) -> str:
        if self._stdout is None:
            self._stdout = self.readAllStandardOutput().data().decode("utf-8", errors="replace")
        return self._stdout

    def formatExitCode(self) -> str:
        code = self.exitCode()

        if self.exitStatus() == QProcess.ExitStatus.CrashExit:
            try:
                s = signal.Signals(code)
                return f"{code} ({s.name})"
            except ValueError:
                pass

        return f"{code}"

    def formatCommandLine(self) -> str:
        return shlex.join([self.program()] + self.arguments())

    def failure(self) -> BlameFailure | None:
        """ Interpret the outcome of a finished process. None means success. """
        if self.error() == QProcess.ProcessError.FailedToStart:
            return BlameFailure(FailureReason.ProcessError, f"could not start {self.program()}")

        if self.exitStatus() == QProcess.ExitStatus.CrashExit:
            return BlameFailure(FailureReason.ProcessError, f"{self.program()} crashed")

        if self.exitCode() != 0:
            self._onReadyReadStandardError()
            stderr = self.stderrScrollback()
            reason = classifyStderr(stderr)
            return BlameFailure(reason, f"exit code {self.formatExitCode()}: {stderr}")

        return None


class BlameInvoker(QObject):
    """
    Runs blame processes on behalf of BlameService, either blocking (run)
    or on the event loop (start).
    """

    def __init__(self, timeout: int = DEFAULT_TIMEOUT_MS, parent: QObject | None = None):
        super().__init__(parent)
        self.setObjectName("BlameInvoker")
        self.timeout = timeout
        self._running: set[BlameDriver] = set()

    def run(self, repoRoot: str, relativePath: str) -> str:
        """ Run git blame to completion. Raise BlameFailure on error. """
        driver = BlameDriver(repoRoot, relativePath)
        logger.info(f"Blame (sync): {driver.formatCommandLine()}")

        with Benchmark(f"blame {driver.relativePath}"):
            driver.start()
            finished = driver.waitForFinished(self.timeout)

            if not finished and driver.state() != QProcess.ProcessState.NotRunning:
                driver.kill()
                driver.waitForFinished(1000)
                raise BlameFailure(FailureReason.Timeout, f"{driver.formatCommandLine()} took over {self.timeout} ms")

        failure = driver.failure()
        if failure is not None:
            raise failure

        return driver.stdoutScrollback()

    def start(self, repoRoot: str, relativePath: str, callback: BlameCallback) -> BlameDriver:
        """
        Start git blame without blocking. `callback` receives the process's
        stdout, or a BlameFailure, exactly once.
        """
        driver = BlameDriver(repoRoot, relativePath, parent=self)
        timeoutTimer = QTimer(driver)
        timeoutTimer.setSingleShot(True)
        stopwatch = QElapsedTimer()
        delivered = False

        def deliver(result: str | BlameFailure):
            nonlocal delivered
            if delivered:
                return
            delivered = True
            timeoutTimer.stop()
            logger.log(BENCHMARK_LOGGING_LEVEL, f"{stopwatch.elapsed():8} ms blame {driver.relativePath}")
            self._running.discard(driver)
            driver.deleteLater()
            callback(result)

        def onFinished(_code=0, _status=None):
            failure = driver.failure()
            deliver(failure if failure is not None else driver.stdoutScrollback())

        def onErrorOccurred(error: QProcess.ProcessError):
            # Crashes are followed by finished(); only handle failed starts here.
            if error == QProcess.ProcessError.FailedToStart:
                deliver(driver.failure())

        def onTimeout():
            logger.warning(f"Blame timed out after {self.timeout} ms: {driver.formatCommandLine()}")
            deliver(BlameFailure(FailureReason.Timeout, f"took over {self.timeout} ms"))
            driver.kill()

        driver.finished.connect(onFinished)
        driver.errorOccurred.connect(onErrorOccurred)
        timeoutTimer.timeout.connect(onTimeout)

        logger.info(f"Blame (async): {driver.formatCommandLine()}")
        self._running.add(driver)
        stopwatch.start()
        timeoutTimer.start(self.timeout)
        driver.start()
        return driver

    def isBusy(self) -> bool:
        return bool(self._running)

    def killAll(self):
        for driver in list(self._running):
            with suppress(TypeError, RuntimeError):
                driver.finished.disconnect()
            with suppress(TypeError, RuntimeError):
                driver.errorOccurred.disconnect()
            driver.kill()
            driver.waitForFinished(1000)
            driver.deleteLater()
        self._running.clear()
