"""Single-threaded tree walk that turns eligible files into worker jobs."""

from __future__ import annotations

import logging
import os
import stat
from typing import Callable, List, Optional

from .collector import ResultCollector
from .ignore import IgnoreMatcher, RuleLoadError
from .logging import TRACE, get_logger
from .models import FileJob, SequenceConfig

ProgressCallback = Callable[[int, int], None]
ErrorCallback = Callable[[Exception], None]
JobSink = Callable[[FileJob], object]


class TraversalError(RuntimeError):
    """Raised after a walk that hit a directory it could not enter."""


class FirstError:
    """Error callback that remembers only the first error reported."""

    def __init__(self) -> None:
        self.error: Optional[Exception] = None

    def __call__(self, exc: Exception) -> None:
        if self.error is None:
            self.error = exc


class FileDiscovery:
    """Walks ``root`` in pre-order and publishes one :class:`FileJob` per text file.

    Every non-directory entry counts as found. Symlinks, special files,
    ignored paths, unreadable files and non UTF-8 content count as ignored.
    Directory-level problems go to ``error_callback`` and the walk continues
    with the remaining subtrees.
    """

    def __init__(
        self,
        root: str | os.PathLike[str],
        matcher: IgnoreMatcher,
        collector: ResultCollector,
        *,
        ascii_only: bool = True,
        sequence_config: SequenceConfig | None = None,
        progress_callback: ProgressCallback | None = None,
        error_callback: ErrorCallback | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.root = os.path.abspath(os.fspath(root))
        self.matcher = matcher
        self.collector = collector
        self.ascii_only = ascii_only
        self.sequence_config = sequence_config or SequenceConfig()
        self.progress_callback = progress_callback
        self.error_callback = error_callback
        self.logger = logger or get_logger("discovery")

    def run(self, submit: JobSink, close: Callable[[], None]) -> None:
        """Walk the tree feeding ``submit`` and always call ``close`` at the end."""
        self.logger.debug("Starting file discovery in %s", self.root)
        try:
            self._walk(submit)
        except Exception as exc:
            self.logger.error("File discovery aborted: %s", exc)
            self._report(exc)
        finally:
            close()
        self.logger.debug("File discovery completed")

    def _report(self, exc: Exception) -> None:
        if self.error_callback is not None:
            self.error_callback(exc)

    def _on_walk_error(self, exc: OSError) -> None:
        self.logger.warning("Cannot read directory %s: %s", exc.filename, exc.strerror or exc)
        self._report(exc)

    def _walk(self, submit: JobSink) -> None:
        for dirpath, dirnames, filenames in os.walk(self.root, onerror=self._on_walk_error):
            dirnames.sort()
            entries: List[str] = sorted(filenames)

            kept: List[str] = []
            for name in dirnames:
                path = os.path.join(dirpath, name)
                if os.path.islink(path):
                    # Symlinked directories are never followed; they count as special files.
                    entries.append(name)
                    continue
                if self._enter_directory(path):
                    kept.append(name)
            dirnames[:] = kept

            for name in sorted(entries):
                self._visit_file(os.path.join(dirpath, name), submit)

    def _enter_directory(self, path: str) -> bool:
        try:
            self.matcher.load_rules_for_directory(path)
        except RuleLoadError as exc:
            self.logger.warning("%s", exc)
            self._report(exc)
        if self.matcher.should_ignore(path):
            self.logger.debug("Skipping directory %s (ignored)", path)
            return False
        self.logger.log(TRACE, "Entering directory %s", path)
        return True

    def _visit_file(self, path: str, submit: JobSink) -> None:
        self.collector.increment_found()
        if self.progress_callback is not None:
            found, ignored = self.collector.counts()
            self.progress_callback(found, found - ignored)

        content = self._read_eligible(path)
        if content is None:
            self.collector.increment_ignored()
            return

        self.logger.log(TRACE, "Discovered %s (%d bytes)", path, len(content))
        submit(
            FileJob(
                path=path,
                content=content,
                ascii_only=self.ascii_only,
                sequence_config=self.sequence_config,
            )
        )

    def _read_eligible(self, path: str) -> bytes | None:
        try:
            mode = os.lstat(path).st_mode
        except OSError as exc:
            self.logger.debug("Cannot stat %s: %s", path, exc)
            return None
        if not stat.S_ISREG(mode):
            self.logger.debug("Skipping special file %s", path)
            return None

        if self.matcher.should_ignore(path):
            self.logger.debug("Skipping file %s (ignored)", path)
            return None

        try:
            with open(path, "rb") as handle:
                content = handle.read()
        except OSError as exc:
            self.logger.debug("Cannot read %s: %s", path, exc)
            return None

        try:
            content.decode("utf-8")
        except UnicodeDecodeError:
            self.logger.debug("Skipping non UTF-8 file %s", path)
            return None
        return content


__all__ = ["FileDiscovery", "FirstError", "TraversalError"]
