"""Pipeline orchestration: walk, count, merge and summarise a directory tree."""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import Iterable, List, Optional

from .collector import ResultCollector
from .config import SymbolistaConfig
from .discovery import FileDiscovery, FirstError, ProgressCallback, TraversalError
from .ignore import DEFAULT_RULE_FILE, IgnoreMatcher
from .logging import get_logger
from .models import (
    AggregateSnapshot,
    AnalysisResult,
    CharCount,
    SequenceConfig,
    SequenceCount,
    TimingBreakdown,
)
from .ngrams import merge_unpacked
from .worker import WorkerPool


def _percentage(count: int, total: int) -> float:
    return count / total * 100 if total else 0.0


def build_char_counts(snapshot: AggregateSnapshot) -> List[CharCount]:
    """Sort characters by descending count, then ascending code point."""
    ordered = sorted(snapshot.char_map.items(), key=lambda item: (-item[1], item[0]))
    return [
        CharCount(
            character=chr(code_point),
            count=count,
            percentage=_percentage(count, snapshot.total_chars),
        )
        for code_point, count in ordered
    ]


def build_sequence_counts(
    snapshot: AggregateSnapshot, sequence_config: SequenceConfig
) -> tuple[List[SequenceCount], int]:
    """Return the filtered, sorted sequence list and the number of distinct sequences.

    Percentages are relative to every sequence occurrence, including those
    that fall below the threshold.
    """
    if not sequence_config.enabled:
        return [], 0

    merged = merge_unpacked(snapshot.sequence_map2, snapshot.sequence_map3)
    total = sum(merged.values())

    qualifying = [
        (sequence, count)
        for sequence, count in merged.items()
        if count >= sequence_config.threshold
    ]
    qualifying.sort(key=lambda item: (-item[1], item[0]))
    if sequence_config.top_n:
        qualifying = qualifying[: sequence_config.top_n]

    counts = [
        SequenceCount(
            sequence=sequence.decode("utf-8", errors="replace"),
            count=count,
            percentage=_percentage(count, total),
        )
        for sequence, count in qualifying
    ]
    return counts, len(merged)


class Orchestrator:
    """Coordinates the discovery, worker pool and collector for one run at a time."""

    def __init__(
        self,
        *,
        rule_file: str = DEFAULT_RULE_FILE,
        ignored_extensions: Optional[Iterable[str]] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.rule_file = rule_file
        self.ignored_extensions = list(ignored_extensions) if ignored_extensions is not None else None
        self.logger = logger or get_logger("orchestrator")

    @classmethod
    def from_config(
        cls, config: SymbolistaConfig, *, logger: logging.Logger | None = None
    ) -> "Orchestrator":
        return cls(
            rule_file=config.rule_file,
            ignored_extensions=config.ignored_extensions,
            logger=logger,
        )

    def analyze(
        self,
        directory: str | os.PathLike[str],
        *,
        workers: int = 0,
        include_dotfiles: bool = False,
        ascii_only: bool = True,
        sequence_config: SequenceConfig | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> AnalysisResult:
        """Count characters and byte sequences of every eligible file under ``directory``."""
        sequence_config = sequence_config or SequenceConfig()
        root = Path(directory).expanduser()
        if not root.exists():
            raise FileNotFoundError(f"Directory not found: {directory}")
        if not root.is_dir():
            raise NotADirectoryError(f"Path is not a directory: {directory}")

        start = time.perf_counter()
        self.logger.info(
            "Initializing ignore matcher for %s (include_dotfiles=%s)", root, include_dotfiles
        )
        matcher = IgnoreMatcher(
            root,
            include_dotfiles=include_dotfiles,
            rule_file_name=self.rule_file,
            ignored_extensions=self.ignored_extensions,
            logger=self.logger.getChild("ignore"),
        )

        self.logger.info("Starting concurrent traversal and counting")
        traversal_start = time.perf_counter()
        snapshot = self._run_pipeline(
            root,
            matcher,
            workers=workers,
            ascii_only=ascii_only,
            sequence_config=sequence_config,
            progress_callback=progress_callback,
        )
        traversal_duration = time.perf_counter() - traversal_start

        self.logger.info(
            "File processing completed: found=%d processed=%d ignored=%d characters=%d unique=%d",
            snapshot.files_found,
            snapshot.files_processed,
            snapshot.files_ignored,
            snapshot.total_chars,
            len(snapshot.char_map),
        )

        sorting_start = time.perf_counter()
        characters = build_char_counts(snapshot)
        sequences, unique_sequences = build_sequence_counts(snapshot, sequence_config)
        sorting_duration = time.perf_counter() - sorting_start
        self.logger.debug(
            "Sorted %d characters and %d sequences in %.6fs",
            len(characters),
            len(sequences),
            sorting_duration,
        )

        timing = TimingBreakdown(
            total=time.perf_counter() - start,
            rules=matcher.total_time,
            traversal=traversal_duration,
            sorting=sorting_duration,
        )
        self.logger.info(
            "Analysis completed in %.6fs (rules %.6fs, traversal %.6fs, sorting %.6fs)",
            timing.total,
            timing.rules,
            timing.traversal,
            timing.sorting,
        )

        return AnalysisResult(
            characters=characters,
            sequences=sequences,
            files_found=snapshot.files_found,
            files_ignored=snapshot.files_ignored,
            files_processed=snapshot.files_processed,
            total_chars=snapshot.total_chars,
            unique_chars=len(snapshot.char_map),
            unique_sequences=unique_sequences,
            timing=timing,
        )

    def _run_pipeline(
        self,
        root: Path,
        matcher: IgnoreMatcher,
        *,
        workers: int,
        ascii_only: bool,
        sequence_config: SequenceConfig,
        progress_callback: ProgressCallback | None,
    ) -> AggregateSnapshot:
        collector = ResultCollector()
        pool = WorkerPool(workers, logger=self.logger.getChild("worker"))
        first_error = FirstError()
        discovery = FileDiscovery(
            root,
            matcher,
            collector,
            ascii_only=ascii_only,
            sequence_config=sequence_config,
            progress_callback=progress_callback,
            error_callback=first_error,
            logger=self.logger.getChild("discovery"),
        )

        pool.start()
        walker = threading.Thread(
            target=discovery.run,
            args=(pool.submit, pool.close_jobs),
            name="symbolista-discovery",
            daemon=True,
        )
        walker.start()

        for result in pool.results():
            if result.failed:
                collector.increment_ignored()
                continue
            collector.add_result(result)

        pool.join()
        walker.join()

        if first_error.error is not None:
            self.logger.error("Error during file processing: %s", first_error.error)
            raise TraversalError(f"error processing files: {first_error.error}") from first_error.error

        return collector.snapshot()


__all__ = [
    "Orchestrator",
    "build_char_counts",
    "build_sequence_counts",
]
