"""Thread-safe accumulation of per-file partial results."""

from __future__ import annotations

import threading
from typing import Dict, Mapping, Tuple

from .models import AggregateSnapshot, PartialResult


def _merge_into(target: Dict[int, int], source: Mapping[int, int]) -> None:
    for key, count in source.items():
        target[key] = target.get(key, 0) + count


class ResultCollector:
    """Merges partial results into global counts under a single lock.

    The default pipeline drains results on one thread, but ``add_result`` is
    safe for any number of concurrent callers. State only leaves the
    collector through :meth:`snapshot`, which returns independent copies.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._char_map: Dict[int, int] = {}
        self._sequence_map2: Dict[int, int] = {}
        self._sequence_map3: Dict[int, int] = {}
        self._files_found = 0
        self._files_ignored = 0
        self._files_processed = 0
        self._total_chars = 0

    def add_result(self, result: PartialResult) -> None:
        with self._lock:
            _merge_into(self._char_map, result.char_map)
            _merge_into(self._sequence_map2, result.sequence_map2)
            _merge_into(self._sequence_map3, result.sequence_map3)
            self._files_processed += result.file_count
            self._total_chars += result.char_count

    def increment_found(self) -> None:
        with self._lock:
            self._files_found += 1

    def increment_ignored(self) -> None:
        with self._lock:
            self._files_ignored += 1

    def counts(self) -> Tuple[int, int]:
        """Return a consistent ``(found, ignored)`` pair."""
        with self._lock:
            return self._files_found, self._files_ignored

    def snapshot(self) -> AggregateSnapshot:
        with self._lock:
            return AggregateSnapshot(
                char_map=dict(self._char_map),
                sequence_map2=dict(self._sequence_map2),
                sequence_map3=dict(self._sequence_map3),
                files_found=self._files_found,
                files_ignored=self._files_ignored,
                files_processed=self._files_processed,
                total_chars=self._total_chars,
            )


__all__ = ["ResultCollector"]
